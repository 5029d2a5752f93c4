"""Episode identity resolution from file-path conventions.

Show name always comes from the parent directory. Episode number and title
each have a small closed set of strategies, picked once per run by the
caller and dispatched here.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Optional

from subingest.config import UNKNOWN_SHOW, is_subtitle_file

_logger = logging.getLogger("subingest.episodes")

_E_NUMBER_RE = re.compile(r"E(\d+)")
_LAST_NUMBER_RE = re.compile(r"(\d+)[^0-9]*$")

# Numbers past a signed 32-bit int count as no match
_MAX_EPISODE_NUMBER = 2**31 - 1


class EpisodeNumberMethod(str, Enum):
    """How the episode number is derived. str, Enum so the values double as CLI choices."""

    FROM_FILENAME = "filename"          # digits after a literal 'E'
    FROM_FILE_ORDER = "file-order"      # 1-based position in the sorted show directory
    FROM_LAST_NUMBERS = "last-numbers"  # trailing run of digits


class EpisodeTitleMethod(str, Enum):
    FROM_SECOND_PART = "second-part"
    FROM_EPISODE_NUMBER = "episode-number"


# Sorted subtitle listings per show directory, shared across one aggregation run.
ListingCache = dict[Path, list[Path]]


def get_show_name(file_path: Path) -> str:
    """Return the parent directory name, or ``"Unknown Show"`` for a bare file name."""
    return file_path.parent.name or UNKNOWN_SHOW


def get_episode_number(
    method: EpisodeNumberMethod,
    file_path: Path,
    listing_cache: Optional[ListingCache] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Resolve the episode number for *file_path* using *method*.

    Never raises for a missing pattern: the number defaults to 0 and a
    warning is logged. ``FROM_FILE_ORDER`` lists the file's directory, which
    costs one scan per file unless *listing_cache* is passed in.
    """
    log = logger or _logger
    if method is EpisodeNumberMethod.FROM_FILE_ORDER:
        return episode_number_from_file_order(file_path, listing_cache)

    if method is EpisodeNumberMethod.FROM_FILENAME:
        number = episode_number_from_filename(file_path)
        source = "filename"
    else:
        number = episode_number_from_last_numbers(file_path)
        source = "last numbers"

    if number is None:
        log.warning(
            "Could not extract episode number from %s for %s. Using 0.", source, file_path
        )
        return 0
    return number


def get_episode_title(
    method: EpisodeTitleMethod,
    file_path: Path,
    episode_number: int,
) -> Optional[str]:
    """Resolve the episode title; ``None`` means the caller must fall back."""
    if method is EpisodeTitleMethod.FROM_SECOND_PART:
        return episode_title_from_second_part(file_path)
    return default_episode_title(episode_number)


def default_episode_title(episode_number: int) -> str:
    return f"Episode {episode_number}"


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def episode_number_from_filename(file_path: Path) -> Optional[int]:
    match = _E_NUMBER_RE.search(file_path.stem)
    return _bounded_number(match.group(1)) if match else None


def episode_number_from_last_numbers(file_path: Path) -> Optional[int]:
    match = _LAST_NUMBER_RE.search(file_path.stem)
    return _bounded_number(match.group(1)) if match else None


def episode_number_from_file_order(
    file_path: Path,
    listing_cache: Optional[ListingCache] = None,
) -> int:
    """Return the 1-based index of *file_path* among its directory's sorted subtitle files.

    O(files) per call, so O(files**2) per show without a cache. Returns 0 if
    the file is not in the listing.
    """
    show_dir = file_path.parent
    if listing_cache is not None and show_dir in listing_cache:
        episode_files = listing_cache[show_dir]
    else:
        episode_files = sorted(p for p in show_dir.iterdir() if is_subtitle_file(p))
        if listing_cache is not None:
            listing_cache[show_dir] = episode_files

    try:
        return episode_files.index(file_path) + 1
    except ValueError:
        return 0


def episode_title_from_second_part(file_path: Path) -> Optional[str]:
    parts = file_path.name.split(".")
    if len(parts) >= 3:
        return parts[1]
    return None


def _bounded_number(digits: str) -> Optional[int]:
    if not digits.isascii():
        return None
    number = int(digits)
    return number if number <= _MAX_EPISODE_NUMBER else None
