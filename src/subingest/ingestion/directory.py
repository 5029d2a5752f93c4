"""Directory aggregation: discover SRT files, resolve identity, parse, group by show."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from subingest.config import is_subtitle_file
from subingest.errors import SubIngestError
from subingest.ingestion.episodes import (
    EpisodeNumberMethod,
    EpisodeTitleMethod,
    ListingCache,
    default_episode_title,
    get_episode_number,
    get_episode_title,
    get_show_name,
)
from subingest.ingestion.subtitles import read_srt
from subingest.models import SrtEntry

_logger = logging.getLogger("subingest.directory")


def process_srt_file(
    file_path: Path,
    number_method: EpisodeNumberMethod,
    title_method: EpisodeTitleMethod,
    listing_cache: Optional[ListingCache] = None,
    logger: Optional[logging.Logger] = None,
) -> SrtEntry:
    """Resolve identity for *file_path* and parse its contents.

    Raises
    ------
    SubtitleParseError
        If the file cannot be read or contains no valid SRT block.
    """
    show_name = get_show_name(file_path)
    episode_number = get_episode_number(number_method, file_path, listing_cache, logger)
    episode_title = get_episode_title(title_method, file_path, episode_number)
    if episode_title is None:
        episode_title = default_episode_title(episode_number)

    return SrtEntry(
        show_name=show_name,
        episode_title=episode_title,
        episode_number=episode_number,
        subtitles=read_srt(file_path),
    )


def aggregate_directory(
    root: Path,
    number_method: EpisodeNumberMethod,
    title_method: EpisodeTitleMethod,
    logger: Optional[logging.Logger] = None,
) -> dict[str, list[SrtEntry]]:
    """Parse every ``.srt`` file under *root* and group the entries by show.

    Files are visited in sorted path order so grouping is deterministic.
    A file that fails is logged at ERROR and left out; it never aborts the
    run. Each show's entries are sorted by episode number (stable).

    Parameters
    ----------
    root:
        Directory searched recursively. Non-subtitle files are ignored.
    number_method, title_method:
        Resolution strategies applied to every file of this run.
    logger:
        Receives per-file progress, resolution warnings and failures.
        Defaults to the ``subingest.directory`` logger.

    Returns
    -------
    dict[str, list[SrtEntry]]
        Show name to episode entries, shows in first-encountered order.
    """
    log = logger or _logger
    listing_cache: ListingCache = {}
    show_entries: dict[str, list[SrtEntry]] = {}

    if not root.is_dir():
        log.warning("Transcript root %s is not a directory; nothing to process.", root)
        return show_entries

    for path in sorted(root.rglob("*")):
        if not is_subtitle_file(path):
            continue
        log.info("Processing %s...", path.name)
        try:
            entry = process_srt_file(path, number_method, title_method, listing_cache, log)
        except (SubIngestError, OSError) as exc:
            log.error("Error processing file %s: %s", path, exc)
            continue
        show_entries.setdefault(entry.show_name, []).append(entry)

    for entries in show_entries.values():
        entries.sort(key=lambda entry: entry.episode_number)

    return show_entries
