"""Tolerant SRT parser.

Blocks are located with a single regular expression rather than a line state
machine, so stray text between blocks is skipped instead of aborting the file.
Non-UTF-8 files are detected with charset-normalizer before decoding; if
encoding detection also fails, ``SubtitleReadError`` is raised.
"""

from __future__ import annotations

import re
from pathlib import Path

from charset_normalizer import from_bytes

from subingest.errors import (
    InvalidNumberError,
    MalformedSubtitleError,
    SubtitleParseError,
    SubtitleReadError,
)
from subingest.models import Subtitle, Subtitles, Timestamp


# number line / "start --> end" line / body up to the first blank line or end of input
_BLOCK_RE = re.compile(
    r"^(\d+)\n"
    r"(\d{2}:\d{2}:\d{2},\d{3}) --> (\d{2}:\d{2}:\d{2},\d{3})\n"
    r"(.*?)(?:\n\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

_BOM = "\ufeff"


def parse_srt(content: str) -> Subtitles:
    """Parse SRT text into a :class:`Subtitles` collection.

    Parameters
    ----------
    content:
        Raw file content. A leading byte-order mark and carriage returns are
        removed before matching.

    Returns
    -------
    Subtitles
        Entries in file order, bodies trimmed with internal line breaks kept.

    Raises
    ------
    MalformedSubtitleError
        If no block matches. An empty file is an error, not an empty result.
    InvalidNumberError, InvalidTimestampError
        If a matched block carries an unparseable number or timestamp.
    """
    text = content.lstrip(_BOM).replace("\r", "")

    subtitles = Subtitles()
    for match in _BLOCK_RE.finditer(text):
        number, start, end, body = match.groups()
        if not (number.isascii() and number.isdigit()):
            raise InvalidNumberError(f"{number!r} is not an integer")
        sequence_number = int(number)
        subtitles.append(
            Subtitle(
                sequence_number=sequence_number,
                start=Timestamp.parse(start),
                end=Timestamp.parse(end),
                text=body.strip(),
            )
        )

    if not subtitles:
        raise MalformedSubtitleError("no '<number> / <start> --> <end> / <text>' block matched")
    return subtitles


def read_srt(path: Path) -> Subtitles:
    """Read and parse the SRT file at *path*.

    Parse errors are re-raised with *path* attached so the message names the
    offending file.
    """
    content = _read_with_encoding_fallback(path)
    try:
        return parse_srt(content)
    except SubtitleParseError as exc:
        raise exc.with_path(path) from exc


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _read_with_encoding_fallback(path: Path) -> str:
    """Decode *path* as UTF-8, falling back to charset-normalizer."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SubtitleReadError(str(exc), path) from exc

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass

    # UTF-8 failed, try charset-normalizer
    best = from_bytes(data).best()
    if best is None:
        raise SubtitleReadError("Could not determine file encoding. Re-save as UTF-8.", path)
    return str(best)
