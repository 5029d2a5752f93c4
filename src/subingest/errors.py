from pathlib import Path
from typing import Optional


class SubIngestError(Exception):
    """Base class for all subingest errors."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class SubtitleParseError(SubIngestError):
    """Base class for failures turning subtitle text into entries."""

    summary = "Cannot parse subtitle content"
    check = "Is the file valid SRT (number, 'HH:MM:SS,mmm --> HH:MM:SS,mmm', text, blank line)?"

    def __init__(self, detail: str, path: Optional[Path] = None) -> None:
        where = f" in '{path.name}'" if path is not None else ""
        super().__init__(
            f"{self.summary}{where}.\n"
            f"  Cause: {detail}\n"
            f"  Check: {self.check}"
        )
        self.path = path
        self.detail = detail

    def with_path(self, path: Path) -> "SubtitleParseError":
        """Return a copy of this error that names *path* in its message."""
        return type(self)(self.detail, path)


class MalformedSubtitleError(SubtitleParseError):
    summary = "No subtitle blocks found"


class InvalidTimestampError(SubtitleParseError):
    summary = "Invalid subtitle timestamp"
    check = "Timestamps must be four numeric fields: HH:MM:SS,mmm"


class InvalidNumberError(SubtitleParseError):
    summary = "Invalid subtitle sequence number"
    check = "Each block must start with a line holding only a decimal number."


class SubtitleReadError(SubtitleParseError):
    summary = "Cannot read subtitle file"
    check = "Does the file exist and is it readable? Try re-saving it as UTF-8."


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class StoreError(SubIngestError):
    """Base class for relational store failures."""

    summary = "Database operation failed"
    check = "Is the database path writable and not locked by another process?"

    def __init__(self, database: str, detail: str, table: Optional[str] = None) -> None:
        where = f" on table '{table}'" if table else ""
        super().__init__(
            f"{self.summary}{where} ({database}).\n"
            f"  Cause: {detail}\n"
            f"  Check: {self.check}"
        )
        self.database = database
        self.table = table
        self.detail = detail


class StoreConnectionError(StoreError):
    summary = "Cannot open database"
    check = "Does the parent directory exist? Is the SUBINGEST_DB value a valid path or URL?"


class StatementError(StoreError):
    summary = "Statement failed"
    check = "Was the schema created? Delete a database left by an incompatible version."


class ConstraintError(StoreError):
    summary = "Constraint violation (batch rolled back)"
    check = "Do all referenced show/episode ids exist? Natural-key duplicates are skipped, not errors."


class CommitError(StoreError):
    summary = "Transaction commit failed (batch rolled back)"


class ExportError(SubIngestError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot write transcript export '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is '{path.parent}' writable? The database batch itself was committed."
        )
        self.path = path
        self.detail = detail
