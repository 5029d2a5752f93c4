"""Environment-driven defaults for the ingestion run.

Each accessor reads its variable at call time so tests can monkeypatch the
environment without reloading the module.
"""
import os
from pathlib import Path

DEFAULT_DATABASE = "transcripts.db"
DEFAULT_INPUT_DIR = "data/transcripts_raw"
DEFAULT_EXPORT_PATH = "transcripts.csv"

DEFAULT_SHOW_TYPE = "Anime"
DEFAULT_SEASON = 1
UNKNOWN_SHOW = "Unknown Show"
SUBTITLE_EXTENSION = ".srt"


def get_database() -> str:
    """Return the SQLite path or SQLAlchemy URL from SUBINGEST_DB (default ``transcripts.db``)."""
    return os.environ.get("SUBINGEST_DB", DEFAULT_DATABASE)


def get_input_dir() -> Path:
    """Return the aggregation root from SUBINGEST_INPUT_DIR (default ``data/transcripts_raw``)."""
    return Path(os.environ.get("SUBINGEST_INPUT_DIR", DEFAULT_INPUT_DIR)).expanduser()


def get_export_path() -> Path:
    """Return the side-export file location from SUBINGEST_EXPORT_PATH (default ``transcripts.csv``)."""
    return Path(os.environ.get("SUBINGEST_EXPORT_PATH", DEFAULT_EXPORT_PATH)).expanduser()


def is_subtitle_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() == SUBTITLE_EXTENSION
