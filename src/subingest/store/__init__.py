"""Store package: SQLite schema, batch persistence, transcript side export."""
from subingest.store.database import TranscriptStore, database_url
from subingest.store.records import EpisodeRecord, ShowRecord, TranscriptRecord

__all__ = [
    "TranscriptStore",
    "database_url",
    "ShowRecord",
    "EpisodeRecord",
    "TranscriptRecord",
]
