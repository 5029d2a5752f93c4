"""Relational store: schema ownership and idempotent batch persistence.

All writes are ``INSERT OR IGNORE`` against the natural keys below, so a
re-run over a growing corpus only adds new rows:

    shows        name
    episodes     (show_id, season, episode_number)
    transcripts  (episode_id, time_start, time_end)

Each batch call is one transaction: any failing row other than a natural-key
duplicate rolls back the whole batch. SQLAlchemy errors are translated into
``StoreError`` subclasses and never escape this module.

SQLite does not enforce foreign keys unless asked per connection; the
``connect`` listener below switches enforcement on so an episode pointing at a
missing show fails instead of being stored.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from subingest.config import get_export_path
from subingest.errors import (
    CommitError,
    ConstraintError,
    StatementError,
    StoreConnectionError,
)
from subingest.store.export import TranscriptExport
from subingest.store.records import EpisodeRecord, ShowRecord, TranscriptRecord

_logger = logging.getLogger("subingest.store")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS shows (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    show_type TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS episodes (
    id INTEGER PRIMARY KEY,
    show_id INTEGER,
    name TEXT NOT NULL,
    season INTEGER,
    episode_number INTEGER,
    UNIQUE(show_id, season, episode_number),
    FOREIGN KEY(show_id) REFERENCES shows(id)
);
CREATE TABLE IF NOT EXISTS transcripts (
    id INTEGER PRIMARY KEY,
    episode_id INTEGER,
    line_id INTEGER,
    time_start TEXT,
    time_end TEXT,
    text TEXT NOT NULL,
    UNIQUE(episode_id, time_start, time_end),
    FOREIGN KEY(episode_id) REFERENCES episodes(id)
);
"""

TABLES = ("shows", "episodes", "transcripts")

_INSERT_SHOW = text(
    "INSERT OR IGNORE INTO shows (name, show_type) VALUES (:name, :show_type)"
)
_INSERT_EPISODE = text(
    "INSERT OR IGNORE INTO episodes (show_id, name, season, episode_number) "
    "VALUES (:show_id, :name, :season, :episode_number)"
)
_INSERT_TRANSCRIPT = text(
    "INSERT OR IGNORE INTO transcripts (episode_id, line_id, time_start, time_end, text) "
    "VALUES (:episode_id, :line_id, :time_start, :time_end, :text)"
)


def database_url(database: str | Path) -> str:
    """Turn a bare SQLite path (or ``:memory:``) into a SQLAlchemy URL; URLs pass through."""
    database = str(database)
    if "://" in database:
        return database
    if database == ":memory:":
        return "sqlite://"
    return f"sqlite:///{database}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class TranscriptStore:
    """Owns one database connection for the lifetime of an ingestion run.

    Creating the store opens the connection and runs the idempotent DDL
    script, so it is safe to construct on every process start.

    Usage::

        with TranscriptStore("transcripts.db") as store:
            store.batch_insert_shows([ShowRecord(name="ShowA", show_type="Anime")])

    """

    def __init__(self, database: str | Path, logger: Optional[logging.Logger] = None) -> None:
        self.url = database_url(database)
        self._log = logger or _logger
        try:
            self._engine: Engine = create_engine(self.url, future=True)
            if self._engine.dialect.name == "sqlite":
                event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
            self._conn: Connection = self._engine.connect()
        except SQLAlchemyError as exc:
            raise StoreConnectionError(self.url, _describe(exc)) from exc
        try:
            self.create_tables()
        except BaseException:
            self.close()
            raise

    def __enter__(self) -> "TranscriptStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()
        self._engine.dispose()

    def create_tables(self) -> None:
        """Run the fixed DDL script. Idempotent."""
        with self._transaction() as conn:
            for stmt in [s for s in SCHEMA_SQL.split(";\n") if s.strip()]:
                conn.execute(text(stmt))

    # ------------------------------------------------------------------
    # Single-row inserts
    # ------------------------------------------------------------------
    # Each returns the connection's last inserted rowid. After a duplicate
    # (ignored) insert that value is stale: it belongs to whatever row was
    # inserted before, not to the existing row. Use show_ids()/episode_ids()
    # when the canonical id is needed.

    def insert_show(self, name: str, show_type: str) -> int:
        return self._insert_one("shows", _INSERT_SHOW, ShowRecord(name=name, show_type=show_type))

    def insert_episode(self, show_id: int, name: str, season: int, episode_number: int) -> int:
        record = EpisodeRecord(
            show_id=show_id, name=name, season=season, episode_number=episode_number
        )
        return self._insert_one("episodes", _INSERT_EPISODE, record)

    def insert_transcript(
        self,
        episode_id: int,
        line_id: int,
        time_start: str,
        time_end: str,
        text: str,
    ) -> int:
        record = TranscriptRecord(
            episode_id=episode_id,
            line_id=line_id,
            time_start=time_start,
            time_end=time_end,
            text=text,
        )
        return self._insert_one("transcripts", _INSERT_TRANSCRIPT, record)

    # ------------------------------------------------------------------
    # Batch inserts
    # ------------------------------------------------------------------

    def batch_insert_shows(self, shows: Sequence[ShowRecord]) -> int:
        """Insert *shows* in one transaction. Returns the number of new rows."""
        self._log.info("Inserting shows...")
        return self._batch_insert("shows", _INSERT_SHOW, shows)

    def batch_insert_episodes(self, episodes: Sequence[EpisodeRecord]) -> int:
        """Insert *episodes* in one transaction. Returns the number of new rows."""
        self._log.info("Inserting episodes...")
        return self._batch_insert("episodes", _INSERT_EPISODE, episodes)

    def batch_insert_transcripts(
        self,
        transcripts: Sequence[TranscriptRecord],
        output_csv: bool = False,
        export_path: Optional[Path] = None,
    ) -> int:
        """Insert *transcripts* in one transaction, optionally exporting accepted rows.

        With *output_csv*, every row that was actually inserted contributes one
        ``{id},{line}`` record per line of its text. Duplicates contribute
        nothing. The export file (default from SUBINGEST_EXPORT_PATH) is
        written only after the commit succeeds and is rewritten even when no
        row was accepted.

        Raises
        ------
        ConstraintError, StatementError, CommitError
            The batch was rolled back and the export file left untouched.
        ExportError
            The batch committed but the export file could not be written.
        """
        self._log.info("Inserting transcripts...")
        export = TranscriptExport(export_path or get_export_path()) if output_csv else None
        on_insert = None
        if export is not None:
            def on_insert(transcript_id: int, row: TranscriptRecord) -> None:
                export.add(transcript_id, row.text)

        inserted = self._batch_insert("transcripts", _INSERT_TRANSCRIPT, transcripts, on_insert)

        if export is not None:
            lines = len(export)
            path = export.flush()
            self._log.info("Exported %d transcript lines to %s", lines, path)
        return inserted

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def show_ids(self, names: Iterable[str]) -> dict[str, int]:
        """Return ``{name: id}`` for the given show names that exist."""
        wanted = set(names)
        with self._transaction("shows") as conn:
            rows = conn.execute(text("SELECT id, name FROM shows")).all()
        return {name: show_id for show_id, name in rows if name in wanted}

    def episode_ids(self, show_ids: Iterable[int], season: int) -> dict[tuple[int, int], int]:
        """Return ``{(show_id, episode_number): id}`` for one season of the given shows."""
        wanted = set(show_ids)
        with self._transaction("episodes") as conn:
            rows = conn.execute(
                text("SELECT id, show_id, episode_number FROM episodes WHERE season = :season"),
                {"season": season},
            ).all()
        return {
            (show_id, episode_number): episode_id
            for episode_id, show_id, episode_number in rows
            if show_id in wanted
        }

    def count(self, table: str) -> int:
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table!r}")
        with self._transaction(table) as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, table: Optional[str] = None) -> Iterator[Connection]:
        """Run the block in one transaction, translating SQLAlchemy errors.

        Rolls back on any exception raised inside the block. Commit failures
        surface as CommitError.
        """
        trans = self._conn.begin()
        try:
            yield self._conn
        except IntegrityError as exc:
            trans.rollback()
            raise ConstraintError(self.url, _describe(exc), table) from exc
        except SQLAlchemyError as exc:
            trans.rollback()
            raise StatementError(self.url, _describe(exc), table) from exc
        except OverflowError as exc:
            # integer bind parameter wider than a SQLite INTEGER
            trans.rollback()
            raise StatementError(self.url, str(exc), table) from exc
        except BaseException:
            trans.rollback()
            raise
        try:
            trans.commit()
        except SQLAlchemyError as exc:
            raise CommitError(self.url, _describe(exc), table) from exc

    def _insert_one(self, table: str, stmt, record: BaseModel) -> int:
        with self._transaction(table) as conn:
            result = conn.execute(stmt, record.model_dump())
            return result.lastrowid

    def _batch_insert(
        self,
        table: str,
        stmt,
        rows: Sequence[BaseModel],
        on_insert: Optional[Callable[[int, BaseModel], None]] = None,
    ) -> int:
        inserted = 0
        with self._transaction(table) as conn:
            for row in rows:
                result = conn.execute(stmt, row.model_dump())
                if result.rowcount > 0:
                    inserted += 1
                    if on_insert is not None:
                        on_insert(result.lastrowid, row)
        self._log.info("Inserted %d of %d %s", inserted, len(rows), table)
        return inserted


def _describe(exc: SQLAlchemyError) -> str:
    """Return the DBAPI message without SQLAlchemy's statement/parameter dump."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
