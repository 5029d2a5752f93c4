"""Unit tests for subingest.store.database: schema, insert-or-ignore, batch atomicity.

Every test uses a fresh SQLite file under ``tmp_path``.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError
from sqlalchemy import text

from subingest.errors import ConstraintError, StatementError, StoreConnectionError, StoreError
from subingest.store.database import TranscriptStore, database_url
from subingest.store.records import EpisodeRecord, ShowRecord, TranscriptRecord


@pytest.fixture
def store(tmp_path: Path):
    with TranscriptStore(tmp_path / "transcripts.db") as s:
        yield s


def _seed_episode(store: TranscriptStore) -> int:
    """Insert one show and one episode; return the episode id."""
    store.batch_insert_shows([ShowRecord(name="ShowA", show_type="Anime")])
    show_id = store.show_ids(["ShowA"])["ShowA"]
    store.batch_insert_episodes([EpisodeRecord(show_id=show_id, name="Episode 1", season=1, episode_number=1)])
    return store.episode_ids([show_id], season=1)[(show_id, 1)]


def _line(episode_id: int, line_id: int, start: str, text: str = "line") -> TranscriptRecord:
    return TranscriptRecord(
        episode_id=episode_id,
        line_id=line_id,
        time_start=start,
        time_end=start.replace(",000", ",900"),
        text=text,
    )


class TestDatabaseUrl:
    def test_bare_path(self):
        assert database_url("transcripts.db") == "sqlite:///transcripts.db"

    def test_absolute_path(self):
        assert database_url(Path("/data/t.db")) == "sqlite:////data/t.db"

    def test_memory(self):
        assert database_url(":memory:") == "sqlite://"

    def test_url_passthrough(self):
        assert database_url("sqlite:///x.db") == "sqlite:///x.db"


class TestSchema:
    def test_tables_created(self, store):
        for table in ("shows", "episodes", "transcripts"):
            assert store.count(table) == 0

    def test_create_tables_idempotent(self, tmp_path):
        db = tmp_path / "t.db"
        with TranscriptStore(db) as s:
            s.insert_show("ShowA", "Anime")
            s.create_tables()
        with TranscriptStore(db) as s:
            assert s.count("shows") == 1

    def test_unknown_table_rejected(self, store):
        with pytest.raises(ValueError):
            store.count("sqlite_master")

    def test_open_failure(self, tmp_path):
        with pytest.raises(StoreConnectionError):
            TranscriptStore(tmp_path / "no" / "such" / "dir" / "t.db")

    def test_failed_schema_setup_closes_store(self, tmp_path, monkeypatch):
        closed = []

        def fail(self):
            raise StatementError(self.url, "schema failed")

        monkeypatch.setattr(TranscriptStore, "create_tables", fail)
        monkeypatch.setattr(TranscriptStore, "close", lambda self: closed.append(self.url))

        with pytest.raises(StatementError):
            TranscriptStore(tmp_path / "t.db")
        assert closed == [database_url(tmp_path / "t.db")]

    def test_in_memory_store(self):
        with TranscriptStore(":memory:") as s:
            s.insert_show("ShowA", "Anime")
            assert s.count("shows") == 1


class TestSingleRowInserts:
    def test_insert_show_returns_new_id(self, store):
        first = store.insert_show("ShowA", "Anime")
        second = store.insert_show("ShowB", "Anime")
        assert second == first + 1

    def test_duplicate_show_is_noop(self, store):
        store.insert_show("ShowA", "Anime")
        store.insert_show("ShowA", "Drama")
        assert store.count("shows") == 1
        with store._transaction() as conn:
            assert conn.execute(text("SELECT show_type FROM shows")).scalar_one() == "Anime"

    def test_duplicate_returns_stale_id(self, store):
        """After an ignored insert the returned id belongs to the previous insert."""
        a = store.insert_show("ShowA", "Anime")
        b = store.insert_show("ShowB", "Anime")
        again = store.insert_show("ShowA", "Anime")
        assert again == b
        assert again != a

    def test_insert_episode_and_transcript(self, store):
        show_id = store.insert_show("ShowA", "Anime")
        episode_id = store.insert_episode(show_id, "Episode 1", 1, 1)
        transcript_id = store.insert_transcript(episode_id, 1, "00:00:01,000", "00:00:02,000", "Hi")
        assert transcript_id > 0
        assert store.count("transcripts") == 1

    def test_insert_episode_missing_show_fails(self, store):
        with pytest.raises(ConstraintError) as exc_info:
            store.insert_episode(999, "Episode 1", 1, 1)
        assert exc_info.value.table == "episodes"
        assert store.count("episodes") == 0


class TestBatchInserts:
    def test_batch_shows_counts_new_rows_only(self, store):
        shows = [ShowRecord(name="ShowA", show_type="Anime"), ShowRecord(name="ShowB", show_type="Anime")]
        assert store.batch_insert_shows(shows) == 2
        assert store.batch_insert_shows(shows) == 0
        assert store.count("shows") == 2

    def test_batch_preserves_input_order(self, store):
        store.batch_insert_shows([ShowRecord(name=n, show_type="Anime") for n in ("Zed", "Alpha", "Mid")])
        ids = store.show_ids(["Zed", "Alpha", "Mid"])
        assert ids["Zed"] < ids["Alpha"] < ids["Mid"]

    def test_batch_episodes_natural_key(self, store):
        show_id = store.insert_show("ShowA", "Anime")
        episodes = [
            EpisodeRecord(show_id=show_id, name="Episode 1", season=1, episode_number=1),
            EpisodeRecord(show_id=show_id, name="Renamed", season=1, episode_number=1),
            EpisodeRecord(show_id=show_id, name="Episode 1", season=2, episode_number=1),
        ]
        assert store.batch_insert_episodes(episodes) == 2

    def test_batch_episodes_atomic_on_fk_violation(self, store):
        show_id = store.insert_show("ShowA", "Anime")
        episodes = [
            EpisodeRecord(show_id=show_id, name="Episode 1", season=1, episode_number=1),
            EpisodeRecord(show_id=show_id, name="Episode 2", season=1, episode_number=2),
            EpisodeRecord(show_id=show_id + 100, name="Orphan", season=1, episode_number=3),
        ]
        with pytest.raises(ConstraintError):
            store.batch_insert_episodes(episodes)
        assert store.count("episodes") == 0

    def test_batch_transcripts_atomic_on_fk_violation(self, store):
        episode_id = _seed_episode(store)
        rows = [
            _line(episode_id, 1, "00:00:01,000"),
            _line(episode_id + 50, 2, "00:00:02,000"),
        ]
        with pytest.raises(ConstraintError):
            store.batch_insert_transcripts(rows)
        assert store.count("transcripts") == 0

    def test_store_usable_after_rollback(self, store):
        with pytest.raises(ConstraintError):
            store.batch_insert_episodes([EpisodeRecord(show_id=42, name="x", season=1, episode_number=1)])
        assert store.batch_insert_shows([ShowRecord(name="ShowA", show_type="Anime")]) == 1

    def test_statement_failure_translated(self, store):
        with store._transaction() as conn:
            conn.execute(text("DROP TABLE transcripts"))
        with pytest.raises(StatementError):
            store.batch_insert_transcripts([_line(1, 1, "00:00:01,000")])

    def test_integer_overflow_translated(self, store):
        with pytest.raises(StatementError) as exc_info:
            store.insert_episode(2**70, "Episode 1", 1, 1)
        assert exc_info.value.table == "episodes"
        assert store.count("episodes") == 0

    def test_episode_number_bounded_by_record(self):
        with pytest.raises(ValidationError):
            EpisodeRecord(show_id=1, name="x", season=1, episode_number=2**63)

    def test_errors_are_store_errors(self):
        assert issubclass(ConstraintError, StoreError)
        assert issubclass(StatementError, StoreError)


class TestLookups:
    def test_show_ids_only_existing(self, store):
        store.batch_insert_shows([ShowRecord(name="ShowA", show_type="Anime")])
        assert set(store.show_ids(["ShowA", "Missing"])) == {"ShowA"}

    def test_episode_ids_filtered_by_show_and_season(self, store):
        a = store.insert_show("ShowA", "Anime")
        b = store.insert_show("ShowB", "Anime")
        store.batch_insert_episodes([
            EpisodeRecord(show_id=a, name="A1", season=1, episode_number=1),
            EpisodeRecord(show_id=a, name="A1s2", season=2, episode_number=1),
            EpisodeRecord(show_id=b, name="B1", season=1, episode_number=1),
        ])
        ids = store.episode_ids([a], season=1)
        assert list(ids) == [(a, 1)]
