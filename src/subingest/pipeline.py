"""Flatten aggregated show entries into the three insert batches and persist them.

Order is fixed: shows, then episodes, then transcripts, each in its own
transaction. There is no atomicity across batches; a failure in the
episode batch leaves the committed shows in place.

Foreign keys are resolved by natural key after each batch (show name, then
show/season/episode number) rather than by position, so a re-run against a
store that already holds earlier shows links new rows to the right parents.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from subingest.config import DEFAULT_SEASON, DEFAULT_SHOW_TYPE
from subingest.models import SrtEntry
from subingest.store.database import TranscriptStore
from subingest.store.records import EpisodeRecord, ShowRecord, TranscriptRecord


@dataclass
class IngestSummary:
    """Rows offered to and actually inserted by each batch."""

    shows: int = 0
    shows_inserted: int = 0
    episodes: int = 0
    episodes_inserted: int = 0
    transcripts: int = 0
    transcripts_inserted: int = 0


def build_show_records(
    show_entries: dict[str, list[SrtEntry]],
    show_type: str = DEFAULT_SHOW_TYPE,
) -> list[ShowRecord]:
    return [ShowRecord(name=name, show_type=show_type) for name in show_entries]


def build_episode_records(
    show_entries: dict[str, list[SrtEntry]],
    show_ids: dict[str, int],
    season: int = DEFAULT_SEASON,
) -> list[EpisodeRecord]:
    return [
        EpisodeRecord(
            show_id=show_ids[show_name],
            name=entry.episode_title,
            season=season,
            episode_number=entry.episode_number,
        )
        for show_name, entries in show_entries.items()
        for entry in entries
    ]


def build_transcript_records(
    show_entries: dict[str, list[SrtEntry]],
    show_ids: dict[str, int],
    episode_ids: dict[tuple[int, int], int],
) -> list[TranscriptRecord]:
    """One row per subtitle; ``line_id`` is the 1-based position in its file."""
    records: list[TranscriptRecord] = []
    for show_name, entries in show_entries.items():
        show_id = show_ids[show_name]
        for entry in entries:
            episode_id = episode_ids[(show_id, entry.episode_number)]
            for index, subtitle in enumerate(entry.subtitles, start=1):
                records.append(
                    TranscriptRecord(
                        episode_id=episode_id,
                        line_id=index,
                        time_start=subtitle.start.format(),
                        time_end=subtitle.end.format(),
                        text=subtitle.text,
                    )
                )
    return records


def ingest(
    show_entries: dict[str, list[SrtEntry]],
    store: TranscriptStore,
    show_type: str = DEFAULT_SHOW_TYPE,
    season: int = DEFAULT_SEASON,
    output_csv: bool = False,
    export_path: Optional[Path] = None,
) -> IngestSummary:
    """Persist aggregator output: shows, then episodes, then transcripts.

    Any StoreError aborts the current batch (rolled back) and propagates;
    batches committed before it stay committed.
    """
    summary = IngestSummary()

    shows = build_show_records(show_entries, show_type)
    summary.shows = len(shows)
    summary.shows_inserted = store.batch_insert_shows(shows)
    show_ids = store.show_ids(show_entries)

    episodes = build_episode_records(show_entries, show_ids, season)
    summary.episodes = len(episodes)
    summary.episodes_inserted = store.batch_insert_episodes(episodes)
    episode_ids = store.episode_ids(show_ids.values(), season)

    transcripts = build_transcript_records(show_entries, show_ids, episode_ids)
    summary.transcripts = len(transcripts)
    summary.transcripts_inserted = store.batch_insert_transcripts(
        transcripts, output_csv=output_csv, export_path=export_path
    )
    return summary
