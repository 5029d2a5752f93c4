"""Validated row models for the three insert batches.

Bind parameter names match the column names, so ``model_dump()`` feeds the
``text()`` statements in :mod:`subingest.store.database` directly.
"""
from pydantic import BaseModel, ConfigDict, Field

_TIMESTAMP_PATTERN = r"^\d{2,}:\d{2}:\d{2},\d{3}$"


class ShowRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    show_type: str


class EpisodeRecord(BaseModel):
    """Natural key: (show_id, season, episode_number)."""
    model_config = ConfigDict(frozen=True)

    show_id: int
    name: str
    season: int = Field(ge=0, le=2**63 - 1)
    episode_number: int = Field(ge=0, le=2**63 - 1)


class TranscriptRecord(BaseModel):
    """Natural key: (episode_id, time_start, time_end). Times are canonical ``HH:MM:SS,mmm`` text."""
    model_config = ConfigDict(frozen=True)

    episode_id: int
    line_id: int = Field(ge=1)  # 1-based position within the episode
    time_start: str = Field(pattern=_TIMESTAMP_PATTERN)
    time_end: str = Field(pattern=_TIMESTAMP_PATTERN)
    text: str
