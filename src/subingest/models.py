from dataclasses import dataclass, field
from typing import Iterator

from subingest.errors import InvalidTimestampError


@dataclass(frozen=True)
class Timestamp:
    """SRT time value. Validation is syntactic only: minutes >= 60 are kept as-is."""

    hours: int
    minutes: int
    seconds: int
    milliseconds: int

    @classmethod
    def parse(cls, text: str) -> "Timestamp":
        """Parse ``HH:MM:SS,mmm``. Raises InvalidTimestampError unless exactly four numeric fields."""
        parts = text.replace(",", ":").split(":")
        if len(parts) != 4:
            raise InvalidTimestampError(f"expected 4 fields in {text!r}, got {len(parts)}")
        if not all(p.isascii() and p.isdigit() for p in parts):
            raise InvalidTimestampError(f"non-numeric field in {text!r}")
        hours, minutes, seconds, milliseconds = (int(p) for p in parts)
        return cls(hours, minutes, seconds, milliseconds)

    def format(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d},{self.milliseconds:03d}"

    def __str__(self) -> str:
        return self.format()


@dataclass
class Subtitle:
    """A single timed text entry, numbered as in the source file."""

    sequence_number: int    # not re-validated for contiguity
    start: Timestamp
    end: Timestamp
    text: str               # trimmed, internal line breaks kept

    def to_srt_block(self) -> str:
        return f"{self.sequence_number}\n{self.start} --> {self.end}\n{self.text}"


@dataclass
class Subtitles:
    """Ordered subtitle entries; insertion order is file order."""

    entries: list[Subtitle] = field(default_factory=list)

    def append(self, subtitle: Subtitle) -> None:
        self.entries.append(subtitle)

    def __iter__(self) -> Iterator[Subtitle]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> Subtitle:
        return self.entries[index]

    def to_srt(self) -> str:
        """Render back to SRT text, entries separated by one blank line."""
        return "\n\n".join(sub.to_srt_block() for sub in self.entries)


@dataclass
class SrtEntry:
    """One parsed subtitle file with its resolved episode identity."""

    show_name: str
    episode_title: str
    episode_number: int
    subtitles: Subtitles
