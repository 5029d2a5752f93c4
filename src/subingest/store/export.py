"""Transcript side export: ``{id},{line}`` records for tooling that does not query the store.

Records are buffered while the insert transaction runs and written only after
it commits. ``flush()`` writes a temp file in the destination directory,
fsyncs it and moves it into place with os.replace(), so the export is either
the previous file or the complete new one, never a partial write. On rollback
the buffer is dropped with the batch and the file on disk is left untouched.

The file is rewritten on every run; it is not designed for incremental append.
"""
import os
import tempfile
from pathlib import Path

from subingest.errors import ExportError


class TranscriptExport:
    """In-memory buffer of accepted transcript lines for one batch."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._records: list[tuple[int, str]] = []

    def add(self, transcript_id: int, text: str) -> None:
        """Buffer one record per embedded line of *text*."""
        for line in text.split("\n"):
            self._records.append((transcript_id, line))

    def __len__(self) -> int:
        return len(self._records)

    def render(self) -> str:
        return "".join(f"{transcript_id},{line}\n" for transcript_id, line in self._records)

    def flush(self) -> Path:
        """Atomically write the buffered records to ``self.path``. Raises ExportError."""
        data = self.render().encode("utf-8")
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".export.tmp")
        except OSError as exc:
            raise ExportError(self.path, str(exc)) from exc
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise ExportError(self.path, str(exc)) from exc
        self._records.clear()
        return self.path
