"""Structured JSONL log of indexing runs."""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from manifest_sync.errors import FilesystemError

RUN_LOG_FILE_NAME = "runs.jsonl"
DEFAULT_READ_LIMIT = 50
MAX_READ_LIMIT = 500


@dataclass(slots=True, frozen=True)
class RunEvent:
    """Outcome of a single refresh or eviction run."""

    timestamp: str
    command: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object] = field(default_factory=dict)


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clamp_limit(value: int | None) -> int:
    """Bound a requested entry count to ``1..MAX_READ_LIMIT``."""
    if value is None:
        return DEFAULT_READ_LIMIT
    return max(1, min(value, MAX_READ_LIMIT))


class JsonlRunLogger:
    """Append-only run history, one JSON object per line.

    Lines that are blank, not JSON, or not objects are skipped on read so a torn
    final write never hides earlier runs.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @classmethod
    def in_data_dir(cls, data_dir: Path) -> JsonlRunLogger:
        return cls(path=data_dir / RUN_LOG_FILE_NAME)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: RunEvent) -> None:
        """Append ``event``; raises FilesystemError when the log cannot be written."""
        line = json.dumps(asdict(event), sort_keys=True)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(f"{line}\n")
        except OSError as exc:
            raise FilesystemError(
                str(self._path), f"Cannot write run log ({exc.strerror})"
            ) from exc

    def read(
        self,
        since: str | None = None,
        limit: int = DEFAULT_READ_LIMIT,
        command: str | None = None,
    ) -> list[dict[str, object]]:
        """Return the newest ``limit`` runs, oldest first.

        ``since`` is an inclusive lower bound compared against the stored ISO
        timestamps; ``command`` keeps only runs of that command.
        """
        if limit < 1:
            return []
        selected: list[dict[str, object]] = []
        for record in self._records():
            if since is not None:
                stamp = record.get("timestamp")
                if not isinstance(stamp, str) or stamp < since:
                    continue
            if command is not None and record.get("command") != command:
                continue
            selected.append(record)
        return selected[-limit:]

    def _records(self) -> Iterator[dict[str, object]]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                lines = handle.readlines()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise FilesystemError(
                str(self._path), f"Cannot read run log ({exc.strerror})"
            ) from exc
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                record = json.loads(stripped)
            except json.JSONDecodeError:
                continue
            if isinstance(record, dict):
                yield record
