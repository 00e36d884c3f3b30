"""Typed models for scan and manifest state."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Represents one file as observed by the current scan."""

    path: str
    content: str = field(repr=False)
    token_count: int
    content_hash: str
    modified_at: int


@dataclass(slots=True, frozen=True)
class ManifestEntry:
    """Persisted state for a processed path."""

    path: str
    token_count: int
    summary: str
    summary_token_count: int
    hash: str
    timestamp: int
    dependencies: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ManifestRow:
    """Lightweight manifest projection used for reconciliation."""

    path: str
    hash: str
    timestamp: int


@dataclass(slots=True, frozen=True)
class ChangeSet:
    """Four-way classification of live files against the manifest."""

    added: tuple[FileRecord, ...]
    modified: tuple[FileRecord, ...]
    unchanged: tuple[FileRecord, ...]
    removed: tuple[str, ...]

    @property
    def to_process(self) -> tuple[FileRecord, ...]:
        """Records that need downstream processing, ordered by path."""
        return tuple(sorted(self.added + self.modified, key=lambda record: record.path))

    @property
    def is_empty(self) -> bool:
        """True when nothing was added, modified, or removed."""
        return not (self.added or self.modified or self.removed)

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "unchanged": len(self.unchanged),
            "removed": len(self.removed),
        }

    def to_dict(self) -> dict[str, object]:
        """Return serializable path lists and counts."""
        return {
            "added": [record.path for record in self.added],
            "modified": [record.path for record in self.modified],
            "unchanged": [record.path for record in self.unchanged],
            "removed": list(self.removed),
            "counts": self.counts(),
        }
