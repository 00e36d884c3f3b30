"""Change classification of a live scan against the manifest projection."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from manifest_sync.index.models import ChangeSet, FileRecord, ManifestRow

logger = logging.getLogger(__name__)


def record_map(records: Iterable[FileRecord]) -> dict[str, FileRecord]:
    """Map records by relative path, rejecting duplicate paths."""
    output: dict[str, FileRecord] = {}
    for record in records:
        if record.path in output:
            raise ValueError(f"Duplicate path in live scan: {record.path}")
        output[record.path] = record
    return output


def reconcile(
    live_records: Iterable[FileRecord],
    manifest_rows: Iterable[ManifestRow],
    force: bool = False,
    present: Iterable[str] = (),
) -> ChangeSet:
    """Compute added/modified/unchanged/removed sets.

    The content hash is the only comparison; stored timestamps are ignored. Paths
    are compared exactly, without case folding. Each input is consumed once and the
    manifest is indexed by path, so the cost is linear in both sizes.

    With ``force``, every path present on both sides is reported as modified.
    Paths in ``present`` exist on disk but were not fingerprinted (for example
    skipped empty files); they are never reported as removed.
    """
    current = record_map(live_records)
    stored_hashes = {row.path: row.hash for row in manifest_rows}

    added: list[FileRecord] = []
    modified: list[FileRecord] = []
    unchanged: list[FileRecord] = []
    for path in sorted(current):
        record = current[path]
        if path not in stored_hashes:
            added.append(record)
        elif force or stored_hashes[path] != record.content_hash:
            modified.append(record)
        else:
            unchanged.append(record)
    kept = set(present)
    removed = sorted(
        path for path in stored_hashes if path not in current and path not in kept
    )

    change_set = ChangeSet(
        added=tuple(added),
        modified=tuple(modified),
        unchanged=tuple(unchanged),
        removed=tuple(removed),
    )
    logger.info("Reconciled: %s", change_set.counts())
    return change_set
