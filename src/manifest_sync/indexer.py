"""Scan, reconcile, and persist orchestration for one repository root."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from manifest_sync.config import IndexerConfig
from manifest_sync.errors import FilesystemError, ManifestSyncError
from manifest_sync.index.fingerprint import fingerprint_file, resolve_relative_path
from manifest_sync.index.models import ChangeSet, FileRecord, ManifestEntry
from manifest_sync.index.reconcile import reconcile
from manifest_sync.index.scanner import scan_tree
from manifest_sync.index.tokens import TokenCounter
from manifest_sync.logging import JsonlRunLogger, RunEvent, utc_timestamp
from manifest_sync.progress import NullProgressReporter, ProgressReporter, ProgressState
from manifest_sync.store import ManifestStore, manifest_db_path

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LoadResult:
    """Fingerprinted live files for one pass."""

    records: tuple[FileRecord, ...]
    skipped_empty: tuple[str, ...]
    progress: ProgressState


@dataclass(slots=True, frozen=True)
class RefreshResult:
    """Outcome of a refresh run."""

    change_set: ChangeSet
    skipped_empty: tuple[str, ...]
    duration_ms: int
    timestamp: str

    def to_dict(self) -> dict[str, object]:
        payload = self.change_set.to_dict()
        payload["skipped_empty"] = list(self.skipped_empty)
        payload["duration_ms"] = self.duration_ms
        payload["timestamp"] = self.timestamp
        return payload


class Indexer:
    """Runs incremental change detection for a configured root.

    Usage:
        indexer = Indexer(config)
        with indexer.open_store() as store:
            result = indexer.refresh(store)
            for record in result.change_set.to_process:
                summary, deps = summarize(record)  # downstream
                indexer.record_processed(store, record, summary, deps)
    """

    def __init__(
        self,
        config: IndexerConfig,
        counter: TokenCounter | None = None,
        reporter: ProgressReporter | None = None,
        run_log: JsonlRunLogger | None = None,
    ) -> None:
        self._config = config
        self._root = config.repo_root
        self._counter = counter or TokenCounter.from_config(config.tokens)
        self._reporter = reporter or NullProgressReporter()
        self._run_log = run_log or JsonlRunLogger.in_data_dir(config.data_dir)

    @property
    def config(self) -> IndexerConfig:
        return self._config

    @property
    def run_log(self) -> JsonlRunLogger:
        return self._run_log

    def open_store(self) -> ManifestStore:
        """Return an opened store handle for the configured data directory."""
        return ManifestStore(manifest_db_path(self._config.data_dir)).open()

    def load_records(
        self,
        on_progress: Callable[[ProgressState], None] | None = None,
    ) -> LoadResult:
        """Scan the root and fingerprint every accepted file."""
        logger.info("Loading files from directory: %s", self._root)
        scan = scan_tree(
            self._root,
            ignore_dirs=self._config.index.ignore_dirs,
            include_extensions=self._config.index.include_extensions,
            exclude_paths=self._internal_paths(),
        )
        progress = ProgressState(total=len(scan.paths))
        records: list[FileRecord] = []
        skipped_empty: list[str] = []
        for record in self._fingerprint_all(scan.paths):
            progress = progress.advance()
            self._reporter.report(progress)
            if on_progress is not None:
                on_progress(progress)
            if self._config.index.skip_empty and not record.content:
                skipped_empty.append(record.path)
                continue
            records.append(record)
        logger.info("Loaded %d files (%d empty skipped).", len(records), len(skipped_empty))
        return LoadResult(
            records=tuple(records),
            skipped_empty=tuple(skipped_empty),
            progress=progress,
        )

    def refresh(self, store: ManifestStore, force: bool = False) -> RefreshResult:
        """Classify the live tree against the store and drop removed paths.

        Removed paths are deleted one at a time; a failure part way leaves earlier
        deletions in place, and rerunning converges.
        """
        started = time.perf_counter()
        try:
            previous = store.list_all()
            loaded = self.load_records()
            change_set = reconcile(
                loaded.records, previous, force=force, present=loaded.skipped_empty
            )
            for path in change_set.removed:
                store.delete(path)
        except ManifestSyncError as exc:
            self._log_run("refresh", ok=False, error_code=exc.code, metadata={"force": force})
            raise
        duration_ms = int((time.perf_counter() - started) * 1000)
        timestamp = utc_timestamp()
        metadata: dict[str, object] = dict(change_set.counts())
        metadata["force"] = force
        metadata["skipped_empty"] = len(loaded.skipped_empty)
        metadata["duration_ms"] = duration_ms
        self._log_run("refresh", ok=True, error_code=None, metadata=metadata)
        return RefreshResult(
            change_set=change_set,
            skipped_empty=loaded.skipped_empty,
            duration_ms=duration_ms,
            timestamp=timestamp,
        )

    def record_processed(
        self,
        store: ManifestStore,
        record: FileRecord,
        summary: str,
        dependencies: Iterable[str] = (),
    ) -> ManifestEntry:
        """Persist a processed file with its summary in one full-row upsert."""
        entry = ManifestEntry(
            path=record.path,
            token_count=record.token_count,
            summary=summary,
            summary_token_count=self._counter.count(summary),
            hash=record.content_hash,
            timestamp=record.modified_at,
            dependencies=tuple(dependencies),
        )
        store.upsert(entry)
        return entry

    def evict(self, store: ManifestStore, paths: Iterable[str]) -> list[str]:
        """Delete entries explicitly; returns the paths that were present."""
        requested = list(paths)
        removed: list[str] = []
        try:
            for path in requested:
                if store.delete(path):
                    removed.append(path)
        except ManifestSyncError as exc:
            self._log_run(
                "evict",
                ok=False,
                error_code=exc.code,
                metadata={"requested": len(requested), "removed": len(removed)},
            )
            raise
        self._log_run(
            "evict",
            ok=True,
            error_code=None,
            metadata={"requested": len(requested), "removed": len(removed)},
        )
        return removed

    def read_contents(self, paths: Iterable[str]) -> dict[str, str]:
        """Read current text for root-relative paths."""
        output: dict[str, str] = {}
        for relative_path in paths:
            full_path = resolve_relative_path(self._root, relative_path)
            try:
                output[relative_path] = full_path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                raise FilesystemError(str(full_path), f"Cannot read file ({exc.strerror})") from exc
        return output

    def _fingerprint_all(self, paths: tuple[Path, ...]) -> Iterable[FileRecord]:
        workers = self._config.index.workers
        if workers <= 1 or len(paths) <= 1:
            return (fingerprint_file(self._root, path, self._counter) for path in paths)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(
                executor.map(lambda path: fingerprint_file(self._root, path, self._counter), paths)
            )

    def _internal_paths(self) -> tuple[Path, ...]:
        data_dir = self._config.data_dir
        if data_dir.is_relative_to(self._root):
            return (data_dir,)
        return ()

    def _log_run(
        self,
        command: str,
        ok: bool,
        error_code: str | None,
        metadata: dict[str, object],
    ) -> None:
        self._run_log.append(
            RunEvent(
                timestamp=utc_timestamp(),
                command=command,
                ok=ok,
                error_code=error_code,
                metadata=metadata,
            )
        )
