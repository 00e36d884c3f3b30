"""Deterministic directory traversal under ignore and extension rules."""

from __future__ import annotations

import logging
import os
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from pathlib import Path

from manifest_sync.errors import FilesystemError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ScanResult:
    """Absolute file paths plus traversal counters for one scan."""

    paths: tuple[Path, ...]
    directories_scanned: int
    ignored_directories: int
    excluded_by_extension: int


def has_accepted_extension(name: str, include_extensions: Collection[str]) -> bool:
    """Return True when the final suffix of ``name`` is accepted (case-sensitive)."""
    suffix = Path(name).suffix
    return bool(suffix) and suffix in include_extensions


def scan_tree(
    root: Path,
    ignore_dirs: Iterable[str],
    include_extensions: Iterable[str],
    exclude_paths: Iterable[Path] = (),
) -> ScanResult:
    """Walk ``root`` depth-first and return accepted files.

    Entries are visited in name order within each directory, so output is stable for
    a given tree. Directories named exactly like an ignore entry are pruned at any
    depth, as are directories listed in ``exclude_paths``. Symlinked directories are
    not descended; symlinks to files are treated as files.

    Raises:
        FilesystemError: when a directory cannot be listed or an entry cannot be
            statted.
    """
    resolved_root = root.resolve()
    if not resolved_root.is_dir():
        raise FilesystemError(str(resolved_root), "Scan root is not a directory")
    ignored = set(ignore_dirs)
    extensions = set(include_extensions)
    excluded = {path.resolve() for path in exclude_paths}

    paths: list[Path] = []
    directories_scanned = 0
    ignored_directories = 0
    excluded_by_extension = 0
    stack: list[Path] = [resolved_root]
    while stack:
        current = stack.pop()
        logger.debug("Scanning directory: %s", current)
        directories_scanned += 1
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError as exc:
            raise FilesystemError(str(current), f"Cannot list directory ({exc.strerror})") from exc

        subdirectories: list[Path] = []
        for entry in ordered_entries:
            full_path = Path(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file(follow_symlinks=True)
            except OSError as exc:
                raise FilesystemError(
                    str(full_path), f"Cannot stat entry ({exc.strerror})"
                ) from exc
            if is_dir:
                if entry.name in ignored or full_path in excluded:
                    ignored_directories += 1
                    continue
                subdirectories.append(full_path)
                continue
            if not is_file:
                continue
            if not has_accepted_extension(entry.name, extensions):
                excluded_by_extension += 1
                continue
            paths.append(full_path)
        # Pushed in reverse so the stack pops subdirectories in name order.
        stack.extend(reversed(subdirectories))

    return ScanResult(
        paths=tuple(paths),
        directories_scanned=directories_scanned,
        ignored_directories=ignored_directories,
        excluded_by_extension=excluded_by_extension,
    )
