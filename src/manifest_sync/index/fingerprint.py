"""Content fingerprinting for scanned files."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

from manifest_sync.errors import FilesystemError
from manifest_sync.index.models import FileRecord
from manifest_sync.index.tokens import TokenCounter

logger = logging.getLogger(__name__)


def hash_content(data: bytes) -> str:
    """Return the SHA-256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def relative_posix_path(root: Path, full_path: Path) -> str:
    """Return ``full_path`` relative to ``root`` with forward slashes.

    Both sides are compared lexically first, then with directory symlinks resolved.
    The file name itself is never resolved, so a symlinked file keeps its own path.
    """
    absolute = Path(os.path.abspath(full_path))
    candidates = (
        (absolute, Path(os.path.abspath(root))),
        (absolute.parent.resolve() / absolute.name, root.resolve()),
    )
    for path, base in candidates:
        if path.is_relative_to(base):
            return path.relative_to(base).as_posix()
    raise FilesystemError(str(full_path), "Path is outside the scan root")


def resolve_relative_path(root: Path, relative_path: str) -> Path:
    """Resolve a manifest path against ``root``, rejecting escapes."""
    normalized = relative_path.replace("\\", "/")
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts or normalized.startswith("/") or any(part == ".." for part in parts):
        raise FilesystemError(relative_path, "Not a root-relative path")
    return root.resolve().joinpath(*parts)


def fingerprint_file(root: Path, full_path: Path, counter: TokenCounter) -> FileRecord:
    """Read ``full_path`` and build its FileRecord.

    Content is hashed from the raw bytes and decoded as UTF-8 with replacement for
    token counting. Empty files produce a record with empty content.

    Raises:
        FilesystemError: when the file cannot be statted or read.
    """
    relative_path = relative_posix_path(root, full_path)
    try:
        stat = full_path.stat()
        data = full_path.read_bytes()
    except OSError as exc:
        raise FilesystemError(str(full_path), f"Cannot read file ({exc.strerror})") from exc

    logger.debug("Parsing file: %s", relative_path)
    content = data.decode("utf-8", errors="replace")
    return FileRecord(
        path=relative_path,
        content=content,
        token_count=counter.count(content),
        content_hash=hash_content(data),
        modified_at=stat.st_mtime_ns // 1_000_000,
    )
