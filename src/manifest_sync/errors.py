"""Error taxonomy for scanning, fingerprinting, and manifest persistence."""

from __future__ import annotations


class ManifestSyncError(Exception):
    """Base class for failures surfaced by the indexing core."""

    code = "MANIFEST_SYNC_ERROR"


class FilesystemError(ManifestSyncError):
    """Raised when a path cannot be listed, statted, or read."""

    code = "FILESYSTEM_ERROR"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


class StoreError(ManifestSyncError):
    """Raised when a manifest store operation fails."""

    code = "STORE_ERROR"

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Manifest store {operation} failed: {reason}")
        self.operation = operation
        self.reason = reason
