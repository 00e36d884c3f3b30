"""Scanning, fingerprinting, and reconciliation package."""

from .fingerprint import fingerprint_file, hash_content, relative_posix_path
from .models import ChangeSet, FileRecord, ManifestEntry, ManifestRow
from .reconcile import reconcile, record_map
from .scanner import ScanResult, has_accepted_extension, scan_tree
from .tokens import TokenCounter, heuristic_tokens

__all__ = [
    "ChangeSet",
    "FileRecord",
    "ManifestEntry",
    "ManifestRow",
    "ScanResult",
    "TokenCounter",
    "fingerprint_file",
    "has_accepted_extension",
    "hash_content",
    "heuristic_tokens",
    "reconcile",
    "record_map",
    "relative_posix_path",
    "scan_tree",
]
