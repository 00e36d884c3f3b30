"""Manifest persistence package."""

from .manifest import (
    DB_FILE_NAME,
    MANIFEST_SCHEMA_VERSION,
    ManifestStore,
    decode_dependencies,
    encode_dependencies,
    manifest_db_path,
)

__all__ = [
    "DB_FILE_NAME",
    "MANIFEST_SCHEMA_VERSION",
    "ManifestStore",
    "decode_dependencies",
    "encode_dependencies",
    "manifest_db_path",
]
