"""SQLite-backed manifest of processed files."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from pathlib import Path
from types import TracebackType

from manifest_sync.errors import StoreError
from manifest_sync.index.models import ManifestEntry, ManifestRow

logger = logging.getLogger(__name__)

DB_FILE_NAME = "manifest.db"
MANIFEST_SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS files (
    path TEXT PRIMARY KEY,
    tokensCount INTEGER,
    summary TEXT,
    summaryTokensCount INTEGER,
    hash TEXT,
    timestamp INTEGER,
    dependenciesLibs TEXT
);
"""

_UPSERT_SQL = """
INSERT OR REPLACE INTO files (
    path,
    tokensCount,
    summary,
    summaryTokensCount,
    hash,
    timestamp,
    dependenciesLibs)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""


def manifest_db_path(data_dir: Path) -> Path:
    """Return the manifest database location inside a data directory."""
    return data_dir / DB_FILE_NAME


def encode_dependencies(dependencies: Iterable[str]) -> str:
    return json.dumps(list(dependencies))


def decode_dependencies(raw: object) -> tuple[str, ...]:
    if raw is None or raw == "":
        return ()
    if not isinstance(raw, str):
        raise StoreError("read", "dependenciesLibs column is not text")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoreError("read", f"dependenciesLibs is not valid JSON ({exc.msg})") from exc
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise StoreError("read", "dependenciesLibs must be a JSON list of strings")
    return tuple(payload)


class ManifestStore:
    """Single-table manifest keyed by relative path.

    One handle is meant to be opened per run and closed on every exit path, either
    explicitly or by using the store as a context manager. Each operation commits as
    its own transaction; nothing spans several operations.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> ManifestStore:
        """Open the database, creating the directory and table when missing."""
        if self._conn is not None:
            return self
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path))
        except (OSError, sqlite3.Error) as exc:
            raise StoreError("open", str(exc)) from exc
        try:
            self._initialize(conn)
        except sqlite3.Error as exc:
            conn.close()
            raise StoreError("open", str(exc)) from exc
        except StoreError:
            conn.close()
            raise
        self._conn = conn
        logger.debug("Connected to manifest database: %s", self._db_path)
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        conn = self._conn
        self._conn = None
        try:
            conn.close()
        except sqlite3.Error as exc:
            raise StoreError("close", str(exc)) from exc

    def __enter__(self) -> ManifestStore:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def upsert(self, entry: ManifestEntry) -> None:
        """Insert or fully replace the row for ``entry.path``."""
        self.upsert_many([entry])

    def upsert_many(self, entries: Iterable[ManifestEntry]) -> int:
        """Fully replace rows for each entry within one transaction."""
        rows = [_entry_params(entry) for entry in entries]
        conn = self._require_conn("upsert")
        try:
            with conn:
                conn.executemany(_UPSERT_SQL, rows)
        except sqlite3.Error as exc:
            raise StoreError("upsert", str(exc)) from exc
        for row in rows:
            logger.debug("Upserted manifest entry: %s", row[0])
        return len(rows)

    def delete(self, path: str) -> bool:
        """Delete the row at ``path``; returns False when it was absent."""
        conn = self._require_conn("delete")
        try:
            with conn:
                cursor = conn.execute("DELETE FROM files WHERE path = ?", (path,))
        except sqlite3.Error as exc:
            raise StoreError("delete", str(exc)) from exc
        removed = cursor.rowcount > 0
        if removed:
            logger.debug("Deleted manifest entry: %s", path)
        return removed

    def list_all(self) -> list[ManifestRow]:
        """Return the path/hash/timestamp projection of every entry."""
        conn = self._require_conn("list")
        try:
            rows = conn.execute(
                "SELECT path, hash, timestamp FROM files ORDER BY path"
            ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError("list", str(exc)) from exc
        output: list[ManifestRow] = []
        for path, stored_hash, timestamp in rows:
            if not isinstance(stored_hash, str) or not isinstance(timestamp, int):
                raise StoreError("list", f"malformed hash or timestamp for {path!r}")
            output.append(ManifestRow(path=path, hash=stored_hash, timestamp=timestamp))
        return output

    def get(self, path: str) -> ManifestEntry | None:
        """Return the full entry at ``path``, if any."""
        conn = self._require_conn("read")
        try:
            row = conn.execute(
                "SELECT path, tokensCount, summary, summaryTokensCount, hash, timestamp, "
                "dependenciesLibs FROM files WHERE path = ?",
                (path,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError("read", str(exc)) from exc
        if row is None:
            return None
        return ManifestEntry(
            path=row[0],
            token_count=row[1] or 0,
            summary=row[2] or "",
            summary_token_count=row[3] or 0,
            hash=row[4] or "",
            timestamp=row[5] or 0,
            dependencies=decode_dependencies(row[6]),
        )

    def count(self) -> int:
        conn = self._require_conn("count")
        try:
            (total,) = conn.execute("SELECT COUNT(*) FROM files").fetchone()
        except sqlite3.Error as exc:
            raise StoreError("count", str(exc)) from exc
        return int(total)

    def _require_conn(self, operation: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(operation, "store is not open")
        return self._conn

    @staticmethod
    def _initialize(conn: sqlite3.Connection) -> None:
        (version,) = conn.execute("PRAGMA user_version").fetchone()
        if version not in (0, MANIFEST_SCHEMA_VERSION):
            raise StoreError(
                "open",
                f"unsupported manifest schema version {version} "
                f"(expected {MANIFEST_SCHEMA_VERSION})",
            )
        with conn:
            conn.executescript(SCHEMA_SQL)
            conn.execute(f"PRAGMA user_version = {MANIFEST_SCHEMA_VERSION}")


def _entry_params(entry: ManifestEntry) -> tuple[object, ...]:
    if not entry.path:
        raise StoreError("upsert", "entry path must not be empty")
    if entry.token_count < 0 or entry.summary_token_count < 0:
        raise StoreError("upsert", f"token counts must be non-negative for {entry.path}")
    return (
        entry.path,
        entry.token_count,
        entry.summary,
        entry.summary_token_count,
        entry.hash,
        entry.timestamp,
        encode_dependencies(entry.dependencies),
    )
