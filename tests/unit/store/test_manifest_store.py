from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from manifest_sync.errors import StoreError
from manifest_sync.index import ManifestEntry, ManifestRow
from manifest_sync.store import ManifestStore, manifest_db_path


def _entry(
    path: str, digest: str = "h1", summary: str = "s1", timestamp: int = 10
) -> ManifestEntry:
    return ManifestEntry(
        path=path,
        token_count=3,
        summary=summary,
        summary_token_count=1,
        hash=digest,
        timestamp=timestamp,
        dependencies=("react", "lodash"),
    )


def test_open_creates_directory_and_files_table(tmp_path: Path) -> None:
    db_path = manifest_db_path(tmp_path / "meta")

    with ManifestStore(db_path) as store:
        assert store.count() == 0

    conn = sqlite3.connect(str(db_path))
    try:
        columns = [row[1] for row in conn.execute("PRAGMA table_info(files)").fetchall()]
    finally:
        conn.close()
    assert columns == [
        "path",
        "tokensCount",
        "summary",
        "summaryTokensCount",
        "hash",
        "timestamp",
        "dependenciesLibs",
    ]


def test_upsert_is_idempotent(tmp_path: Path) -> None:
    with ManifestStore(tmp_path / "m.db") as store:
        store.upsert(_entry("a.js"))
        store.upsert(_entry("a.js"))

        assert store.count() == 1
        assert store.get("a.js") == _entry("a.js")


def test_upsert_replaces_every_column(tmp_path: Path) -> None:
    with ManifestStore(tmp_path / "m.db") as store:
        store.upsert(_entry("a.js"))
        replacement = ManifestEntry(
            path="a.js",
            token_count=9,
            summary="new summary",
            summary_token_count=4,
            hash="h2",
            timestamp=20,
            dependencies=(),
        )
        store.upsert(replacement)

        assert store.get("a.js") == replacement


def test_delete_is_a_noop_for_absent_path(tmp_path: Path) -> None:
    with ManifestStore(tmp_path / "m.db") as store:
        store.upsert(_entry("a.js"))

        assert store.delete("a.js") is True
        assert store.delete("a.js") is False
        assert store.delete("never.js") is False
        assert store.get("a.js") is None


def test_deleted_path_can_be_reinserted(tmp_path: Path) -> None:
    with ManifestStore(tmp_path / "m.db") as store:
        store.upsert(_entry("a.js", digest="h1"))
        store.delete("a.js")
        store.upsert(_entry("a.js", digest="h9"))

        assert store.list_all() == [ManifestRow(path="a.js", hash="h9", timestamp=10)]


def test_list_all_returns_projection_ordered_by_path(tmp_path: Path) -> None:
    with ManifestStore(tmp_path / "m.db") as store:
        store.upsert_many([_entry("b.js", digest="hb", timestamp=2), _entry("a.js", digest="ha")])

        assert store.list_all() == [
            ManifestRow(path="a.js", hash="ha", timestamp=10),
            ManifestRow(path="b.js", hash="hb", timestamp=2),
        ]


def test_entries_persist_across_handles(tmp_path: Path) -> None:
    db_path = tmp_path / "m.db"
    with ManifestStore(db_path) as store:
        store.upsert(_entry("a.js"))

    with ManifestStore(db_path) as store:
        entry = store.get("a.js")

    assert entry is not None
    assert entry.dependencies == ("react", "lodash")


def test_dependencies_are_stored_as_json_text(tmp_path: Path) -> None:
    db_path = tmp_path / "m.db"
    with ManifestStore(db_path) as store:
        store.upsert(_entry("a.js"))

    conn = sqlite3.connect(str(db_path))
    try:
        (raw,) = conn.execute("SELECT dependenciesLibs FROM files").fetchone()
    finally:
        conn.close()
    assert raw == '["react", "lodash"]'


def test_corrupt_dependency_column_raises_store_error(tmp_path: Path) -> None:
    db_path = tmp_path / "m.db"
    with ManifestStore(db_path) as store:
        store.upsert(_entry("a.js"))
    conn = sqlite3.connect(str(db_path))
    with conn:
        conn.execute("UPDATE files SET dependenciesLibs = 'react,lodash'")
    conn.close()

    with ManifestStore(db_path) as store:
        with pytest.raises(StoreError, match="dependenciesLibs"):
            store.get("a.js")


@pytest.mark.parametrize(
    "assignment", ["hash = NULL", "timestamp = NULL", "timestamp = 'yesterday'"]
)
def test_malformed_fingerprint_columns_raise_store_error(tmp_path: Path, assignment: str) -> None:
    db_path = tmp_path / "m.db"
    with ManifestStore(db_path) as store:
        store.upsert(_entry("a.js"))
    conn = sqlite3.connect(str(db_path))
    with conn:
        conn.execute(f"UPDATE files SET {assignment}")
    conn.close()

    with ManifestStore(db_path) as store:
        with pytest.raises(StoreError, match="a.js"):
            store.list_all()


def test_operations_on_closed_store_raise_store_error(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "m.db")

    with pytest.raises(StoreError, match="not open"):
        store.list_all()

    store.open()
    store.close()
    assert store.is_open is False
    with pytest.raises(StoreError) as excinfo:
        store.upsert(_entry("a.js"))
    assert excinfo.value.operation == "upsert"


def test_store_is_closed_when_block_raises(tmp_path: Path) -> None:
    store = ManifestStore(tmp_path / "m.db")

    with pytest.raises(RuntimeError):
        with store:
            raise RuntimeError("boom")

    assert store.is_open is False


def test_invalid_entry_is_rejected_before_write(tmp_path: Path) -> None:
    with ManifestStore(tmp_path / "m.db") as store:
        with pytest.raises(StoreError, match="path"):
            store.upsert(_entry(""))
        assert store.count() == 0


def test_unopenable_database_raises_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file", encoding="utf-8")

    with pytest.raises(StoreError) as excinfo:
        ManifestStore(blocker / "m.db").open()

    assert excinfo.value.operation == "open"


def test_unknown_schema_version_is_rejected(tmp_path: Path) -> None:
    db_path = tmp_path / "m.db"
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA user_version = 42")
    conn.close()

    with pytest.raises(StoreError, match="schema version 42"):
        ManifestStore(db_path).open()
