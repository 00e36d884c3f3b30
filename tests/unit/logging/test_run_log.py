from __future__ import annotations

import json
from pathlib import Path

import pytest

from manifest_sync.errors import FilesystemError
from manifest_sync.logging import JsonlRunLogger, RunEvent, clamp_limit


def _event(timestamp: str, command: str = "refresh") -> RunEvent:
    return RunEvent(
        timestamp=timestamp,
        command=command,
        ok=True,
        error_code=None,
        metadata={"added": 1},
    )


def test_run_log_writes_jsonl_schema(tmp_path: Path) -> None:
    run_log = JsonlRunLogger.in_data_dir(tmp_path / "meta")
    run_log.append(_event("2026-01-01T00:00:00.000Z"))

    lines = run_log.path.read_text(encoding="utf-8").splitlines()
    event = json.loads(lines[-1])

    assert set(event.keys()) == {"command", "error_code", "metadata", "ok", "timestamp"}
    assert event["metadata"] == {"added": 1}


def test_run_log_read_filters_and_limits(tmp_path: Path) -> None:
    run_log = JsonlRunLogger(tmp_path / "runs.jsonl")
    for day in ("01", "02", "03"):
        run_log.append(_event(f"2026-01-{day}T00:00:00.000Z"))
    with run_log.path.open("a", encoding="utf-8") as handle:
        handle.write("not-json\n")

    recent = run_log.read(since="2026-01-02T00:00:00.000Z")
    last = run_log.read(limit=1)

    assert [entry["timestamp"] for entry in recent] == [
        "2026-01-02T00:00:00.000Z",
        "2026-01-03T00:00:00.000Z",
    ]
    assert [entry["timestamp"] for entry in last] == ["2026-01-03T00:00:00.000Z"]
    assert run_log.read(limit=0) == []


def test_missing_run_log_reads_empty(tmp_path: Path) -> None:
    assert JsonlRunLogger(tmp_path / "absent.jsonl").read() == []


def test_run_log_read_filters_by_command(tmp_path: Path) -> None:
    run_log = JsonlRunLogger(tmp_path / "runs.jsonl")
    run_log.append(_event("2026-01-01T00:00:00.000Z"))
    run_log.append(_event("2026-01-02T00:00:00.000Z", command="evict"))
    run_log.append(_event("2026-01-03T00:00:00.000Z"))

    evictions = run_log.read(command="evict")
    refreshes = run_log.read(command="refresh", limit=1)

    assert [entry["timestamp"] for entry in evictions] == ["2026-01-02T00:00:00.000Z"]
    assert [entry["timestamp"] for entry in refreshes] == ["2026-01-03T00:00:00.000Z"]


def test_clamp_limit_bounds_requested_count() -> None:
    assert clamp_limit(None) == 50
    assert clamp_limit(0) == 1
    assert clamp_limit(10) == 10
    assert clamp_limit(10_000) == 500


def test_unwritable_run_log_raises_filesystem_error(tmp_path: Path) -> None:
    blocker = tmp_path / "meta"
    blocker.write_text("not a directory", encoding="utf-8")
    run_log = JsonlRunLogger.in_data_dir(blocker)

    with pytest.raises(FilesystemError, match="run log"):
        run_log.append(_event("2026-01-01T00:00:00.000Z"))


def test_unreadable_run_log_raises_filesystem_error(tmp_path: Path) -> None:
    (tmp_path / "runs.jsonl").mkdir()

    with pytest.raises(FilesystemError, match="run log"):
        JsonlRunLogger(tmp_path / "runs.jsonl").read()
