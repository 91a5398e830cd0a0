"""Tests for the daily JSONL probe log and its queued front end."""

from __future__ import annotations

import json
import os
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from exceptions.monitoring import LogWriteError
from monitoring.log_writer import ProbeLogWriter, QueuedLogWriter


def _read_lines(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_append_writes_one_json_line(tmp_path, make_outcome) -> None:
    writer = ProbeLogWriter(tmp_path / "logs")

    writer.append(make_outcome(latency_ms=12.5, sequence=3))
    writer.close()

    path = tmp_path / "logs" / "ping-2024-05-01.jsonl"
    assert _read_lines(path) == [{
        "timestamp": "2024-05-01T12:00:00Z",
        "target": "1.1.1.1",
        "target_label": "Cloudflare",
        "latency_ms": 12.5,
        "success": True,
        "sequence": 3,
        "error": None,
    }]


def test_failed_outcome_has_null_latency(tmp_path, make_outcome) -> None:
    writer = ProbeLogWriter(tmp_path)

    writer.append(make_outcome(error="resolution failed"))
    writer.close()

    (entry,) = _read_lines(tmp_path / "ping-2024-05-01.jsonl")
    assert entry["latency_ms"] is None
    assert entry["success"] is False
    assert entry["error"] == "resolution failed"


def test_entry_is_on_disk_when_append_returns(tmp_path, make_outcome) -> None:
    writer = ProbeLogWriter(tmp_path)

    writer.append(make_outcome())

    # Read through a separate handle while the writer's file is still open
    assert len(_read_lines(writer.current_path)) == 1
    writer.close()


def test_fsync_is_called_per_append(tmp_path, make_outcome, monkeypatch) -> None:
    calls = []
    real_fsync = os.fsync
    monkeypatch.setattr(os, "fsync", lambda fd: calls.append(fd) or real_fsync(fd))
    writer = ProbeLogWriter(tmp_path)

    writer.append(make_outcome(sequence=1))
    writer.append(make_outcome(sequence=2))

    assert len(calls) == 2
    writer.close()


def test_rotation_across_utc_midnight(tmp_path, make_outcome) -> None:
    writer = ProbeLogWriter(tmp_path)
    before = datetime(2024, 5, 1, 23, 59, 59, 500000, tzinfo=timezone.utc)
    after = datetime(2024, 5, 2, 0, 0, 0, 250000, tzinfo=timezone.utc)

    writer.append(make_outcome(timestamp=before, sequence=1))
    writer.append(make_outcome(timestamp=after, sequence=2))
    writer.close()

    day1 = _read_lines(tmp_path / "ping-2024-05-01.jsonl")
    day2 = _read_lines(tmp_path / "ping-2024-05-02.jsonl")
    assert [e["sequence"] for e in day1] == [1]
    assert [e["sequence"] for e in day2] == [2]
    assert all(e["timestamp"].startswith("2024-05-01") for e in day1)
    assert all(e["timestamp"].startswith("2024-05-02") for e in day2)
    assert [p.name for p in writer.list_log_files()] == ["ping-2024-05-01.jsonl", "ping-2024-05-02.jsonl"]


def test_file_date_uses_utc_not_local_offset(tmp_path, make_outcome) -> None:
    from datetime import timedelta

    tz = timezone(timedelta(hours=-5))
    # 21:00 at UTC-5 is 02:00 UTC the next day
    local = datetime(2024, 5, 1, 21, 0, tzinfo=tz)
    writer = ProbeLogWriter(tmp_path)

    writer.append(make_outcome(timestamp=local))
    writer.close()

    assert (tmp_path / "ping-2024-05-02.jsonl").exists()


def test_reopening_appends_instead_of_truncating(tmp_path, make_outcome) -> None:
    first = ProbeLogWriter(tmp_path)
    first.append(make_outcome(sequence=1))
    first.close()

    second = ProbeLogWriter(tmp_path)
    second.append(make_outcome(sequence=2))
    second.close()

    assert [e["sequence"] for e in _read_lines(tmp_path / "ping-2024-05-01.jsonl")] == [1, 2]


def test_unwritable_directory_raises_log_write_error(tmp_path, make_outcome) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    writer = ProbeLogWriter(blocker / "logs")

    with pytest.raises(LogWriteError) as info:
        writer.append(make_outcome())

    assert "ping-2024-05-01.jsonl" in info.value.details["path"]
    assert writer.current_path is None


def test_path_for_date(tmp_path) -> None:
    writer = ProbeLogWriter(tmp_path)
    assert writer.path_for_date(date(2024, 1, 9)).name == "ping-2024-01-09.jsonl"


# ----------------------------------------------------------------------------
# Queued writer
# ----------------------------------------------------------------------------

async def test_queued_writer_preserves_submission_order(tmp_path, make_outcome) -> None:
    queued = QueuedLogWriter(ProbeLogWriter(tmp_path))
    await queued.start()

    for seq in range(1, 21):
        assert queued.submit(make_outcome(sequence=seq)) is True
    await queued.stop()
    queued.writer.close()

    entries = _read_lines(tmp_path / "ping-2024-05-01.jsonl")
    assert [e["sequence"] for e in entries] == list(range(1, 21))


async def test_queued_writer_reports_failures_and_keeps_going(tmp_path, make_outcome) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    errors = []
    queued = QueuedLogWriter(ProbeLogWriter(blocker / "logs"), on_error=errors.append)
    await queued.start()

    queued.submit(make_outcome(sequence=1))
    queued.submit(make_outcome(sequence=2))
    await queued.flush()

    assert queued.failures == 2
    assert len(errors) == 2
    assert all(isinstance(e, LogWriteError) for e in errors)
    await queued.stop()


async def test_stop_drains_outcomes_submitted_before_start(tmp_path, make_outcome) -> None:
    queued = QueuedLogWriter(ProbeLogWriter(tmp_path))

    queued.submit(make_outcome(sequence=1))
    await queued.stop()
    queued.writer.close()

    assert len(_read_lines(tmp_path / "ping-2024-05-01.jsonl")) == 1


async def test_bounded_queue_drops_when_full(tmp_path, make_outcome) -> None:
    queued = QueuedLogWriter(ProbeLogWriter(tmp_path), maxsize=1)

    assert queued.submit(make_outcome(sequence=1)) is True
    assert queued.submit(make_outcome(sequence=2)) is False
    await queued.stop()
    queued.writer.close()
