"""Tests for domain models and settings."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from config.constants import TransportType
from config.settings import MonitoringSettings, Settings
from monitoring.models import PingTarget, ProbeOutcome, RunningStatistics, new_target_id


def test_target_label_defaults_to_address() -> None:
    assert PingTarget(id="a", address="1.1.1.1").label == "1.1.1.1"
    assert PingTarget(id="a", address="1.1.1.1", label="DNS").label == "DNS"


def test_new_target_ids_are_unique() -> None:
    assert len({new_target_id() for _ in range(100)}) == 100


def test_outcome_invariants(target) -> None:
    ok = ProbeOutcome.succeeded(target, 12)
    failed = ProbeOutcome.failed(target, "unreachable")

    assert ok.success and ok.latency_ms == 12.0 and ok.error is None
    assert not failed.success and failed.latency_ms is None and failed.error == "unreachable"


def test_log_entry_schema(target) -> None:
    ts = datetime(2024, 5, 1, 8, 30, 0, 123000, tzinfo=timezone.utc)
    entry = ProbeOutcome.succeeded(target, 9.5, timestamp=ts, sequence=4).to_log_entry()

    assert entry == {
        "timestamp": "2024-05-01T08:30:00.123000Z",
        "target": "1.1.1.1",
        "target_label": "Cloudflare",
        "latency_ms": 9.5,
        "success": True,
        "sequence": 4,
        "error": None,
    }


def test_packet_loss_bounds() -> None:
    stats = RunningStatistics("a", "1.1.1.1", "x")
    assert stats.packet_loss_percent == 0.0

    stats.total_count = 4
    stats.failure_count = 4
    assert stats.packet_loss_percent == 100.0


def test_monitoring_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("MONITOR_PING_INTERVAL_MS", "250")
    monkeypatch.setenv("MONITOR_TRANSPORT", "TCP")

    settings = MonitoringSettings()

    assert settings.ping_interval_ms == 250
    assert settings.transport is TransportType.TCP


def test_interval_setting_has_minimum() -> None:
    with pytest.raises(ValueError):
        MonitoringSettings(ping_interval_ms=50)


def test_testing_environment_disables_autostart() -> None:
    settings = Settings(environment="testing")

    assert settings.is_testing
    assert settings.monitoring.autostart is False
    assert settings.logging.file_enabled is False
