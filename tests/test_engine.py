"""Tests for the engine command surface and config persistence."""

from __future__ import annotations

import json

import pytest

from config.constants import EventType, SchedulerState
from config.settings import MonitoringSettings
from exceptions.base import ConfigPersistError
from exceptions.monitoring import AlreadyRunningError
from exceptions.registry import DuplicateTargetError, NotFoundError
from exceptions.validation import InvalidAddressError, InvalidIntervalError
from monitoring.config_store import ConfigStore
from monitoring.engine import PingMonitorEngine
from monitoring.models import AppConfig, PingTarget
from monitoring.prober import SubprocessPingTransport, TcpConnectTransport


async def test_seeds_default_targets_when_no_config(settings, transport) -> None:
    seeded = settings.model_copy(
        update={"monitoring": MonitoringSettings(seed_default_targets=True)}
    )

    async with PingMonitorEngine(seeded, transport=transport) as engine:
        assert [t.address for t in engine.list_targets()] == ["1.1.1.1", "8.8.8.8"]
        assert set(engine.get_statistics()) == {t.id for t in engine.list_targets()}
        with pytest.raises(DuplicateTargetError):
            engine.add_target("1.1.1.1", "Cloudflare")


async def test_seeded_defaults_replaced_by_stored_config(settings, transport) -> None:
    seeded = settings.model_copy(
        update={"monitoring": MonitoringSettings(seed_default_targets=True)}
    )
    ConfigStore(settings.storage.config_file).save(AppConfig())

    async with PingMonitorEngine(seeded, transport=transport) as engine:
        assert engine.list_targets() == []
        assert engine.add_target("1.1.1.1", "Cloudflare").label == "Cloudflare"


async def test_empty_when_seeding_disabled(engine) -> None:
    assert engine.list_targets() == []
    assert engine.get_state() is SchedulerState.IDLE


async def test_add_creates_statistics_record(engine) -> None:
    target = engine.add_target("1.1.1.1", "Cloudflare")

    stats = engine.get_statistics(target.id)
    assert stats.total_count == 0
    assert stats.target_label == "Cloudflare"

    with pytest.raises(DuplicateTargetError):
        engine.add_target("1.1.1.1")
    with pytest.raises(InvalidAddressError):
        engine.add_target("")


async def test_remove_then_readd_yields_fresh_record(engine) -> None:
    first = engine.add_target("1.1.1.1")
    await engine.scheduler.run_tick()
    assert engine.get_statistics(first.id).total_count == 1

    engine.remove_target(first.id)
    with pytest.raises(NotFoundError):
        engine.get_statistics(first.id)
    assert engine.publisher.recent(first.id) == []

    second = engine.add_target("1.1.1.1")
    assert second.id != first.id
    assert engine.get_statistics(second.id).total_count == 0

    await engine.scheduler.run_tick()
    assert engine.get_recent_outcomes(second.id)[0].sequence == 1


async def test_update_refreshes_statistics_label(engine) -> None:
    target = engine.add_target("1.1.1.1")

    engine.update_target(target.id, label="Primary")

    assert engine.get_statistics(target.id).target_label == "Primary"
    with pytest.raises(NotFoundError):
        engine.update_target("missing", label="x")


async def test_toggle_and_list(engine) -> None:
    a = engine.add_target("1.1.1.1")
    b = engine.add_target("8.8.8.8")

    assert engine.toggle_target(a.id).enabled is False
    assert [t.id for t in engine.list_targets()] == [a.id, b.id]
    with pytest.raises(NotFoundError):
        engine.toggle_target("missing")


async def test_set_interval_validation(engine) -> None:
    with pytest.raises(InvalidIntervalError):
        engine.set_interval(50)

    engine.set_interval(250)
    assert engine.get_config().ping_interval_ms == 250


async def test_reset_statistics(engine) -> None:
    target = engine.add_target("1.1.1.1")
    await engine.scheduler.run_tick()

    engine.reset_statistics(target.id)
    assert engine.get_statistics(target.id).total_count == 0

    with pytest.raises(NotFoundError):
        engine.reset_statistics("missing")


async def test_start_stop_and_logging(engine, settings) -> None:
    engine.add_target("1.1.1.1")
    events = engine.subscribe()

    await engine.start()
    with pytest.raises(AlreadyRunningError):
        await engine.start()
    assert engine.get_state() is SchedulerState.RUNNING
    await engine.stop()
    assert engine.get_state() is SchedulerState.IDLE

    files = engine.list_log_files()
    assert len(files) == 1
    assert files[0].parent == settings.storage.log_dir
    assert engine.get_log_path() == settings.storage.log_dir
    lines = files[0].read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["sequence"] == 1

    assert events.get_nowait().type is EventType.PROBE_OUTCOME


async def test_save_and_reload_config(settings, transport) -> None:
    async with PingMonitorEngine(settings, transport=transport) as engine:
        target = engine.add_target("example.com", "Example")
        engine.set_interval(500)
        config = engine.get_config()
        config.timeout_ms = 2000
        engine.save_config(config)

    data = json.loads(settings.storage.config_file.read_text(encoding="utf-8"))
    assert data["ping_interval_ms"] == 500
    assert data["timeout_ms"] == 2000
    assert data["targets"][0]["address"] == "example.com"

    async with PingMonitorEngine(settings, transport=transport) as reloaded:
        assert [t.id for t in reloaded.list_targets()] == [target.id]
        assert reloaded.scheduler.interval_ms == 500
        assert reloaded.scheduler.timeout_ms == 2000


async def test_save_config_replaces_targets_and_prunes_statistics(engine) -> None:
    old = engine.add_target("1.1.1.1")
    config = AppConfig(
        targets=[PingTarget(id="keep-me", address="9.9.9.9", label="Quad9")],
        ping_interval_ms=1000,
        timeout_ms=1000,
        max_history_size=10,
    )

    engine.save_config(config)

    assert [t.id for t in engine.list_targets()] == ["keep-me"]
    assert set(engine.get_statistics()) == {"keep-me"}
    assert engine.publisher.max_history_size == 10
    with pytest.raises(NotFoundError):
        engine.get_statistics(old.id)


async def test_save_config_persist_failure_keeps_applied_state(settings, transport, tmp_path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    store = ConfigStore(blocker / "config.json")

    async with PingMonitorEngine(settings, transport=transport, config_store=store) as engine:
        config = engine.get_config()
        config.ping_interval_ms = 750

        with pytest.raises(ConfigPersistError):
            engine.save_config(config)

        assert engine.scheduler.interval_ms == 750


async def test_corrupt_config_falls_back_to_defaults(settings, transport) -> None:
    settings.storage.config_file.write_text("{not json", encoding="utf-8")

    async with PingMonitorEngine(settings, transport=transport) as engine:
        assert engine.list_targets() == []
        assert engine.scheduler.interval_ms == settings.monitoring.ping_interval_ms


@pytest.mark.parametrize(
    "target",
    [
        {"id": "a", "address": "bad host!", "label": "Broken", "enabled": True},
        {"id": "a", "address": "1.1.1.1", "label": "x" * 500, "enabled": True},
    ],
)
async def test_config_with_invalid_target_falls_back_to_defaults(settings, transport, target) -> None:
    settings.storage.config_file.write_text(
        json.dumps({"targets": [target], "ping_interval_ms": 750}), encoding="utf-8"
    )

    async with PingMonitorEngine(settings, transport=transport) as engine:
        assert engine.list_targets() == []
        assert engine.scheduler.interval_ms == settings.monitoring.ping_interval_ms


async def test_undecodable_config_falls_back_to_defaults(settings, transport) -> None:
    settings.storage.config_file.write_bytes(b"\xff\xfe{}")

    async with PingMonitorEngine(settings, transport=transport) as engine:
        assert engine.list_targets() == []


async def test_presets_and_health(engine) -> None:
    presets = engine.get_preset_targets()
    assert [p.address for p in presets][:2] == ["1.1.1.1", "8.8.8.8"]
    assert len({p.id for p in presets}) == len(presets)

    health = engine.get_health()
    assert health["state"] == "idle"
    assert health["targets"] == 0
    assert health["log_writer"]["failures"] == 0


async def test_close_is_idempotent_and_ends_subscriptions(settings, transport) -> None:
    engine = PingMonitorEngine(settings, transport=transport)
    sub = engine.subscribe()

    await engine.close()
    await engine.close()

    assert sub.closed
    assert await sub.get() is None


def test_transport_selected_from_settings(settings) -> None:
    tcp = settings.model_copy(update={"monitoring": MonitoringSettings(transport="tcp", tcp_port=8080)})
    icmp = settings.model_copy(update={"monitoring": MonitoringSettings(transport="icmp")})

    tcp_engine = PingMonitorEngine(tcp)
    icmp_engine = PingMonitorEngine(icmp)

    assert isinstance(tcp_engine.executor.transport, TcpConnectTransport)
    assert tcp_engine.executor.transport.port == 8080
    assert isinstance(icmp_engine.executor.transport, SubprocessPingTransport)
