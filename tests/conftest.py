"""Shared fixtures for the ping monitor test suite.

Probes never touch the network: a scripted transport replays latencies
and probe exceptions per address. Every engine writes its probe log and
config into the test's temporary directory.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

import pytest

from config.settings import ApiSettings, MonitoringSettings, Settings, StorageSettings
from monitoring.engine import PingMonitorEngine
from monitoring.models import PingTarget, ProbeOutcome
from monitoring.prober import ProbeTransport


Step = Union[float, int, BaseException]


class ScriptedTransport(ProbeTransport):
    """Replays a per-address script of latencies (ms) or exceptions.

    Addresses without a script (or with an exhausted one) answer with
    ``default``. ``delay`` simulates network time before each answer.
    """

    name = "scripted"

    def __init__(
        self,
        script: Optional[Dict[str, Sequence[Step]]] = None,
        default: Step = 10.0,
        delay: float = 0.0,
    ) -> None:
        self.script: Dict[str, List[Step]] = {k: list(v) for k, v in (script or {}).items()}
        self.default = default
        self.delay = delay
        self.calls: List[str] = []

    async def measure(self, address: str, timeout: float) -> float:
        self.calls.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        steps = self.script.get(address)
        step = steps.pop(0) if steps else self.default
        if isinstance(step, BaseException):
            raise step
        return float(step)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Testing settings rooted in the test's temporary directory."""

    return Settings(
        environment="testing",
        monitoring=MonitoringSettings(
            ping_interval_ms=1000,
            timeout_ms=1000,
            seed_default_targets=False,
            resolve_hostnames=False,
        ),
        storage=StorageSettings(
            data_dir=tmp_path,
            log_dir=tmp_path / "logs",
            config_file=tmp_path / "config.json",
        ),
        api=ApiSettings(enabled=False),
    )


@pytest.fixture()
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture()
async def engine(settings: Settings, transport: ScriptedTransport):
    """An engine with a running log writer, closed after the test."""

    async with PingMonitorEngine(settings, transport=transport) as eng:
        yield eng


@pytest.fixture()
def target() -> PingTarget:
    return PingTarget(id="t1", address="1.1.1.1", label="Cloudflare")


@pytest.fixture()
def make_outcome(target: PingTarget) -> Callable[..., ProbeOutcome]:
    """Factory for outcomes of ``target`` at a fixed UTC timestamp."""

    def _make(
        latency_ms: Optional[float] = 10.0,
        error: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        sequence: int = 1,
        for_target: Optional[PingTarget] = None,
    ) -> ProbeOutcome:
        tgt = for_target or target
        ts = timestamp or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        if error is not None or latency_ms is None:
            return ProbeOutcome.failed(tgt, error or "timeout", timestamp=ts, sequence=sequence)
        return ProbeOutcome.succeeded(tgt, latency_ms, timestamp=ts, sequence=sequence)

    return _make
