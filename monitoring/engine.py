"""
============================================================================
PING MONITOR - ENGINE
============================================================================
The context object that owns every component and exposes the command
surface used by the control API (and by anything embedding the monitor).

    PingMonitorEngine
    ├── TargetRegistry          targets
    ├── StatisticsAggregator    per-target running statistics
    ├── EventPublisher          subscribers + recent-outcome history
    ├── QueuedLogWriter         daily JSONL probe log
    ├── ProbeExecutor           transport (+ optional resolver)
    ├── ProbeScheduler          ticks
    └── ConfigStore             persisted AppConfig

Usage
-----
    async with PingMonitorEngine(settings) as engine:
        target = engine.add_target("1.1.1.1", "Cloudflare")
        await engine.start()
        async for event in engine.subscribe():
            ...

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from config.constants import DEFAULT_TARGETS, PRESET_TARGETS, SchedulerState, TransportType
from config.settings import MonitoringSettings, Settings, get_settings
from exceptions.base import ConfigPersistError
from exceptions.registry import NotFoundError
from exceptions.validation import ValidationException
from monitoring.config_store import ConfigStore
from monitoring.events import EventPublisher, Subscription
from monitoring.log_writer import ProbeLogWriter, QueuedLogWriter
from monitoring.models import AppConfig, PingTarget, ProbeOutcome, RunningStatistics, new_target_id
from monitoring.prober import (
    HostnameResolver,
    ProbeExecutor,
    ProbeTransport,
    SubprocessPingTransport,
    TcpConnectTransport,
)
from monitoring.registry import TargetRegistry
from monitoring.scheduler import ProbeScheduler
from monitoring.statistics import StatisticsAggregator
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Engine")


def build_transport(settings: MonitoringSettings) -> ProbeTransport:
    """Transport selected by MONITOR_TRANSPORT."""
    if settings.transport == TransportType.TCP:
        return TcpConnectTransport(port=settings.tcp_port)
    return SubprocessPingTransport()


class PingMonitorEngine:
    """
    Owns the monitoring components and implements the command surface.

    Parameters
    ----------
    settings : Settings | None
        Application settings; ``get_settings()`` when omitted.
    transport : ProbeTransport | None
        Overrides the transport chosen from settings (tests inject fakes).
    config_store : ConfigStore | None
        Overrides the store at ``settings.storage.config_file``.
    log_dir : Path | str | None
        Overrides ``settings.storage.log_dir``.

    Without a usable stored config the registry starts with DEFAULT_TARGETS
    (enabled 1.1.1.1 and 8.8.8.8) unless MONITOR_SEED_DEFAULT_TARGETS is
    off, so ``add_target("1.1.1.1")`` on a fresh engine raises
    DuplicateTargetError. Set the flag to False to start empty.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[ProbeTransport] = None,
        config_store: Optional[ConfigStore] = None,
        log_dir: Optional[Union[Path, str]] = None,
        resolver: Optional[HostnameResolver] = None,
    ):
        self.settings = settings or get_settings()
        monitoring = self.settings.monitoring
        storage = self.settings.storage

        self.registry = TargetRegistry()
        self.aggregator = StatisticsAggregator()
        self.publisher = EventPublisher(
            max_history_size=monitoring.max_history_size,
            subscriber_queue_size=monitoring.subscriber_queue_size,
        )
        self.log_writer = QueuedLogWriter(
            ProbeLogWriter(log_dir or storage.log_dir),
            on_error=self.publisher.publish_log_error,
        )
        self.config_store = config_store or ConfigStore(storage.config_file)

        if resolver is None and monitoring.resolve_hostnames:
            resolver = HostnameResolver()
        self.executor = ProbeExecutor(transport or build_transport(monitoring), resolver)

        self.scheduler = ProbeScheduler(
            registry=self.registry,
            executor=self.executor,
            aggregator=self.aggregator,
            log_writer=self.log_writer,
            publisher=self.publisher,
            interval_ms=monitoring.ping_interval_ms,
            timeout_ms=monitoring.timeout_ms,
        )

        self.started_at = TimeHelper.get_utc_now()
        self._closed = False

        self._load_initial_config()

        logger.info(
            f"Engine ready: {len(self.registry)} target(s), "
            f"transport={self.executor.transport.name}, "
            f"log_dir={self.log_writer.writer.log_dir}"
        )

    # ------------------------------------------------------------------
    # CONTEXT MANAGER
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "PingMonitorEngine":
        await self.log_writer.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # LIFECYCLE COMMANDS
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Start probing.

        Raises
        ------
        AlreadyRunningError
            Probing is already running.
        """
        await self.log_writer.start()
        await self.scheduler.start()

    async def stop(self) -> None:
        """Stop probing; in-flight probes are delivered and logged first."""
        await self.scheduler.stop()
        await self.log_writer.flush()

    async def close(self) -> None:
        """Stop, drain the probe log, close the file and all subscribers."""
        if self._closed:
            return
        self._closed = True

        await self.scheduler.stop()
        await self.log_writer.stop()
        await asyncio.to_thread(self.log_writer.writer.close)
        self.publisher.close()
        logger.info("✓ Engine closed")

    def get_state(self) -> SchedulerState:
        return self.scheduler.state

    # ------------------------------------------------------------------
    # TARGET COMMANDS
    # ------------------------------------------------------------------

    def add_target(self, address: str, label: Optional[str] = None) -> PingTarget:
        target = self.registry.add(address, label)
        self.aggregator.track(target)
        return target

    def remove_target(self, target_id: str) -> PingTarget:
        """Remove a target and discard its statistics, history and sequence."""
        target = self.registry.remove(target_id)
        self._forget(target_id)
        return target

    def update_target(self, target_id: str, **fields: Any) -> PingTarget:
        target = self.registry.update(target_id, **fields)
        self.aggregator.track(target)
        return target

    def toggle_target(self, target_id: str) -> PingTarget:
        return self.registry.toggle(target_id)

    def list_targets(self) -> List[PingTarget]:
        return self.registry.list()

    def get_preset_targets(self) -> List[PingTarget]:
        """Well-known public resolvers offered for quick adding."""
        return [
            PingTarget(id=new_target_id(), address=address, label=label, enabled=True)
            for address, label in PRESET_TARGETS
        ]

    def _forget(self, target_id: str) -> None:
        self.aggregator.discard(target_id)
        self.publisher.discard(target_id)
        self.scheduler.forget_target(target_id)

    # ------------------------------------------------------------------
    # TIMING COMMANDS
    # ------------------------------------------------------------------

    def set_interval(self, interval_ms: int) -> None:
        """
        Raises
        ------
        InvalidIntervalError
            Below 100 ms or above the maximum.
        """
        self.scheduler.set_interval(interval_ms)

    def set_timeout(self, timeout_ms: int) -> None:
        self.scheduler.set_timeout(timeout_ms)

    # ------------------------------------------------------------------
    # STATISTICS COMMANDS
    # ------------------------------------------------------------------

    def get_statistics(
        self, target_id: Optional[str] = None
    ) -> Union[RunningStatistics, Dict[str, RunningStatistics]]:
        """One target's snapshot, or all snapshots keyed by id."""
        if target_id is None:
            return self.aggregator.snapshot_all()
        return self.aggregator.snapshot(target_id)

    def reset_statistics(self, target_id: Optional[str] = None) -> None:
        if target_id is not None and not self.registry.contains(target_id):
            raise NotFoundError(entity_id=target_id)
        self.aggregator.reset(target_id)

    def get_recent_outcomes(
        self, target_id: Optional[str] = None, count: Optional[int] = None
    ) -> List[ProbeOutcome]:
        if target_id is not None and not self.registry.contains(target_id):
            raise NotFoundError(entity_id=target_id)
        return self.publisher.recent(target_id, count)

    # ------------------------------------------------------------------
    # CONFIG COMMANDS
    # ------------------------------------------------------------------

    def get_config(self) -> AppConfig:
        return AppConfig(
            targets=self.registry.list(),
            ping_interval_ms=self.scheduler.interval_ms,
            timeout_ms=self.scheduler.timeout_ms,
            max_history_size=self.publisher.max_history_size,
        )

    def save_config(self, config: AppConfig) -> AppConfig:
        """
        Apply *config* in memory, then persist it.

        Raises
        ------
        InvalidAddressError
            A target address is invalid; nothing is applied.
        ConfigPersistError
            Writing failed; the applied in-memory config stays in effect.
        """
        self._apply_config(config)
        applied = self.get_config()
        self.config_store.save(applied)
        return applied

    def _apply_config(self, config: AppConfig) -> None:
        targets = self.registry.replace_all(config.targets)
        live_ids = {t.id for t in targets}

        for target_id in list(self.aggregator.snapshot_all()):
            if target_id not in live_ids:
                self._forget(target_id)
        for target in targets:
            self.aggregator.track(target)

        if config.ping_interval_ms != self.scheduler.interval_ms:
            self.scheduler.set_interval(config.ping_interval_ms)
        if config.timeout_ms != self.scheduler.timeout_ms:
            self.scheduler.set_timeout(config.timeout_ms)
        if config.max_history_size != self.publisher.max_history_size:
            self.publisher.resize_history(config.max_history_size)

    def _load_initial_config(self) -> None:
        try:
            config = self.config_store.load()
        except ConfigPersistError as e:
            logger.warning(f"Ignoring stored config: {e.log_format()}")
            config = None

        if config is not None:
            try:
                self._apply_config(config)
                return
            except ValidationException as e:
                logger.warning(f"Ignoring stored config with invalid targets: {e.log_format()}")

        self._apply_config(self._default_config())

    def _default_config(self) -> AppConfig:
        """Settings timings plus DEFAULT_TARGETS when seeding is enabled."""
        monitoring = self.settings.monitoring
        seeds = DEFAULT_TARGETS if monitoring.seed_default_targets else []
        return AppConfig(
            targets=[
                PingTarget(id=new_target_id(), address=address, label=label)
                for address, label in seeds
            ],
            ping_interval_ms=monitoring.ping_interval_ms,
            timeout_ms=monitoring.timeout_ms,
            max_history_size=monitoring.max_history_size,
        )

    # ------------------------------------------------------------------
    # LOGS & EVENTS
    # ------------------------------------------------------------------

    def get_log_path(self) -> Path:
        return self.log_writer.writer.log_dir

    def list_log_files(self) -> List[Path]:
        return self.log_writer.writer.list_log_files()

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        return self.publisher.subscribe(maxsize)

    # ------------------------------------------------------------------
    # HEALTH
    # ------------------------------------------------------------------

    def get_health(self) -> Dict[str, Any]:
        uptime = (TimeHelper.get_utc_now() - self.started_at).total_seconds()
        return {
            "status": "ok",
            "state": self.scheduler.state.value,
            "uptime_seconds": int(uptime),
            "uptime": TimeHelper.seconds_to_human_readable(int(uptime)),
            "targets": len(self.registry),
            "enabled_targets": len(self.registry.enabled_targets()),
            "subscribers": self.publisher.subscriber_count,
            "scheduler": self.scheduler.get_stats(),
            "log_writer": {
                "log_dir": str(self.log_writer.writer.log_dir),
                "lines_written": self.log_writer.writer.lines_written,
                "pending": self.log_writer.pending,
                "failures": self.log_writer.failures,
            },
        }
