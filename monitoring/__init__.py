"""
============================================================================
PING MONITOR - MONITORING PACKAGE
============================================================================
The probing core and its control surface:
    • TargetRegistry        — configured targets (thread-safe CRUD)
    • ProbeExecutor         — one probe through a ProbeTransport
    • ProbeScheduler        — periodic concurrent ticks
    • StatisticsAggregator  — Welford running statistics per target
    • ProbeLogWriter        — daily JSONL probe log, fsynced per line
    • EventPublisher        — non-blocking fan-out + recent history
    • PingMonitorEngine     — owns all of the above
    • ControlServer         — aiohttp JSON API + WebSocket events

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── models.py            ← PingTarget, ProbeOutcome, RunningStatistics, AppConfig
├── registry.py          ← TargetRegistry
├── prober.py            ← ProbeExecutor + transports + HostnameResolver
├── scheduler.py         ← ProbeScheduler
├── statistics.py        ← StatisticsAggregator
├── log_writer.py        ← ProbeLogWriter + QueuedLogWriter
├── events.py            ← EventPublisher, Subscription, Event
├── config_store.py      ← ConfigStore
├── engine.py            ← PingMonitorEngine
└── api.py               ← ControlServer

============================================================================
"""

from monitoring.models import AppConfig, PingTarget, ProbeOutcome, RunningStatistics
from monitoring.registry import TargetRegistry
from monitoring.prober import (
    HostnameResolver,
    ProbeExecutor,
    ProbeTransport,
    SubprocessPingTransport,
    TcpConnectTransport,
)
from monitoring.scheduler import ProbeScheduler
from monitoring.statistics import StatisticsAggregator
from monitoring.log_writer import ProbeLogWriter, QueuedLogWriter
from monitoring.events import Event, EventPublisher, Subscription
from monitoring.config_store import ConfigStore
from monitoring.engine import PingMonitorEngine
from monitoring.api import ControlServer

__all__ = [
    # Models
    "AppConfig",
    "PingTarget",
    "ProbeOutcome",
    "RunningStatistics",

    # Core
    "TargetRegistry",
    "ProbeExecutor",
    "ProbeTransport",
    "SubprocessPingTransport",
    "TcpConnectTransport",
    "HostnameResolver",
    "ProbeScheduler",
    "StatisticsAggregator",
    "ProbeLogWriter",
    "QueuedLogWriter",

    # Events
    "Event",
    "EventPublisher",
    "Subscription",

    # Engine & API
    "ConfigStore",
    "PingMonitorEngine",
    "ControlServer",
]
