"""
Constants Module for Ping Monitor

Contains all constant values, enumerations and static target
presets used throughout the application.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, List, Tuple


class ProbeErrorKind(str, Enum):
    """
    Probe Failure Classification

    Stored verbatim in ``ProbeOutcome.error`` and in the ``error``
    field of every log line for a failed probe.
    """

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    RESOLUTION_FAILED = "resolution failed"
    TRANSPORT_ERROR = "transport error"


class SchedulerState(str, Enum):
    """Probe scheduler lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"


class EventType(str, Enum):
    """
    Event Types

    Names of the events fanned out to subscribers by the publisher.
    """

    PROBE_OUTCOME = "probe-outcome"
    STATS_SNAPSHOT = "stats-snapshot"
    LOG_WRITE_ERROR = "log-write-error"


class TransportType(str, Enum):
    """Available probe transports."""

    ICMP = "icmp"
    TCP = "tcp"


class Limits:
    """
    Application Limits

    Hard bounds enforced by the registry and the scheduler.
    """

    MIN_PING_INTERVAL_MS: Final[int] = 100
    MAX_PING_INTERVAL_MS: Final[int] = 3_600_000

    MIN_TIMEOUT_MS: Final[int] = 100
    MAX_TIMEOUT_MS: Final[int] = 60_000

    MAX_HOSTNAME_LENGTH: Final[int] = 253
    MAX_HOSTNAME_LABEL_LENGTH: Final[int] = 63
    MAX_LABEL_LENGTH: Final[int] = 128

    MIN_HISTORY_SIZE: Final[int] = 1
    MAX_HISTORY_SIZE: Final[int] = 100_000


class Defaults:
    """Default values used when no configuration overrides them."""

    PING_INTERVAL_MS: Final[int] = 1000
    TIMEOUT_MS: Final[int] = 5000
    MAX_HISTORY_SIZE: Final[int] = 100
    TCP_PORT: Final[int] = 443
    SUBSCRIBER_QUEUE_SIZE: Final[int] = 1000


class LogFiles:
    """Naming of the per-day probe log files."""

    PREFIX: Final[str] = "ping-"
    SUFFIX: Final[str] = ".jsonl"
    DATE_FORMAT: Final[str] = "%Y-%m-%d"


# (address, label) pairs
DEFAULT_TARGETS: Final[List[Tuple[str, str]]] = [
    ("1.1.1.1", "Cloudflare DNS"),
    ("8.8.8.8", "Google DNS"),
]

PRESET_TARGETS: Final[List[Tuple[str, str]]] = [
    ("1.1.1.1", "Cloudflare DNS"),
    ("8.8.8.8", "Google DNS"),
    ("9.9.9.9", "Quad9 DNS"),
    ("208.67.222.222", "OpenDNS"),
]

# Substrings of ping(8) output mapped to a failure classification.
# Checked in order, case-insensitively.
PING_OUTPUT_MARKERS: Final[List[Tuple[str, ProbeErrorKind]]] = [
    ("unknown host", ProbeErrorKind.RESOLUTION_FAILED),
    ("name or service not known", ProbeErrorKind.RESOLUTION_FAILED),
    ("cannot resolve", ProbeErrorKind.RESOLUTION_FAILED),
    ("could not find host", ProbeErrorKind.RESOLUTION_FAILED),
    ("temporary failure in name resolution", ProbeErrorKind.RESOLUTION_FAILED),
    ("unreachable", ProbeErrorKind.UNREACHABLE),
    ("network is down", ProbeErrorKind.UNREACHABLE),
    ("no route to host", ProbeErrorKind.UNREACHABLE),
    ("request timed out", ProbeErrorKind.TIMEOUT),
    ("100% packet loss", ProbeErrorKind.TIMEOUT),
    ("100.0% packet loss", ProbeErrorKind.TIMEOUT),
]
