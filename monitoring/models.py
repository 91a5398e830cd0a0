"""
============================================================================
PING MONITOR - DOMAIN MODELS
============================================================================
Typed records exchanged between the registry, the probe pipeline and the
external consumers (dashboard, control API, probe log).

    PingTarget         ← one configured endpoint (mutable, owned by registry)
    ProbeOutcome       ← result of one probe (immutable)
    RunningStatistics  ← per-target streaming statistics snapshot
    AppConfig          ← persisted configuration (pydantic)

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.constants import Defaults, Limits
from utils.helpers import TimeHelper


def new_target_id() -> str:
    """Generate an opaque target id (random, never reused)."""
    return uuid.uuid4().hex


# ============================================================================
# PING TARGET
# ============================================================================

@dataclass
class PingTarget:
    """
    A single probe target.

    Attributes
    ----------
    id : str
        Opaque unique identifier assigned by the registry.
    address : str
        IP literal or hostname.
    label : str
        Display string, defaults to the address.
    enabled : bool
        Disabled targets stay registered but are skipped by the scheduler.
    """
    id: str
    address: str
    label: str = ""
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.label:
            self.label = self.address

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# PROBE OUTCOME
# ============================================================================

@dataclass(frozen=True)
class ProbeOutcome:
    """
    Immutable value object describing one probe.

    ``latency_ms`` is present iff ``success`` is True. ``sequence`` is
    assigned by the scheduler; the executor produces outcomes with 0.
    """
    timestamp: datetime
    target_id: str
    target_address: str
    target_label: str
    success: bool
    latency_ms: Optional[float] = None
    sequence: int = 0
    error: Optional[str] = None

    @classmethod
    def succeeded(
        cls,
        target: PingTarget,
        latency_ms: float,
        timestamp: Optional[datetime] = None,
        sequence: int = 0,
    ) -> "ProbeOutcome":
        return cls(
            timestamp=timestamp or TimeHelper.get_utc_now(),
            target_id=target.id,
            target_address=target.address,
            target_label=target.label,
            success=True,
            latency_ms=float(latency_ms),
            sequence=sequence,
        )

    @classmethod
    def failed(
        cls,
        target: PingTarget,
        error: str,
        timestamp: Optional[datetime] = None,
        sequence: int = 0,
    ) -> "ProbeOutcome":
        return cls(
            timestamp=timestamp or TimeHelper.get_utc_now(),
            target_id=target.id,
            target_address=target.address,
            target_label=target.label,
            success=False,
            latency_ms=None,
            sequence=sequence,
            error=error,
        )

    def to_log_entry(self) -> Dict[str, Any]:
        """Project onto the on-disk log line schema."""
        return {
            "timestamp": TimeHelper.to_rfc3339(self.timestamp),
            "target": self.target_address,
            "target_label": self.target_label,
            "latency_ms": self.latency_ms,
            "success": self.success,
            "sequence": self.sequence,
            "error": self.error,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Event / API payload: the log entry plus the target id."""
        data = self.to_log_entry()
        data["target_id"] = self.target_id
        return data


# ============================================================================
# RUNNING STATISTICS
# ============================================================================

@dataclass
class RunningStatistics:
    """
    Streaming statistics for one target.

    Mean and variance use Welford's update: ``variance_accumulator`` is
    the running sum of squared deviations (M2) over successful latencies.
    min/max/mean are None until the first success.
    """
    target_id: str
    target_address: str
    target_label: str
    session_start: datetime = field(default_factory=TimeHelper.get_utc_now)
    total_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    min_latency_ms: Optional[float] = None
    max_latency_ms: Optional[float] = None
    mean_latency_ms: Optional[float] = None
    variance_accumulator: float = 0.0
    last_outcome: Optional[datetime] = None

    @property
    def packet_loss_percent(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.failure_count / self.total_count * 100.0

    @property
    def jitter_ms(self) -> float:
        """Sample standard deviation of successful latencies."""
        if self.success_count < 2:
            return 0.0
        return math.sqrt(max(self.variance_accumulator, 0.0) / (self.success_count - 1))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "target": self.target_address,
            "target_label": self.target_label,
            "total_count": self.total_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "packet_loss_percent": self.packet_loss_percent,
            "min_latency_ms": self.min_latency_ms,
            "max_latency_ms": self.max_latency_ms,
            "mean_latency_ms": self.mean_latency_ms,
            "jitter_ms": self.jitter_ms,
            "session_start": TimeHelper.to_rfc3339(self.session_start),
            "last_outcome": (
                TimeHelper.to_rfc3339(self.last_outcome) if self.last_outcome else None
            ),
        }


# ============================================================================
# APP CONFIG
# ============================================================================

class AppConfig(BaseModel):
    """
    Persisted application configuration.

    Owned jointly by the registry (targets) and the scheduler
    (interval / timeout); written to disk by ConfigStore.
    """

    model_config = ConfigDict(validate_assignment=True)

    targets: List[PingTarget] = Field(default_factory=list)
    ping_interval_ms: int = Field(
        default=Defaults.PING_INTERVAL_MS,
        ge=Limits.MIN_PING_INTERVAL_MS,
        le=Limits.MAX_PING_INTERVAL_MS,
    )
    timeout_ms: int = Field(
        default=Defaults.TIMEOUT_MS,
        ge=Limits.MIN_TIMEOUT_MS,
        le=Limits.MAX_TIMEOUT_MS,
    )
    max_history_size: int = Field(
        default=Defaults.MAX_HISTORY_SIZE,
        ge=Limits.MIN_HISTORY_SIZE,
        le=Limits.MAX_HISTORY_SIZE,
    )

    @field_validator("targets")
    @classmethod
    def unique_ids(cls, v: List[PingTarget]) -> List[PingTarget]:
        """Target ids must be unique."""
        seen = set()
        for target in v:
            if target.id in seen:
                raise ValueError(f"duplicate target id: {target.id}")
            seen.add(target.id)
        return v
