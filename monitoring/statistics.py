"""
============================================================================
PING MONITOR - STATISTICS AGGREGATOR
============================================================================
Consumes probe outcomes and maintains streaming per-target statistics.

Mean and variance are updated with Welford's online algorithm, so memory
is O(1) per target no matter how long a session runs; no latency history
is kept here. Failed probes only bump total/failure counts and the
last-outcome timestamp; min/max/mean/jitter cover successful probes only.

All records are guarded by one lock: outcomes arrive from the event loop
while snapshots may be requested from other threads.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from exceptions.registry import NotFoundError
from monitoring.models import PingTarget, ProbeOutcome, RunningStatistics
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("StatisticsAggregator")


class StatisticsAggregator:
    """
    Per-target running statistics keyed by target id.

    Usage
    -----
        aggregator = StatisticsAggregator()
        aggregator.track(target)
        aggregator.record(outcome)
        aggregator.snapshot(target.id).packet_loss_percent
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, RunningStatistics] = {}

    # ------------------------------------------------------------------
    # TRACKING
    # ------------------------------------------------------------------

    def track(self, target: PingTarget) -> None:
        """
        Ensure a record exists for *target*.

        An existing record keeps its counters; only the address and label
        shown in snapshots are refreshed.
        """
        with self._lock:
            record = self._records.get(target.id)
            if record is None:
                self._records[target.id] = RunningStatistics(
                    target_id=target.id,
                    target_address=target.address,
                    target_label=target.label,
                )
            else:
                record.target_address = target.address
                record.target_label = target.label

    def discard(self, target_id: str) -> bool:
        """Drop a target's record. Returns True if one existed."""
        with self._lock:
            return self._records.pop(target_id, None) is not None

    def is_tracked(self, target_id: str) -> bool:
        with self._lock:
            return target_id in self._records

    # ------------------------------------------------------------------
    # UPDATES
    # ------------------------------------------------------------------

    def record(self, outcome: ProbeOutcome) -> None:
        """Fold one outcome into its target's statistics."""
        with self._lock:
            stats = self._records.get(outcome.target_id)
            if stats is None:
                stats = RunningStatistics(
                    target_id=outcome.target_id,
                    target_address=outcome.target_address,
                    target_label=outcome.target_label,
                    session_start=outcome.timestamp,
                )
                self._records[outcome.target_id] = stats

            stats.total_count += 1
            stats.last_outcome = outcome.timestamp

            if outcome.success and outcome.latency_ms is not None:
                self._add_latency(stats, outcome.latency_ms)
            else:
                stats.failure_count += 1

    @staticmethod
    def _add_latency(stats: RunningStatistics, latency: float) -> None:
        stats.success_count += 1
        n = stats.success_count

        if n == 1:
            stats.min_latency_ms = latency
            stats.max_latency_ms = latency
            stats.mean_latency_ms = latency
            stats.variance_accumulator = 0.0
            return

        stats.min_latency_ms = min(stats.min_latency_ms, latency)
        stats.max_latency_ms = max(stats.max_latency_ms, latency)

        delta = latency - stats.mean_latency_ms
        stats.mean_latency_ms += delta / n
        stats.variance_accumulator += delta * (latency - stats.mean_latency_ms)

    def reset(self, target_id: Optional[str] = None, now: Optional[datetime] = None) -> None:
        """
        Reinitialize one record (or all when *target_id* is None).

        The target stays tracked with a fresh session_start.
        """
        now = now or TimeHelper.get_utc_now()
        with self._lock:
            if target_id is None:
                ids = list(self._records)
            elif target_id in self._records:
                ids = [target_id]
            else:
                raise NotFoundError(
                    "No statistics for target", entity_type="RunningStatistics", entity_id=target_id
                )

            for tid in ids:
                old = self._records[tid]
                self._records[tid] = RunningStatistics(
                    target_id=tid,
                    target_address=old.target_address,
                    target_label=old.target_label,
                    session_start=now,
                )

        logger.info(
            f"Statistics reset for {'all targets' if target_id is None else target_id}"
        )

    # ------------------------------------------------------------------
    # SNAPSHOTS
    # ------------------------------------------------------------------

    def snapshot(self, target_id: str) -> RunningStatistics:
        """Copy of one target's statistics."""
        with self._lock:
            stats = self._records.get(target_id)
            if stats is None:
                raise NotFoundError(
                    "No statistics for target", entity_type="RunningStatistics", entity_id=target_id
                )
            return replace(stats)

    def snapshot_all(self) -> Dict[str, RunningStatistics]:
        """Copies of every record keyed by target id."""
        with self._lock:
            return {tid: replace(stats) for tid, stats in self._records.items()}
