"""
============================================================================
PING MONITOR - PROBE SCHEDULER
============================================================================
The orchestrator. While running, a timer-driven loop fires one tick per
interval; each tick probes every enabled target concurrently and routes
each outcome to the statistics aggregator, the probe log and the event
publisher, then publishes one statistics snapshot for the batch.

State machine
-------------
    IDLE  --start()-->  RUNNING  --stop()-->  IDLE

Ticks
-----
- The first tick fires immediately on start.
- Each tick runs as its own task, so a slow tick never delays the timer;
  overlapping ticks are allowed.
- The enabled targets are snapshotted from the registry at tick start.
- ``set_interval`` takes effect for the next tick without a restart.

Ordering
--------
Sequence numbers are assigned per target when an outcome comes back and
the outcome is routed in the same step (no await in between), so for each
target the aggregator, the log queue and the subscribers all see strictly
increasing sequences. Nothing is promised across targets.

Stop
----
Cooperative: no new tick starts after the request, in-flight ticks finish
and their outcomes are delivered before ``stop()`` returns.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from config.constants import Defaults, SchedulerState
from exceptions.monitoring import AlreadyRunningError
from monitoring.events import EventPublisher
from monitoring.log_writer import QueuedLogWriter
from monitoring.models import PingTarget, ProbeOutcome
from monitoring.prober import ProbeExecutor
from monitoring.registry import TargetRegistry
from monitoring.statistics import StatisticsAggregator
from utils.helpers import TimeHelper
from utils.logger import get_logger
from utils.validators import validate_interval, validate_timeout


logger = get_logger("Scheduler")


class ProbeScheduler:
    """
    Periodic, concurrent probe dispatcher.

    Usage
    -----
        scheduler = ProbeScheduler(registry, executor, aggregator, log_writer, publisher)
        await scheduler.start()
        scheduler.set_interval(500)
        # ... later ...
        await scheduler.stop()
    """

    def __init__(
        self,
        registry: TargetRegistry,
        executor: ProbeExecutor,
        aggregator: StatisticsAggregator,
        log_writer: QueuedLogWriter,
        publisher: EventPublisher,
        interval_ms: int = Defaults.PING_INTERVAL_MS,
        timeout_ms: int = Defaults.TIMEOUT_MS,
    ):
        self.registry = registry
        self.executor = executor
        self.aggregator = aggregator
        self.log_writer = log_writer
        self.publisher = publisher

        self._interval_ms = validate_interval(interval_ms)
        self._timeout_ms = validate_timeout(timeout_ms)

        self._state = SchedulerState.IDLE
        self._stop_requested = False
        self._wakeup = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()
        self._sequences: Dict[str, int] = {}
        # Removed targets whose counters stay until no tick is running
        self._forgotten: Set[str] = set()
        self._active_ticks = 0

        # Diagnostics
        self.ticks_started = 0
        self.ticks_completed = 0
        self.ticks_failed = 0
        self.outcomes_routed = 0
        self.last_tick_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # PROPERTIES
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    # ------------------------------------------------------------------
    # CONFIGURATION
    # ------------------------------------------------------------------

    def set_interval(self, interval_ms: int) -> None:
        """
        Change the tick interval; applies from the next tick.

        Raises
        ------
        InvalidIntervalError
            Below the 100 ms minimum (or otherwise out of range).
        """
        self._interval_ms = validate_interval(interval_ms)
        # Re-evaluate the pending deadline against the new interval
        self._wakeup.set()
        logger.info(f"[Scheduler] Interval set to {self._interval_ms} ms")

    def set_timeout(self, timeout_ms: int) -> None:
        """Change the per-probe timeout; applies to probes issued afterwards."""
        self._timeout_ms = validate_timeout(timeout_ms)
        logger.info(f"[Scheduler] Probe timeout set to {self._timeout_ms} ms")

    def forget_target(self, target_id: str) -> None:
        """
        Drop the sequence counter of a removed target.

        While a tick is running it may still hold the target in its
        snapshot, so the counter is kept until the last running tick ends.
        """
        if self._active_ticks:
            self._forgotten.add(target_id)
        else:
            self._sequences.pop(target_id, None)

    def next_sequence(self, target_id: str) -> int:
        """Sequence the next outcome for *target_id* would receive."""
        return self._sequences.get(target_id, 0) + 1

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Enter RUNNING and fire the first tick immediately.

        Raises
        ------
        AlreadyRunningError
            The scheduler is already running.
        """
        if self._state is SchedulerState.RUNNING:
            raise AlreadyRunningError()

        self._state = SchedulerState.RUNNING
        self._stop_requested = False
        self._wakeup.clear()

        self._spawn_tick()
        first_tick_at = asyncio.get_running_loop().time()
        self._loop_task = asyncio.create_task(self._main_loop(first_tick_at))
        logger.info(
            f"✓ Scheduler started (interval={self._interval_ms} ms, "
            f"timeout={self._timeout_ms} ms)"
        )

    async def stop(self) -> None:
        """Stop scheduling ticks and wait for in-flight ticks to deliver."""
        if self._state is SchedulerState.IDLE:
            return

        self._stop_requested = True
        self._wakeup.set()

        if self._loop_task:
            await self._loop_task
            self._loop_task = None

        if self._tick_tasks:
            logger.debug(f"[Scheduler] Waiting for {len(self._tick_tasks)} in-flight tick(s)")
            await asyncio.gather(*list(self._tick_tasks), return_exceptions=True)

        self._state = SchedulerState.IDLE
        logger.info("✓ Scheduler stopped")

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def _main_loop(self, tick_started: float) -> None:
        """
        Sleep until the next deadline or a wakeup (interval change or stop
        request), then spawn the next tick.
        """
        loop = asyncio.get_running_loop()
        logger.debug("[Scheduler] Main loop started")

        while True:
            while not self._stop_requested:
                remaining = tick_started + self._interval_ms / 1000.0 - loop.time()
                if remaining <= 0:
                    break
                self._wakeup.clear()
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    pass

            if self._stop_requested:
                break
            tick_started = loop.time()
            self._spawn_tick()

        logger.debug("[Scheduler] Main loop exited")

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self._execute_tick())
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    async def _execute_tick(self) -> None:
        """Run one tick, capturing timing and errors."""
        start_time = time.perf_counter()
        try:
            outcomes = await self.run_tick()
            logger.debug(
                f"[Scheduler] Tick #{self.ticks_started} routed {len(outcomes)} outcome(s) "
                f"in {(time.perf_counter() - start_time) * 1000:.1f} ms"
            )
        except Exception as e:
            self.ticks_failed += 1
            logger.opt(exception=e).error(
                f"[Scheduler] Tick FAILED after {time.perf_counter() - start_time:.2f}s: {e}"
            )

    # ------------------------------------------------------------------
    # TICK
    # ------------------------------------------------------------------

    async def run_tick(self) -> List[ProbeOutcome]:
        """
        Probe every enabled target once, concurrently.

        Returns the routed outcomes in the order they were sequenced.
        """
        targets = self.registry.enabled_targets()
        timeout = self._timeout_ms / 1000.0
        self.ticks_started += 1
        self.last_tick_at = TimeHelper.get_utc_now()

        routed: List[ProbeOutcome] = []

        async def probe_and_route(target: PingTarget) -> None:
            outcome = await self.executor.probe(target, timeout)
            routed.append(self._route(outcome))

        self._active_ticks += 1
        try:
            if targets:
                await asyncio.gather(*(probe_and_route(t) for t in targets))
        finally:
            self._active_ticks -= 1
            if not self._active_ticks:
                self._prune_forgotten()

        self.publisher.publish_stats(self.aggregator.snapshot_all())
        self.ticks_completed += 1
        return routed

    def _route(self, outcome: ProbeOutcome) -> ProbeOutcome:
        """Sequence one outcome and hand it to every consumer."""
        target_id = outcome.target_id
        registered = self.registry.contains(target_id)

        sequence = self._sequences.get(target_id, 0) + 1
        if registered or target_id in self._forgotten:
            self._sequences[target_id] = sequence
        outcome = replace(outcome, sequence=sequence)

        # Removed mid-flight: still logged and published, not counted
        if registered:
            self.aggregator.record(outcome)
        self.log_writer.submit(outcome)
        self.publisher.publish_outcome(outcome, remember=registered)

        self.outcomes_routed += 1
        return outcome

    def _prune_forgotten(self) -> None:
        for target_id in self._forgotten:
            if not self.registry.contains(target_id):
                self._sequences.pop(target_id, None)
        self._forgotten.clear()

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Counters for the health endpoint."""
        return {
            "state": self._state.value,
            "interval_ms": self._interval_ms,
            "timeout_ms": self._timeout_ms,
            "ticks_started": self.ticks_started,
            "ticks_completed": self.ticks_completed,
            "ticks_failed": self.ticks_failed,
            "ticks_in_flight": len(self._tick_tasks),
            "outcomes_routed": self.outcomes_routed,
            "last_tick_at": (
                TimeHelper.to_rfc3339(self.last_tick_at) if self.last_tick_at else None
            ),
        }
