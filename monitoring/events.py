"""
============================================================================
PING MONITOR - EVENT PUBLISHER
============================================================================
Fans probe outcomes and per-tick statistics snapshots out to any number of
subscribers (the dashboard, the control API's WebSocket clients, tests).

Design
------
Each subscriber owns a bounded asyncio.Queue. Publishing uses put_nowait
and never awaits: when a subscriber falls behind, its oldest pending event
is discarded to make room, so a slow or absent consumer can never stall
probing, logging or statistics.

The publisher also keeps a bounded per-target history of recent outcomes
(the chart buffer). It is discarded together with the target.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Mapping, Optional, Set

from config.constants import Defaults, EventType
from exceptions.monitoring import LogWriteError
from monitoring.models import ProbeOutcome, RunningStatistics
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("EventPublisher")


# ============================================================================
# EVENT
# ============================================================================

@dataclass(frozen=True)
class Event:
    """One published event; ``payload`` is JSON-serializable."""
    type: EventType
    payload: Any
    timestamp: datetime = field(default_factory=TimeHelper.get_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timestamp": TimeHelper.to_rfc3339(self.timestamp),
            "payload": self.payload,
        }


# ============================================================================
# SUBSCRIPTION
# ============================================================================

class Subscription:
    """
    Receiving end of the fan-out channel.

    Iterate with ``async for event in subscription`` or call ``get()``.
    Closing the subscription ends the iteration.
    """

    def __init__(self, publisher: "EventPublisher", maxsize: int):
        self._publisher = publisher
        self._queue: "asyncio.Queue[Optional[Event]]" = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def _offer(self, event: Event) -> None:
        if self.closed:
            return
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except asyncio.QueueEmpty:
                    pass

    async def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event, or None once closed."""
        if self.closed and self._queue.empty():
            return None
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def get_nowait(self) -> Optional[Event]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._publisher.unsubscribe(self)
        # Wake a consumer blocked in get()
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Event:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


# ============================================================================
# PUBLISHER
# ============================================================================

class EventPublisher:
    """
    Best-effort, non-blocking fan-out plus the recent-outcome history.

    Parameters
    ----------
    max_history_size : int
        Outcomes kept per target for ``recent()``.
    subscriber_queue_size : int
        Pending events buffered per subscriber before the oldest is dropped.
    """

    def __init__(
        self,
        max_history_size: int = Defaults.MAX_HISTORY_SIZE,
        subscriber_queue_size: int = Defaults.SUBSCRIBER_QUEUE_SIZE,
    ):
        self._subscribers: Set[Subscription] = set()
        self._subscriber_queue_size = subscriber_queue_size
        self._max_history_size = max_history_size
        self._history: Dict[str, Deque[ProbeOutcome]] = {}
        self.published = 0

    # ------------------------------------------------------------------
    # SUBSCRIBERS
    # ------------------------------------------------------------------

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        subscription = Subscription(self, maxsize or self._subscriber_queue_size)
        self._subscribers.add(subscription)
        logger.debug(f"Subscriber added (total={len(self._subscribers)})")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.discard(subscription)
        logger.debug(f"Subscriber removed (total={len(self._subscribers)})")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def close(self) -> None:
        """Close every subscription."""
        for subscription in list(self._subscribers):
            subscription.close()

    # ------------------------------------------------------------------
    # PUBLISHING
    # ------------------------------------------------------------------

    def publish_outcome(self, outcome: ProbeOutcome, remember: bool = True) -> None:
        """Fan out one outcome; ``remember=False`` skips the history buffer."""
        if remember:
            history = self._history.get(outcome.target_id)
            if history is None:
                history = deque(maxlen=self._max_history_size)
                self._history[outcome.target_id] = history
            history.append(outcome)

        self._fan_out(Event(EventType.PROBE_OUTCOME, outcome.to_dict()))

    def publish_stats(self, snapshot: Mapping[str, RunningStatistics]) -> None:
        payload = {tid: stats.to_dict() for tid, stats in snapshot.items()}
        self._fan_out(Event(EventType.STATS_SNAPSHOT, payload))

    def publish_log_error(self, error: LogWriteError) -> None:
        self._fan_out(Event(EventType.LOG_WRITE_ERROR, error.to_dict()))

    def _fan_out(self, event: Event) -> None:
        self.published += 1
        for subscription in list(self._subscribers):
            subscription._offer(event)

    # ------------------------------------------------------------------
    # RECENT HISTORY
    # ------------------------------------------------------------------

    def recent(self, target_id: Optional[str] = None, count: Optional[int] = None) -> List[ProbeOutcome]:
        """
        Most recent outcomes, newest first.

        With no *target_id* the histories of all targets are merged by
        timestamp.
        """
        if target_id is not None:
            outcomes = list(self._history.get(target_id, ()))
        else:
            outcomes = [o for history in self._history.values() for o in history]
            outcomes.sort(key=lambda o: o.timestamp)

        outcomes.reverse()
        if count is not None:
            outcomes = outcomes[:max(count, 0)]
        return outcomes

    def discard(self, target_id: str) -> None:
        self._history.pop(target_id, None)

    def clear_history(self, target_id: Optional[str] = None) -> None:
        if target_id is None:
            self._history.clear()
        else:
            self._history.pop(target_id, None)

    @property
    def max_history_size(self) -> int:
        return self._max_history_size

    def resize_history(self, max_history_size: int) -> None:
        """Change the per-target buffer size, keeping the newest outcomes."""
        self._max_history_size = max_history_size
        self._history = {
            tid: deque(history, maxlen=max_history_size)
            for tid, history in self._history.items()
        }
