"""
============================================================================
PING MONITOR - PROBE LOG WRITER
============================================================================
Durably records every probe outcome as one JSON object per line.

Files
-----
One file per UTC calendar date, named  ping-YYYY-MM-DD.jsonl  inside the
log directory. The date is taken from each outcome's own timestamp, so a
file only ever holds entries from its date. When an outcome for another
date arrives, the open handle is closed and the matching file is opened
in append mode.

Durability
----------
``ProbeLogWriter.append`` writes the line, flushes Python's buffer and
fsyncs the descriptor before returning. An I/O failure raises
LogWriteError and drops the handle so the next append reopens the file.

Serialization
-------------
``QueuedLogWriter`` is the single sequence point for concurrent producers:
the scheduler submits outcomes without blocking, and one asyncio task
drains the queue in submission order, running each blocking append in a
worker thread. Failures are logged and reported through ``on_error`` but
never propagate; probing continues while the disk is broken.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import json
import os
import threading
from datetime import date
from pathlib import Path
from typing import Callable, IO, List, Optional, Union

from config.constants import LogFiles
from exceptions.monitoring import LogWriteError
from monitoring.models import ProbeOutcome
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("LogWriter")


# ============================================================================
# SYNCHRONOUS WRITER
# ============================================================================

class ProbeLogWriter:
    """
    Append-only JSONL writer with daily (UTC) rotation.

    Parameters
    ----------
    log_dir : Path | str
        Directory for the daily files; created on demand.
    """

    def __init__(self, log_dir: Union[Path, str]):
        self._log_dir = Path(log_dir)
        self._lock = threading.Lock()
        self._handle: Optional[IO[str]] = None
        self._current_date: Optional[date] = None
        self._lines_written = 0

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    @property
    def current_path(self) -> Optional[Path]:
        """Path of the currently open file, if any."""
        with self._lock:
            if self._current_date is None:
                return None
            return self.path_for_date(self._current_date)

    @property
    def lines_written(self) -> int:
        return self._lines_written

    def path_for_date(self, day: date) -> Path:
        return self._log_dir / f"{LogFiles.PREFIX}{day.strftime(LogFiles.DATE_FORMAT)}{LogFiles.SUFFIX}"

    # ------------------------------------------------------------------
    # APPEND
    # ------------------------------------------------------------------

    def append(self, outcome: ProbeOutcome) -> None:
        """
        Write one outcome and make it durable.

        Raises
        ------
        LogWriteError
            Opening, rotating, writing or syncing failed.
        """
        day = TimeHelper.ensure_utc(outcome.timestamp).date()
        line = json.dumps(outcome.to_log_entry(), separators=(",", ":")) + "\n"

        with self._lock:
            path = self.path_for_date(day)
            try:
                if self._handle is None or self._current_date != day:
                    self._rotate(day)
                self._handle.write(line)
                self._handle.flush()
                os.fsync(self._handle.fileno())
            except OSError as e:
                self._drop_handle()
                raise LogWriteError(
                    f"Could not append to {path.name}: {e}", path=str(path), cause=e
                ) from e
            self._lines_written += 1

    def _rotate(self, day: date) -> None:
        # Caller holds the lock
        if self._handle is not None:
            previous = self._current_date
            self._close_handle()
            logger.info(f"Rotating probe log: {previous} -> {day}")

        self._log_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for_date(day)
        self._handle = open(path, "a", encoding="utf-8")
        self._current_date = day
        logger.info(f"Opened probe log file: {path}")

    def _close_handle(self) -> None:
        handle, self._handle = self._handle, None
        self._current_date = None
        if handle is not None:
            try:
                handle.flush()
                os.fsync(handle.fileno())
            finally:
                handle.close()

    def _drop_handle(self) -> None:
        try:
            self._close_handle()
        except OSError as e:
            logger.debug(f"Ignoring close failure on broken log handle: {e}")

    # ------------------------------------------------------------------
    # MAINTENANCE
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Flush and close the active file."""
        with self._lock:
            try:
                self._close_handle()
            except OSError as e:
                raise LogWriteError(f"Could not close probe log: {e}", cause=e) from e

    def list_log_files(self) -> List[Path]:
        """All daily log files in the directory, oldest first."""
        if not self._log_dir.exists():
            return []
        return sorted(
            p for p in self._log_dir.iterdir()
            if p.is_file()
            and p.name.startswith(LogFiles.PREFIX)
            and p.name.endswith(LogFiles.SUFFIX)
        )


# ============================================================================
# QUEUED WRITER (single serialization point)
# ============================================================================

class QueuedLogWriter:
    """
    Non-blocking front end for ProbeLogWriter.

    Usage
    -----
        queued = QueuedLogWriter(ProbeLogWriter(path), on_error=publisher.publish_log_error)
        await queued.start()
        queued.submit(outcome)
        await queued.stop()      # drains pending outcomes
    """

    def __init__(
        self,
        writer: ProbeLogWriter,
        on_error: Optional[Callable[[LogWriteError], None]] = None,
        maxsize: int = 0,
    ):
        self.writer = writer
        self._on_error = on_error
        self._queue: "asyncio.Queue[ProbeOutcome]" = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._failures = 0
        self._dropped = 0

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background writer task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._write_loop())
        logger.info(f"✓ Probe log writer started — dir={self.writer.log_dir}")

    async def stop(self) -> None:
        """Write everything still queued, then stop the writer task."""
        self._running = False
        if self._task:
            await self._queue.join()
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        # Outcomes submitted while the task was not running
        while not self._queue.empty():
            outcome = self._queue.get_nowait()
            await self._write(outcome)
            self._queue.task_done()

        logger.info("✓ Probe log writer stopped")

    async def flush(self) -> None:
        """Wait until every submitted outcome has been handled."""
        if self._task:
            await self._queue.join()

    # ------------------------------------------------------------------
    # SUBMISSION
    # ------------------------------------------------------------------

    def submit(self, outcome: ProbeOutcome) -> bool:
        """
        Queue an outcome without blocking.

        Returns False if a bounded queue is full and the outcome was dropped.
        """
        try:
            self._queue.put_nowait(outcome)
            return True
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                f"Probe log queue full, dropped {outcome.target_address} "
                f"#{outcome.sequence} (total dropped={self._dropped})"
            )
            return False

    # ------------------------------------------------------------------
    # WRITER TASK
    # ------------------------------------------------------------------

    async def _write_loop(self) -> None:
        while True:
            outcome = await self._queue.get()
            try:
                await self._write(outcome)
            finally:
                self._queue.task_done()

    async def _write(self, outcome: ProbeOutcome) -> None:
        try:
            await asyncio.to_thread(self.writer.append, outcome)
        except LogWriteError as e:
            self._failures += 1
            logger.warning(f"Probe log write failed (#{self._failures}): {e.log_format()}")
            if self._on_error is not None:
                self._on_error(e)
