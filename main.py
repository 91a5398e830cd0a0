"""
============================================================================
PING MONITOR - MAIN APPLICATION
============================================================================
Runs the ping monitoring engine as a long-lived service with an HTTP
control surface.

    Layer 1 — Core
        • Settings (pydantic-settings)
        • Logging (loguru)

    Layer 2 — Monitoring
        • PingMonitorEngine  — registry, scheduler, statistics, probe log,
                               event publisher, config store

    Layer 3 — Control
        • ControlServer      — aiohttp JSON API + WebSocket event stream

Startup Order
-------------
1.  Load settings & configure logging
2.  Create the engine (loads stored config or seeds default targets)
3.  Start the probe log writer
4.  Start the ControlServer (if API_ENABLED)
5.  Start probing (if MONITOR_AUTOSTART)
6.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
-------------------------
    Stop control server → stop scheduler (in-flight probes delivered) →
    drain and close the probe log → close subscribers → exit

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Path setup: ensure the project root is importable regardless of CWD
# ---------------------------------------------------------------------------
sys.path.insert(0, str(Path(__file__).parent))

# ---------------------------------------------------------------------------
# Project imports
# ---------------------------------------------------------------------------
from config.settings import Settings, get_settings
from exceptions.base import PingMonitorException
from monitoring.api import ControlServer
from monitoring.engine import PingMonitorEngine
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class PingMonitorApplication:
    """
    Top-level application orchestrator.

    Owns the engine and the control server and is the single place that
    knows the startup / shutdown order.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        # --- subsystems (populated during startup) ---
        self.engine: Optional[PingMonitorEngine] = None
        self.control_server: Optional[ControlServer] = None

        # --- lifecycle ---
        self._is_running = False
        self._shutdown_event = asyncio.Event()

    # ------------------------------------------------------------------
    # BANNER
    # ------------------------------------------------------------------

    def _print_banner(self) -> None:
        monitoring = self.settings.monitoring
        api = self.settings.api
        banner = f"""
╔══════════════════════════════════════════════════════════════════════════╗
║                                                                          ║
║          📡  {self.settings.app_name.upper():<20} v{self.settings.app_version:<20}                ║
║                                                                          ║
║   Scheduler  •  Statistics  •  JSONL Probe Log  •  Control API           ║
║                                                                          ║
║   Transport : {monitoring.transport.value:<6}   Interval : {monitoring.ping_interval_ms:>6} ms                      ║
║   API       : {(f"{api.host}:{api.port}" if api.enabled else "disabled"):<40}                   ║
║                                                                          ║
╚══════════════════════════════════════════════════════════════════════════╝
"""
        logger.info(banner)

    # ==================================================================
    # PHASE 1: ENGINE
    # ==================================================================

    async def _init_engine(self) -> bool:
        """Create the engine and start its probe log writer."""
        logger.info("── Phase 1: Engine ───────────────────────────────")
        try:
            self.engine = PingMonitorEngine(self.settings)
            await self.engine.log_writer.start()
            logger.info(
                f"  ✓ Engine ready — {len(self.engine.list_targets())} target(s), "
                f"probe logs in {self.engine.get_log_path()}"
            )
            return True

        except PingMonitorException as e:
            logger.error(f"  ✗ Engine init failed: {e.log_format()}")
            return False

    # ==================================================================
    # PHASE 2: CONTROL SERVER
    # ==================================================================

    async def _init_control_server(self) -> bool:
        """Bind the HTTP control surface."""
        logger.info("── Phase 2: Control Server ───────────────────────")
        if not self.settings.api.enabled:
            logger.info("  Control server disabled (API_ENABLED=False)")
            return True

        try:
            self.control_server = ControlServer(self.engine, self.settings.api)
            await self.control_server.start()
            return True

        except OSError as e:
            logger.error(f"  ✗ Control server failed to bind: {e}")
            self.control_server = None
            return False

    # ==================================================================
    # FULL STARTUP SEQUENCE
    # ==================================================================

    async def startup(self) -> bool:
        """
        Execute the complete startup sequence.
        Returns False (and logs errors) if any critical phase fails.
        """
        self._print_banner()
        logger.info("=" * 74)
        logger.info("  STARTING UP …")
        logger.info("=" * 74)

        # Phase 1: Engine (critical)
        if not await self._init_engine():
            return False

        # Phase 2: Control server (non-critical)
        if not await self._init_control_server():
            logger.warning("  ⚠ Control server unavailable — continuing without it")

        # Phase 3: Probing
        if self.settings.monitoring.autostart:
            await self.engine.start()
        else:
            logger.info("  Autostart disabled — POST /monitor/start to begin probing")

        self._is_running = True

        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info("=" * 74)

        return True

    # ==================================================================
    # SHUTDOWN SEQUENCE
    # ==================================================================

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is wrapped so a failure in one subsystem doesn't prevent
        the others from cleaning up.
        """
        if not self._is_running and self.engine is None:
            return

        logger.info("=" * 74)
        logger.info("  SHUTTING DOWN …")
        logger.info("=" * 74)

        self._is_running = False

        # 1. Stop control server
        if self.control_server:
            try:
                await self.control_server.stop()
            except OSError as e:
                logger.error(f"  ✗ Control server stop error: {e}")
            self.control_server = None

        # 2. Stop probing, drain the probe log, close subscribers
        if self.engine:
            try:
                await self.engine.close()
            except PingMonitorException as e:
                logger.error(f"  ✗ Engine close error: {e.log_format()}")
            self.engine = None

        logger.info("=" * 74)
        logger.info("  ✓ SHUTDOWN COMPLETE")
        logger.info("=" * 74)

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    # ==================================================================
    # RUN
    # ==================================================================

    async def run(self) -> None:
        """Block until a shutdown is requested."""
        await self._shutdown_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: PingMonitorApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so the monitor shuts down gracefully
    even when killed by the OS.
    """
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        logger.info(f"  ⚡ {sig.name} received — initiating graceful shutdown…")
        app.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, OSError):
            # Not supported on Windows; KeyboardInterrupt still works
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

async def main() -> None:
    """
    Async main — creates the app, starts it, and runs until shutdown.
    """
    settings = get_settings()
    setup_logging(settings)

    app = PingMonitorApplication(settings)
    _install_signal_handlers(app)

    try:
        if not await app.startup():
            logger.error("  ✗ Startup failed — exiting")
            sys.exit(1)

        await app.run()
    finally:
        await app.shutdown()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    run()
