"""
============================================================================
PING MONITOR - CONTROL SERVER
============================================================================
A small aiohttp application that exposes the engine's command surface as a
JSON API, plus a WebSocket stream of published events.

Routes
------
    GET    /                       → "OK" (liveness)
    GET    /health                 → engine health JSON
    GET    /monitor                → state, interval, timeout
    POST   /monitor/start          → start probing        (409 if running)
    POST   /monitor/stop           → stop probing
    PUT    /monitor/interval       → {"interval_ms": int} (400 if < 100)
    PUT    /monitor/timeout        → {"timeout_ms": int}
    GET    /targets                → ordered target list
    POST   /targets                → {"address", "label"?}  (201 / 400 / 409)
    PATCH  /targets/{id}           → {"address"?, "label"?, "enabled"?}
    DELETE /targets/{id}           → removed target
    POST   /targets/{id}/toggle    → toggled target
    GET    /statistics             → {target_id: stats}
    GET    /statistics/{id}        → stats for one target
    POST   /statistics/reset       → {"target_id"?}
    GET    /config                 → AppConfig
    PUT    /config                 → apply + persist AppConfig (500 on I/O)
    GET    /outcomes/recent        → ?target_id=&count=
    GET    /presets                → preset targets
    GET    /logs                   → probe log directory and files
    GET    /events                 → WebSocket: one JSON message per event

Errors are returned as the exception's ``to_dict()`` with a status code
chosen from the exception class.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import json
import time
import weakref
from typing import Any, Dict, List, Optional, Tuple, Type

from aiohttp import WSMsgType, web
from pydantic import ValidationError

from config.settings import ApiSettings, get_settings
from exceptions.base import ConfigPersistError, PingMonitorException
from exceptions.monitoring import AlreadyRunningError
from exceptions.registry import DuplicateTargetError, NotFoundError
from exceptions.validation import ValidationException
from monitoring.engine import PingMonitorEngine
from monitoring.models import AppConfig
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("ControlServer")


# Most specific first
ERROR_STATUS: List[Tuple[Type[PingMonitorException], int]] = [
    (NotFoundError, 404),
    (DuplicateTargetError, 409),
    (AlreadyRunningError, 409),
    (ValidationException, 400),
    (ConfigPersistError, 500),
]


def status_for(error: PingMonitorException) -> int:
    """HTTP status for a domain exception."""
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


# ============================================================================
# CONTROL SERVER
# ============================================================================

class ControlServer:
    """
    aiohttp front end for a PingMonitorEngine.

    Attributes
    ----------
    app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    _request_count : int         — total requests served
    """

    def __init__(self, engine: PingMonitorEngine, settings: Optional[ApiSettings] = None):
        self.engine = engine
        self.settings = settings or get_settings().api
        self._host = self.settings.host
        self._port = self.settings.port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: float = time.time()
        self._request_count: int = 0
        self._websockets: "weakref.WeakSet[web.WebSocketResponse]" = weakref.WeakSet()

        self.app = web.Application(middlewares=[self._error_middleware])
        self.app.on_shutdown.append(self._close_websockets)
        self._register_routes()

    def _register_routes(self) -> None:
        router = self.app.router
        router.add_get("/", self._handle_root)
        router.add_get("/health", self._handle_health)

        router.add_get("/monitor", self._handle_monitor_state)
        router.add_post("/monitor/start", self._handle_start)
        router.add_post("/monitor/stop", self._handle_stop)
        router.add_put("/monitor/interval", self._handle_set_interval)
        router.add_put("/monitor/timeout", self._handle_set_timeout)

        router.add_get("/targets", self._handle_list_targets)
        router.add_post("/targets", self._handle_add_target)
        router.add_patch("/targets/{target_id}", self._handle_update_target)
        router.add_delete("/targets/{target_id}", self._handle_remove_target)
        router.add_post("/targets/{target_id}/toggle", self._handle_toggle_target)

        router.add_get("/statistics", self._handle_all_statistics)
        router.add_get("/statistics/{target_id}", self._handle_target_statistics)
        router.add_post("/statistics/reset", self._handle_reset_statistics)

        router.add_get("/config", self._handle_get_config)
        router.add_put("/config", self._handle_save_config)

        router.add_get("/outcomes/recent", self._handle_recent_outcomes)
        router.add_get("/presets", self._handle_presets)
        router.add_get("/logs", self._handle_logs)
        router.add_get("/events", self._handle_events)

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bind and start serving."""
        self._start_time = time.time()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        logger.info(f"✓ Control server listening on http://{self._host}:{self._port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ Control server stopped")

    async def _close_websockets(self, app: web.Application) -> None:
        for ws in list(self._websockets):
            await ws.close(code=1001, message=b"Server shutdown")

    # ------------------------------------------------------------------
    # MIDDLEWARE & HELPERS
    # ------------------------------------------------------------------

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        self._request_count += 1
        try:
            return await handler(request)
        except PingMonitorException as e:
            status = status_for(e)
            if status >= 500:
                logger.error(f"{request.method} {request.path} → {status}: {e.log_format()}")
            else:
                logger.debug(f"{request.method} {request.path} → {status}: {e}")
            return web.json_response(e.to_dict(), status=status)

    @staticmethod
    async def _json_body(request: web.Request, required: bool = True) -> Dict[str, Any]:
        if not request.can_read_body:
            if required:
                raise ValidationException("Request body is required")
            return {}
        try:
            body = await request.json()
        except json.JSONDecodeError as e:
            raise ValidationException("Request body must be valid JSON", cause=e) from e
        if not isinstance(body, dict):
            raise ValidationException("Request body must be a JSON object")
        return body

    @staticmethod
    def _require(body: Dict[str, Any], key: str) -> Any:
        if key not in body:
            raise ValidationException(f"Missing field '{key}'", field=key)
        return body[key]

    @staticmethod
    def _query_int(request: web.Request, key: str) -> Optional[int]:
        raw = request.query.get(key)
        if raw is None or raw == "":
            return None
        try:
            return int(raw)
        except ValueError as e:
            raise ValidationException(
                f"Query parameter '{key}' must be an integer", field=key, value=raw, cause=e
            ) from e

    def _monitor_payload(self) -> Dict[str, Any]:
        scheduler = self.engine.scheduler
        return {
            "state": scheduler.state.value,
            "interval_ms": scheduler.interval_ms,
            "timeout_ms": scheduler.timeout_ms,
        }

    # ------------------------------------------------------------------
    # LIVENESS / HEALTH
    # ------------------------------------------------------------------

    async def _handle_root(self, request: web.Request) -> web.Response:
        """GET / — simple liveness probe."""
        return web.Response(text="OK", status=200)

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health — detailed health JSON."""
        app_settings = self.engine.settings
        health = self.engine.get_health()
        health.update({
            "app_name": app_settings.app_name,
            "app_version": app_settings.app_version,
            "requests_served": self._request_count,
            "server_uptime_seconds": round(time.time() - self._start_time, 1),
            "timestamp": TimeHelper.to_rfc3339(TimeHelper.get_utc_now()),
        })
        return web.json_response(health)

    # ------------------------------------------------------------------
    # MONITOR
    # ------------------------------------------------------------------

    async def _handle_monitor_state(self, request: web.Request) -> web.Response:
        return web.json_response(self._monitor_payload())

    async def _handle_start(self, request: web.Request) -> web.Response:
        await self.engine.start()
        return web.json_response(self._monitor_payload())

    async def _handle_stop(self, request: web.Request) -> web.Response:
        await self.engine.stop()
        return web.json_response(self._monitor_payload())

    async def _handle_set_interval(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        self.engine.set_interval(self._require(body, "interval_ms"))
        return web.json_response(self._monitor_payload())

    async def _handle_set_timeout(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        self.engine.set_timeout(self._require(body, "timeout_ms"))
        return web.json_response(self._monitor_payload())

    # ------------------------------------------------------------------
    # TARGETS
    # ------------------------------------------------------------------

    async def _handle_list_targets(self, request: web.Request) -> web.Response:
        return web.json_response([t.to_dict() for t in self.engine.list_targets()])

    async def _handle_add_target(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        target = self.engine.add_target(self._require(body, "address"), body.get("label"))
        return web.json_response(target.to_dict(), status=201)

    async def _handle_update_target(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        target = self.engine.update_target(request.match_info["target_id"], **body)
        return web.json_response(target.to_dict())

    async def _handle_remove_target(self, request: web.Request) -> web.Response:
        target = self.engine.remove_target(request.match_info["target_id"])
        return web.json_response(target.to_dict())

    async def _handle_toggle_target(self, request: web.Request) -> web.Response:
        target = self.engine.toggle_target(request.match_info["target_id"])
        return web.json_response(target.to_dict())

    # ------------------------------------------------------------------
    # STATISTICS
    # ------------------------------------------------------------------

    async def _handle_all_statistics(self, request: web.Request) -> web.Response:
        snapshot = self.engine.get_statistics()
        return web.json_response({tid: stats.to_dict() for tid, stats in snapshot.items()})

    async def _handle_target_statistics(self, request: web.Request) -> web.Response:
        stats = self.engine.get_statistics(request.match_info["target_id"])
        return web.json_response(stats.to_dict())

    async def _handle_reset_statistics(self, request: web.Request) -> web.Response:
        body = await self._json_body(request, required=False)
        target_id = body.get("target_id")
        self.engine.reset_statistics(target_id)
        return web.json_response({"reset": target_id or "all"})

    # ------------------------------------------------------------------
    # CONFIG
    # ------------------------------------------------------------------

    async def _handle_get_config(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.get_config().model_dump(mode="json"))

    async def _handle_save_config(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        try:
            config = AppConfig.model_validate(body)
        except ValidationError as e:
            raise ValidationException(
                f"Invalid config ({e.error_count()} error(s))",
                cause=e,
                details={"errors": json.loads(e.json())},
            ) from e
        applied = self.engine.save_config(config)
        return web.json_response(applied.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # OUTCOMES / PRESETS / LOGS
    # ------------------------------------------------------------------

    async def _handle_recent_outcomes(self, request: web.Request) -> web.Response:
        outcomes = self.engine.get_recent_outcomes(
            target_id=request.query.get("target_id") or None,
            count=self._query_int(request, "count"),
        )
        return web.json_response([o.to_dict() for o in outcomes])

    async def _handle_presets(self, request: web.Request) -> web.Response:
        return web.json_response([t.to_dict() for t in self.engine.get_preset_targets()])

    async def _handle_logs(self, request: web.Request) -> web.Response:
        return web.json_response({
            "log_dir": str(self.engine.get_log_path()),
            "files": [p.name for p in self.engine.list_log_files()],
        })

    # ------------------------------------------------------------------
    # EVENTS (WebSocket)
    # ------------------------------------------------------------------

    async def _handle_events(self, request: web.Request) -> web.WebSocketResponse:
        """GET /events — stream every published event as JSON text frames."""
        ws = web.WebSocketResponse(heartbeat=30.0)
        # Subscribe before the handshake so no event after it is missed
        subscription = self.engine.subscribe()
        reader: Optional[asyncio.Task] = None

        try:
            await ws.prepare(request)
            self._websockets.add(ws)
            reader = asyncio.create_task(self._read_until_closed(ws, subscription))
            logger.info(f"Event stream opened ({self.engine.publisher.subscriber_count} subscriber(s))")

            async for event in subscription:
                if ws.closed:
                    break
                await ws.send_json(event.to_dict())
        except ConnectionResetError:
            logger.debug("Event stream client went away")
        finally:
            subscription.close()
            if reader is not None:
                reader.cancel()
            if ws.prepared and not ws.closed:
                await ws.close()
            logger.info("Event stream closed")

        return ws

    @staticmethod
    async def _read_until_closed(ws: web.WebSocketResponse, subscription) -> None:
        # Inbound frames are ignored; the loop only ends the stream on close
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    logger.warning(f"Event stream error: {ws.exception()}")
                    break
        finally:
            subscription.close()
