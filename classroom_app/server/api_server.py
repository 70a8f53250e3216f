"""FastAPI server that exposes the classroom WebSocket endpoint."""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
import logging
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from classroom_app.config import Settings, settings as default_settings
from classroom_app.constants.about import APP_ABOUT_TEXT, APP_VERSION
from classroom_app.constants.network_constants import WEBSOCKET_PATH
from classroom_app.core.classroom_gateway import ConnectionGateway, build_gateway
from classroom_app.core.protocol import Outbound

logger = logging.getLogger(__name__)


class ConnectionHub:
    """Owns the live sockets and one ordered outbox per connection.

    Gateway calls never await, so each inbound message is applied in full
    before the next one is looked at. Replies are queued synchronously in the
    order the gateway produced them and written by one task per connection,
    so a slow client only delays its own outbox.
    """

    def __init__(self, gateway: ConnectionGateway) -> None:
        self._gateway = gateway
        self._outboxes: dict[str, asyncio.Queue[dict[str, Any]]] = {}

    @property
    def gateway(self) -> ConnectionGateway:
        return self._gateway

    def connection_count(self) -> int:
        return len(self._outboxes)

    def open_outbox(self, conn_id: str) -> asyncio.Queue[dict[str, Any]]:
        outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._outboxes[conn_id] = outbox
        return outbox

    def close_outbox(self, conn_id: str) -> None:
        """Stop queueing for a connection; later messages to it are dropped."""
        self._outboxes.pop(conn_id, None)

    def dispatch(self, outbound: list[Outbound]) -> None:
        for message in outbound:
            outbox = self._outboxes.get(message.target_id)
            if outbox is None:
                logger.debug("Dropping %s for closed connection %s", message.event, message.target_id)
                continue
            outbox.put_nowait(message.to_frame())

    async def serve(self, websocket: WebSocket) -> None:
        await websocket.accept()
        conn_id = uuid4().hex
        outbox = self.open_outbox(conn_id)
        logger.debug("Connection %s opened", conn_id)
        writer = asyncio.create_task(self.write_outbox(conn_id, websocket, outbox))
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                self.dispatch(self._gateway.handle_raw(conn_id, raw))
        except WebSocketDisconnect:
            pass
        finally:
            self.close_outbox(conn_id)
            self.dispatch(self._gateway.disconnect(conn_id))
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    async def write_outbox(
        self,
        conn_id: str,
        websocket: WebSocket,
        outbox: asyncio.Queue[dict[str, Any]],
    ) -> None:
        while True:
            frame = await outbox.get()
            try:
                await websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError):
                logger.info("Stopped writing to %s: connection is gone", conn_id)
                self.close_outbox(conn_id)
                return

    async def sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.dispatch(self._gateway.sweep())


def create_api_app(
    app_settings: Settings | None = None,
    gateway: ConnectionGateway | None = None,
) -> FastAPI:
    """Create a FastAPI application with its own registry and gateway."""
    app_settings = app_settings or default_settings
    gateway = gateway or build_gateway(
        timeout_seconds=app_settings.TRANSFER_TIMEOUT_SECONDS,
        teacher_only_roster=app_settings.ROSTER_BROADCAST_TEACHER_ONLY,
    )
    hub = ConnectionHub(gateway)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s...", app_settings.APP_NAME)
        sweeper = asyncio.create_task(
            hub.sweep_forever(app_settings.TRANSFER_SWEEP_INTERVAL_SECONDS)
        )
        yield
        logger.info("Shutting down...")
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper

    app = FastAPI(
        title=app_settings.APP_NAME,
        description=APP_ABOUT_TEXT,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["Health"])
    async def root() -> dict[str, object]:
        """Health check endpoint."""
        return {
            "status": "online",
            "app": app_settings.APP_NAME,
            "version": APP_VERSION,
        }

    @app.get("/api/v1/health", tags=["Health"])
    async def health_check() -> dict[str, object]:
        """Detailed health check."""
        return {
            "status": "healthy",
            "app": app_settings.APP_NAME,
            "version": APP_VERSION,
            "rooms": hub.gateway.registry.room_count(),
            "bound_connections": hub.gateway.registry.connection_count(),
            "open_connections": hub.connection_count(),
        }

    @app.websocket(WEBSOCKET_PATH)
    async def classroom_socket(websocket: WebSocket) -> None:
        await hub.serve(websocket)

    return app


def run_api_server(app_settings: Settings | None = None) -> None:
    """Serve the application with uvicorn until interrupted."""
    app_settings = app_settings or default_settings
    app = create_api_app(app_settings)
    config = uvicorn.Config(
        app=app,
        host=app_settings.HOST,
        port=app_settings.PORT,
        log_level=app_settings.LOG_LEVEL.lower(),
        ws_max_size=app_settings.max_message_size_bytes,
    )
    server = uvicorn.Server(config)
    server.run()
