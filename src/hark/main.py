"""
Hark: voice assistant session bridge.

Serves the presentation layer over one WebSocket:
    WS  /ws        notifications out (JSON), commands in (JSON / binary audio)
    GET /health    service and turn state
    GET /metrics   in-process metrics snapshot

Run: uvicorn hark.main:create_app --factory --host 127.0.0.1 --port 8765
 or: hark
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from hark.channel.bus import NotificationChannel
from hark.channel.websocket import WebSocketBridge
from hark.core.config import HarkConfig
from hark.core.logging import setup_logging
from hark.core.metrics import metrics
from hark.handlers import EventHandlers
from hark.service import AssistantService, ClientFactory

logger = logging.getLogger("hark")


def _host_handlers(bridge: WebSocketBridge) -> EventHandlers:
    """Handlers for the standalone server: audio goes to the clients, the rest is logged."""

    async def on_query(text: str) -> None:
        if text:
            logger.info("Query: %r", text[:120])

    async def on_screen_data(text: str) -> None:
        logger.debug("Screen data: %d chars", len(text))

    async def on_conversation_ended() -> None:
        logger.info("Conversation ended")

    return EventHandlers(
        on_query=on_query,
        on_screen_data=on_screen_data,
        on_audio_data=bridge.send_audio,
        on_conversation_ended=on_conversation_ended,
    )


def create_app(
    config: HarkConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    config = config or HarkConfig.from_env()

    channel = NotificationChannel()
    bridge = WebSocketBridge(channel, send_timeout=config.server.ws_send_timeout)
    service = AssistantService(config, channel, client_factory=client_factory)
    service.initialize(_host_handlers(bridge))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await service.end_conversation()
        # Ends every connection's listen() loop
        channel.close()
        logger.info("Hark shut down")

    app = FastAPI(title="Hark", version="0.1.0", lifespan=lifespan)
    app.state.channel = channel
    app.state.bridge = bridge
    app.state.service = service

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok" if service.client is not None else "degraded",
                "service": service.status(),
                "connections": bridge.connection_count(),
            }
        )

    @app.get("/metrics")
    async def get_metrics() -> JSONResponse:
        return JSONResponse(metrics.snapshot())

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:
        await bridge.handle_connection(ws)

    return app


def run() -> None:
    import uvicorn

    setup_logging()
    config = HarkConfig.from_env()
    app = create_app(config)
    logger.info("Hark listening on %s:%d", config.server.host, config.server.port)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    run()
