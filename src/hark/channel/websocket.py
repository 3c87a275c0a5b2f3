"""
WebSocket bridge: connects presentation clients to the NotificationChannel.

Per connection:
  1. Subscribe to the channel (before accept, so nothing published during
     the handshake is missed)
  2. Forward every Notification as a JSON text frame
  3. Parse inbound frames into commands and emit them on the channel:
       text   → JSON → parse_command()
       binary → MicAudioData (raw LINEAR16 microphone audio)
  4. Unsubscribe on disconnect

Assistant speech goes out through send_audio() as binary frames.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid

from fastapi import WebSocket, WebSocketDisconnect

from hark.channel.bus import NotificationChannel
from hark.channel.messages import MicAudioData, parse_command
from hark.errors import UnknownCommandError

logger = logging.getLogger(__name__)


class WebSocketBridge:
    """Pure connection handler; no turn logic lives here."""

    def __init__(self, channel: NotificationChannel, send_timeout: float = 5.0) -> None:
        self.channel = channel
        self.send_timeout = send_timeout
        # connection_id → WebSocket
        self._connections: dict[str, WebSocket] = {}

    def connection_count(self) -> int:
        return len(self._connections)

    async def handle_connection(self, websocket: WebSocket) -> None:
        connection_id = str(uuid.uuid4())[:8]
        queue = self.channel.subscribe()

        await websocket.accept()
        self._connections[connection_id] = websocket
        logger.info("WS connected: %s", connection_id)

        sender = asyncio.create_task(
            self._forward_notifications(websocket, queue),
            name=f"ws-notify-{connection_id}",
        )
        try:
            await self._receive_loop(websocket, connection_id)
        except WebSocketDisconnect:
            logger.info("WS disconnected: %s", connection_id)
        except Exception as e:
            logger.error("WS error on %s: %s", connection_id, e, exc_info=True)
        finally:
            self.channel.unsubscribe(queue)
            self._connections.pop(connection_id, None)
            sender.cancel()
            try:
                await sender
            except (asyncio.CancelledError, Exception):
                pass
            logger.debug("WS cleaned up: %s", connection_id)

    async def send_audio(self, chunk: bytes) -> None:
        """Send assistant audio to every connected client."""
        for connection_id, ws in list(self._connections.items()):
            try:
                await asyncio.wait_for(ws.send_bytes(chunk), timeout=self.send_timeout)
            except Exception as e:
                logger.debug("Audio send to %s failed: %s", connection_id, e)

    # ─── Internals ───────────────────────────────────────────────

    async def _forward_notifications(
        self, websocket: WebSocket, queue: asyncio.Queue
    ) -> None:
        async for notification in self.channel.listen(queue):
            try:
                await asyncio.wait_for(
                    websocket.send_json(notification.to_dict()),
                    timeout=self.send_timeout,
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "Failed to send %s notification: %s", notification.kind.value, e
                )

    async def _receive_loop(self, websocket: WebSocket, connection_id: str) -> None:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw_bytes = message.get("bytes")
            if raw_bytes is not None:
                await self.channel.emit(MicAudioData(buffer=raw_bytes))
                continue

            raw_text = message.get("text")
            if raw_text is None:
                continue
            logger.debug("← WS IN (%s): %s", connection_id, raw_text[:200])

            try:
                command = parse_command(json.loads(raw_text))
            except json.JSONDecodeError:
                logger.error("Invalid JSON received on %s", connection_id)
                continue
            except (UnknownCommandError, AttributeError) as e:
                logger.warning("Rejected frame on %s: %s", connection_id, e)
                continue

            await self.channel.emit(command)
