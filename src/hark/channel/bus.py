"""
Notification Channel: the in-process bus between hark and the presentation layer.

Two directions, two mechanisms:

- Outbound: publish() fans a Notification out to subscriber queues. Each
  subscriber (one per connected UI) gets its own asyncio.Queue, so a slow
  client never blocks the relay. publish() never waits; a full queue drops
  the notification.
- Inbound: emit() runs the handlers registered for the command's type, in
  registration order. once() handlers are removed before they run.

Usage:
    channel = NotificationChannel()

    queue = channel.subscribe()
    await channel.publish(Notification.conversation_ended())
    async for notification in channel.listen(queue):
        ...

    channel.on(Invoke, handle_invoke)
    await channel.emit(Invoke(query="weather today"))
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, AsyncGenerator, Awaitable, Callable

from hark.channel.messages import Command, Notification

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Awaitable[None]]

# Sentinel that ends listen()
_CLOSED = object()


class NotificationChannel:
    """Async pub/sub for notifications plus typed command dispatch."""

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue] = []
        # command type → [(handler, once)]
        self._handlers: dict[type, list[tuple[CommandHandler, bool]]] = defaultdict(
            list
        )

    # ─── Outbound ────────────────────────────────────────────────

    async def publish(self, notification: Notification) -> int:
        """Deliver to every subscriber. Returns how many received it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(notification)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Subscriber queue full, dropping %s notification",
                    notification.kind.value,
                )
        logger.debug(
            "→ %s (%d subscribers)",
            notification.kind.value,
            delivered,
            extra={"event": notification.kind.value},
        )
        return delivered

    def subscribe(self, maxsize: int = 1000) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        logger.debug("Subscribed (total: %d)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Safe to call for a queue that is already gone."""
        try:
            self._subscribers.remove(queue)
        except ValueError:
            return
        logger.debug("Unsubscribed (total: %d)", len(self._subscribers))

    async def listen(self, queue: asyncio.Queue) -> AsyncGenerator[Notification, None]:
        """Yield notifications from a subscriber queue until close()."""
        while True:
            item = await queue.get()
            if item is _CLOSED:
                break
            yield item

    def close(self) -> None:
        """End every listen() loop and drop all subscribers."""
        subscribers, self._subscribers = self._subscribers, []
        for queue in subscribers:
            try:
                queue.put_nowait(_CLOSED)
            except asyncio.QueueFull:
                # Make room so the listener still sees the end of stream
                queue.get_nowait()
                queue.put_nowait(_CLOSED)

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ─── Inbound ─────────────────────────────────────────────────

    def on(self, command_type: type, handler: CommandHandler) -> None:
        self._handlers[command_type].append((handler, False))

    def once(self, command_type: type, handler: CommandHandler) -> None:
        """Register a handler that runs for the next command of this type only."""
        self._handlers[command_type].append((handler, True))

    def off(self, command_type: type, handler: CommandHandler) -> None:
        self._handlers[command_type] = [
            entry for entry in self._handlers[command_type] if entry[0] != handler
        ]

    def handler_count(self, command_type: type) -> int:
        return len(self._handlers.get(command_type, []))

    async def emit(self, command: Command) -> int:
        """Run the handlers for a command. Returns how many ran.

        A failing handler is logged; the remaining handlers still run.
        """
        command_type = type(command)
        entries = list(self._handlers.get(command_type, []))
        if not entries:
            logger.debug("← %s (no handlers)", command.type)
            return 0

        # Drop one-shot handlers before running, so a re-entrant emit
        # cannot fire them twice.
        self._handlers[command_type] = [entry for entry in entries if not entry[1]]

        logger.debug("← %s (%d handlers)", command.type, len(entries))
        for handler, _once in entries:
            try:
                await handler(command)
            except Exception as e:
                logger.error(
                    "Command handler for %s failed: %s",
                    command.type,
                    e,
                    exc_info=True,
                    extra={"command": command.type},
                )
        return len(entries)
