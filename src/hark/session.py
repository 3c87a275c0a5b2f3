"""
ConversationSession: relays one conversation's events for exactly one turn.

The session wraps the client's conversation handle. Every event is turned
into notifications for the presentation layer and calls into the host's
EventHandlers:

    AudioData          → on_audio_data(bytes)
    Transcription      → "transcription" (+ on_query(text) when done)
    ScreenData         → "screen-data" + on_screen_data(text)
    EndOfUtterance     → "end-of-utterance"
    Ended              → "conversation-ended" + on_conversation_ended()
                         (+ "start-microphone" when the backend expects an answer)
    ConversationError  → "error"

Once the session is closed (Ended received, or the host ended it) every
later event for this handle is dropped.
"""

from __future__ import annotations

import logging
import time
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Callable

from hark.assistant.events import (
    AudioData,
    ConversationError,
    ConversationEvent,
    EndOfUtterance,
    Ended,
    ScreenData,
    Transcription,
)
from hark.channel.messages import Notification
from hark.core.logging import turn_context
from hark.core.metrics import metrics

if TYPE_CHECKING:
    from hark.assistant.base import AssistantConversation
    from hark.channel.bus import NotificationChannel
    from hark.handlers import EventHandlers

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    ENDED = "ended"


class ConversationSession:
    """One in-flight turn."""

    def __init__(
        self,
        conversation: "AssistantConversation",
        channel: "NotificationChannel",
        handlers: "EventHandlers",
        *,
        auto_continue: bool = False,
        query: str | None = None,
        on_closed: Callable[["ConversationSession"], None] | None = None,
    ) -> None:
        self.conversation = conversation
        self.channel = channel
        self.handlers = handlers
        self.auto_continue = auto_continue
        self.turn_id = str(uuid.uuid4())[:8]
        self.is_open = True
        self.started_at = time.monotonic()

        # The query already handed to on_query for this turn (text turns)
        self._reported_query = query or None
        self._on_closed = on_closed
        self._audio_chunks = 0

    def attach(self) -> None:
        """Start receiving the conversation's events."""
        self.conversation.on_event(self.dispatch)

    # ─── Host side ───────────────────────────────────────────────

    async def write(self, chunk: bytes) -> None:
        if not self.is_open:
            metrics.inc("audio.in.dropped")
            return
        await self.conversation.write(chunk)

    async def end(self) -> None:
        """Host-initiated end. Late events from the backend are ignored."""
        if not self.is_open:
            return
        self._close()
        logger.info("Turn %s ended by host", self.turn_id, extra={"turn_id": self.turn_id})
        await self.conversation.end()

    # ─── Backend side ────────────────────────────────────────────

    async def dispatch(self, event: ConversationEvent) -> None:
        kind = type(event).__name__
        if not self.is_open:
            metrics.inc("conversation.events.dropped")
            logger.debug(
                "Dropping %s for closed turn %s",
                kind,
                self.turn_id,
                extra={"turn_id": self.turn_id, "event": kind},
            )
            return

        metrics.inc("conversation.events", labels={"kind": kind})
        with turn_context(self.turn_id):
            await self._relay(event)

    async def _relay(self, event: ConversationEvent) -> None:
        if isinstance(event, AudioData):
            await self._on_audio_data(event)
        elif isinstance(event, Transcription):
            await self._on_transcription(event)
        elif isinstance(event, ScreenData):
            await self._on_screen_data(event)
        elif isinstance(event, EndOfUtterance):
            await self.channel.publish(Notification.end_of_utterance())
        elif isinstance(event, Ended):
            await self._on_ended(event)
        elif isinstance(event, ConversationError):
            logger.error("Conversation error: %s", event.error)
            await self.channel.publish(
                Notification.error(str(event.error), source="conversation")
            )
        else:
            logger.warning("Unknown conversation event: %s", type(event).__name__)

    async def _on_audio_data(self, event: AudioData) -> None:
        self._audio_chunks += 1
        if self._audio_chunks == 1:
            logger.debug("First audio chunk")
        await self.handlers.notify("on_audio_data", bytes(event.data))

    async def _on_transcription(self, event: Transcription) -> None:
        await self.channel.publish(Notification.transcription(event.text, event.done))
        if not event.done:
            return
        if event.text == self._reported_query:
            # Text turns already reported this query at invoke time
            return
        self._reported_query = event.text
        logger.info("Final transcription: %r", event.text[:120])
        await self.handlers.notify("on_query", event.text)

    async def _on_screen_data(self, event: ScreenData) -> None:
        text = event.text
        await self.channel.publish(Notification.screen_data(text, event.metadata))
        await self.handlers.notify("on_screen_data", text)

    async def _on_ended(self, event: Ended) -> None:
        self._close()
        if event.error:
            logger.error("Conversation ended with error: %s", event.error)
            await self.channel.publish(
                Notification.error(str(event.error), source="conversation")
            )

        await self.channel.publish(Notification.conversation_ended())
        await self.handlers.notify("on_conversation_ended")

        if event.should_continue and self.auto_continue:
            logger.info("Backend expects a follow-up, reopening microphone")
            await self.channel.publish(Notification.start_microphone())

    def _close(self) -> None:
        self.is_open = False
        duration_ms = (time.monotonic() - self.started_at) * 1000
        metrics.observe("turn.duration_ms", duration_ms)
        metrics.inc("turns.ended")
        if self._on_closed:
            self._on_closed(self)
