"""
AssistantService: owns the assistant client and at most one active turn.

Control surface for the host application:
    initialize(handlers)        build the client, wire events and commands
    invoke_assistant(query)     start a turn (text if query, else microphone)
    feed_audio(buffer)          microphone audio for the active turn
    end_conversation()          host-initiated end of the active turn

Turn lifecycle: idle → starting → active → ended → idle.

Starting a turn while another is open ends the old one first; its trailing
events are then dropped by its (closed) ConversationSession.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from typing import Callable

from hark.assistant.base import AssistantClient, AssistantConversation
from hark.assistant.events import ClientError, ClientEvent, Ready, Started
from hark.assistant.registry import get_assistant_client
from hark.auth import make_token_input
from hark.channel.bus import NotificationChannel
from hark.channel.messages import EndConversation, Invoke, MicAudioData, Notification
from hark.core.config import AuthConfig, HarkConfig
from hark.core.metrics import metrics
from hark.errors import NotInitializedError
from hark.handlers import EventHandlers
from hark.session import ConversationSession, TurnState

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, AuthConfig], AssistantClient]


class AssistantService:
    def __init__(
        self,
        config: HarkConfig,
        channel: NotificationChannel,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config
        self.channel = channel
        self.client: AssistantClient | None = None
        self.session: ConversationSession | None = None
        self.handlers = EventHandlers()
        self.state = TurnState.IDLE
        self.initialized = False

        self._client_factory = client_factory or get_assistant_client
        # One entry per start command not yet answered by Started, oldest first
        self._pending_queries: deque[str | None] = deque()

    # ─── Setup ───────────────────────────────────────────────────

    def initialize(self, handlers: EventHandlers) -> None:
        if self.initialized:
            logger.warning("AssistantService.initialize() called twice; ignoring")
            return
        self.initialized = True
        self.handlers = handlers

        auth = self.config.auth
        if auth.token_input is None:
            auth = replace(auth, token_input=make_token_input(self.channel))

        try:
            client = self._client_factory(self.config.client, auth)
            client.on_event(self._on_client_event)
            self.client = client
            logger.info("Assistant service initialized")
        except Exception as e:
            self.client = None
            metrics.inc("client.init_failed")
            logger.error("Assistant initialization failed: %s", e, exc_info=True)

        # Registered even without a client, so invokes fail visibly.
        self.channel.on(Invoke, self._on_invoke)
        self.channel.on(MicAudioData, self._on_mic_audio)
        self.channel.on(EndConversation, self._on_end_conversation)

    # ─── Turn control ────────────────────────────────────────────

    async def invoke_assistant(self, text_query: str | None = None) -> None:
        """Start a turn. A non-empty text_query makes it a text turn."""
        if self.client is None:
            raise NotInitializedError(
                "Cannot start a conversation: the assistant client failed to initialize"
            )

        if self.session is not None:
            metrics.inc("turns.superseded")
            logger.info(
                "New turn requested while turn %s is open; ending it first",
                self.session.turn_id,
            )
            await self.session.end()

        conversation = self.config.conversation.with_text_query(text_query)
        self._pending_queries.append(conversation.text_query)
        self._transition(TurnState.STARTING)
        metrics.inc(
            "turns.started",
            labels={"mode": "text" if conversation.text_query else "mic"},
        )

        try:
            await self.client.start(conversation)
        except Exception:
            try:
                self._pending_queries.remove(conversation.text_query)
            except ValueError:
                pass
            if self.session is None:
                # Another start may still be waiting for its conversation
                self._transition(
                    TurnState.STARTING if self._pending_queries else TurnState.IDLE
                )
            raise

    async def handle_conversation(self, conversation: AssistantConversation) -> None:
        """Adopt the conversation produced by a start command."""
        if self.session is not None:
            metrics.inc("turns.superseded")
            logger.warning(
                "Conversation started while turn %s is still open; ending it",
                self.session.turn_id,
            )
            await self.session.end()

        query = self._pending_queries.popleft() if self._pending_queries else None
        session = ConversationSession(
            conversation,
            self.channel,
            self.handlers,
            auto_continue=self.config.enable_mic_on_immediate_response,
            query=query,
            on_closed=self._on_session_closed,
        )
        self.session = session
        session.attach()
        self._transition(TurnState.ACTIVE)
        metrics.gauge_set("session.active", 1)
        logger.info("Turn %s started", session.turn_id, extra={"turn_id": session.turn_id})

    async def feed_audio(self, buffer: bytes) -> None:
        if self.session is None:
            metrics.inc("audio.in.dropped")
            return
        await self.session.write(buffer)

    async def end_conversation(self) -> None:
        if self.session is None:
            return
        # The session's close hook clears self.session before the backend
        # is asked to end.
        await self.session.end()

    def status(self) -> dict:
        return {
            "initialized": self.initialized,
            "client": self.client.name if self.client else None,
            "state": self.state.value,
            "turn_id": self.session.turn_id if self.session else None,
        }

    # ─── Client events ───────────────────────────────────────────

    async def _on_client_event(self, event: ClientEvent) -> None:
        if isinstance(event, Ready):
            logger.debug("Assistant client ready")
        elif isinstance(event, Started):
            await self.handle_conversation(event.conversation)
        elif isinstance(event, ClientError):
            metrics.inc("client.errors")
            logger.error("Assistant client error: %s", event.error)
            await self.channel.publish(
                Notification.error(str(event.error), source="client")
            )
        else:
            logger.warning("Unknown client event: %s", type(event).__name__)

    def _on_session_closed(self, session: ConversationSession) -> None:
        if self.session is not session:
            return
        self.session = None
        self._transition(TurnState.ENDED)
        self._transition(TurnState.IDLE)
        metrics.gauge_set("session.active", 0)

    def _transition(self, new_state: TurnState) -> None:
        if new_state == self.state:
            return
        logger.debug(
            "Turn state %s → %s",
            self.state.value,
            new_state.value,
            extra={"state": new_state.value},
        )
        self.state = new_state

    # ─── Host commands ───────────────────────────────────────────

    async def _on_invoke(self, command: Invoke) -> None:
        await self.channel.publish(Notification.stop_audio_playback())
        try:
            await self.invoke_assistant(command.query)
        except Exception as e:
            source = "service" if isinstance(e, NotInitializedError) else "client"
            await self.channel.publish(Notification.error(str(e), source=source))
            raise
        await self.handlers.notify("on_query", command.query or "")

    async def _on_mic_audio(self, command: MicAudioData) -> None:
        await self.feed_audio(command.buffer)

    async def _on_end_conversation(self, _command: EndConversation) -> None:
        await self.end_conversation()
