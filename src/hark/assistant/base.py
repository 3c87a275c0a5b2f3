"""
Assistant client contract: the boundary to the remote assistant backend.

A concrete client keeps the streaming connection to the backend. Hark never
speaks the backend's wire protocol; it only:

- registers one typed listener on the client and one per conversation
- sends start(conversation_config), write(chunk) and end()

Implementations call emit() with events from hark.assistant.events.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Awaitable, Callable

from hark.assistant.events import ClientEvent, ConversationEvent

if TYPE_CHECKING:
    from hark.core.config import ConversationConfig

logger = logging.getLogger(__name__)

ClientListener = Callable[[ClientEvent], Awaitable[None]]
ConversationListener = Callable[[ConversationEvent], Awaitable[None]]


class AssistantConversation(ABC):
    """One live conversation with the backend."""

    def __init__(self) -> None:
        self._listeners: list[ConversationListener] = []

    def on_event(self, listener: ConversationListener) -> None:
        self._listeners.append(listener)

    async def emit(self, event: ConversationEvent) -> None:
        """Deliver an event to every listener, in registration order."""
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.error(
                    "Conversation listener failed on %s: %s",
                    type(event).__name__,
                    e,
                    exc_info=True,
                )

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        """Send a chunk of microphone audio."""
        ...

    @abstractmethod
    async def end(self) -> None:
        """Ask the backend to finish this conversation."""
        ...


class AssistantClient(ABC):
    """Connection to the assistant backend."""

    name: str = "base"

    def __init__(self) -> None:
        self._listeners: list[ClientListener] = []

    def on_event(self, listener: ClientListener) -> None:
        self._listeners.append(listener)

    async def emit(self, event: ClientEvent) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.error(
                    "Client listener failed on %s: %s",
                    type(event).__name__,
                    e,
                    exc_info=True,
                )

    @abstractmethod
    async def start(self, conversation: "ConversationConfig") -> None:
        """Start a conversation. The client answers with a Started event."""
        ...
