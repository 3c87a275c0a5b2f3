"""Shared fakes for the assistant client boundary."""

from __future__ import annotations

import pytest

from hark.assistant.base import AssistantClient, AssistantConversation
from hark.assistant.events import Started
from hark.channel.bus import NotificationChannel
from hark.core.config import AuthConfig, HarkConfig
from hark.core.metrics import metrics
from hark.handlers import EventHandlers


class FakeConversation(AssistantConversation):
    def __init__(self) -> None:
        super().__init__()
        self.written: list[bytes] = []
        self.end_calls = 0

    async def write(self, chunk: bytes) -> None:
        self.written.append(chunk)

    async def end(self) -> None:
        self.end_calls += 1


class FakeClient(AssistantClient):
    """Records start commands. With auto_start, answers each with Started."""

    name = "fake"

    def __init__(self, auth: AuthConfig | None = None, auto_start: bool = True) -> None:
        super().__init__()
        self.auth = auth
        self.auto_start = auto_start
        self.starts = []
        self.conversations: list[FakeConversation] = []

    async def start(self, conversation) -> None:
        self.starts.append(conversation)
        if self.auto_start:
            await self.begin()

    async def begin(self) -> FakeConversation:
        conversation = FakeConversation()
        self.conversations.append(conversation)
        await self.emit(Started(conversation))
        return conversation

    @property
    def conversation(self) -> FakeConversation:
        return self.conversations[-1]


def create_client(auth: AuthConfig) -> FakeClient:
    """Factory used by the registry tests (tests.conftest:create_client)."""
    return FakeClient(auth)


class RecordingHandlers(EventHandlers):
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.screens: list[str] = []
        self.audio: list[bytes] = []
        self.ended = 0
        super().__init__(
            on_query=self._on_query,
            on_screen_data=self._on_screen_data,
            on_audio_data=self._on_audio_data,
            on_conversation_ended=self._on_conversation_ended,
        )

    async def _on_query(self, text: str) -> None:
        self.queries.append(text)

    async def _on_screen_data(self, text: str) -> None:
        self.screens.append(text)

    async def _on_audio_data(self, data: bytes) -> None:
        self.audio.append(data)

    async def _on_conversation_ended(self) -> None:
        self.ended += 1


def drain(queue) -> list:
    """Everything currently sitting in a subscriber queue."""
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def kinds(queue) -> list[str]:
    return [n.kind.value for n in drain(queue)]


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def channel():
    return NotificationChannel()


@pytest.fixture
def handlers():
    return RecordingHandlers()


@pytest.fixture
def config():
    return HarkConfig(client="fake", enable_mic_on_immediate_response=True)


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def client_factory(client):
    def factory(_target, auth):
        client.auth = auth
        return client

    return factory
