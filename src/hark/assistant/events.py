"""
Assistant events: the closed set of things a client or conversation can emit.

Client-level:       Ready, Started, ClientError
Conversation-level: AudioData, Transcription, ScreenData, EndOfUtterance,
                    Ended, ConversationError

Consumers dispatch with isinstance(); there are no string event names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from hark.assistant.base import AssistantConversation


@dataclass(frozen=True)
class Ready:
    """Client is authenticated and can accept start commands."""


@dataclass(frozen=True)
class Started:
    """A start command produced a live conversation."""

    conversation: "AssistantConversation"


@dataclass(frozen=True)
class ClientError:
    error: BaseException | str


@dataclass(frozen=True)
class AudioData:
    """One chunk of assistant speech, in the configured output encoding."""

    data: bytes


@dataclass(frozen=True)
class Transcription:
    """Speech recognition of the user. done=False for interim hypotheses."""

    text: str
    done: bool = False


@dataclass(frozen=True)
class ScreenData:
    """Visual response. data is the raw document; metadata carries the rest
    (format etc.) untouched."""

    data: bytes | str
    metadata: dict = field(default_factory=dict)

    @property
    def text(self) -> str:
        if isinstance(self.data, (bytes, bytearray, memoryview)):
            return bytes(self.data).decode("utf-8", errors="replace")
        return str(self.data)


@dataclass(frozen=True)
class EndOfUtterance:
    """The user stopped speaking."""


@dataclass(frozen=True)
class Ended:
    """Conversation is over. should_continue: backend expects a follow-up answer."""

    error: BaseException | str | None = None
    should_continue: bool = False


@dataclass(frozen=True)
class ConversationError:
    error: BaseException | str


ClientEvent = Union[Ready, Started, ClientError]

ConversationEvent = Union[
    AudioData,
    Transcription,
    ScreenData,
    EndOfUtterance,
    Ended,
    ConversationError,
]
