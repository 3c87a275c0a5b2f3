"""
Channel messages: what flows between hark and the presentation layer.

Inbound commands (presentation → hark) are small dataclasses keyed by type.
Outbound notifications (hark → presentation) are Notification objects with a
NotificationKind and a JSON-safe payload.

Wire format (JSON text frames):
    {"type": "invoke", "query": "weather today"}
    {"type": "feed-audio", "buffer": "<base64 PCM>"}
    {"type": "end-conversation"}
    {"type": "oauth-code-submitted", "code": "4/0Ab..."}
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from hark.errors import UnknownCommandError


# ─── Inbound commands ────────────────────────────────────────────


@dataclass(frozen=True)
class Invoke:
    """Start a turn. query=None means microphone input."""

    type: ClassVar[str] = "invoke"
    query: str | None = None


@dataclass(frozen=True)
class MicAudioData:
    type: ClassVar[str] = "feed-audio"
    buffer: bytes = b""


@dataclass(frozen=True)
class EndConversation:
    type: ClassVar[str] = "end-conversation"


@dataclass(frozen=True)
class OAuthCodeSubmitted:
    type: ClassVar[str] = "oauth-code-submitted"
    code: str = ""


Command = Union[Invoke, MicAudioData, EndConversation, OAuthCodeSubmitted]


def parse_command(raw: dict[str, Any]) -> Command:
    """Build a command from a decoded JSON frame."""
    msg_type = raw.get("type")

    if msg_type == Invoke.type:
        query = raw.get("query")
        return Invoke(query=str(query) if query else None)

    if msg_type == MicAudioData.type:
        encoded = raw.get("buffer") or ""
        try:
            buffer = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise UnknownCommandError(
                f"feed-audio buffer is not valid base64: {e}"
            ) from e
        return MicAudioData(buffer=buffer)

    if msg_type == EndConversation.type:
        return EndConversation()

    if msg_type == OAuthCodeSubmitted.type:
        code = raw.get("code")
        if not code:
            raise UnknownCommandError("oauth-code-submitted without a code")
        return OAuthCodeSubmitted(code=str(code))

    raise UnknownCommandError(f"Unknown command type: {msg_type!r}")


# ─── Outbound notifications ──────────────────────────────────────


class NotificationKind(str, Enum):
    STOP_AUDIO_PLAYBACK = "stop-audio-playback"
    TRANSCRIPTION = "transcription"
    SCREEN_DATA = "screen-data"
    END_OF_UTTERANCE = "end-of-utterance"
    CONVERSATION_ENDED = "conversation-ended"
    START_MICROPHONE = "start-microphone"
    SHOW_OAUTH_PROMPT = "show-oauth-prompt"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {**self.payload, "type": self.kind.value}

    @classmethod
    def stop_audio_playback(cls) -> "Notification":
        return cls(NotificationKind.STOP_AUDIO_PLAYBACK)

    @classmethod
    def transcription(cls, text: str, done: bool) -> "Notification":
        return cls(NotificationKind.TRANSCRIPTION, {"text": text, "done": done})

    @classmethod
    def screen_data(cls, text: str, metadata: dict | None = None) -> "Notification":
        """Screen output; metadata fields ride along unchanged."""
        return cls(NotificationKind.SCREEN_DATA, {**(metadata or {}), "data": text})

    @classmethod
    def end_of_utterance(cls) -> "Notification":
        return cls(NotificationKind.END_OF_UTTERANCE)

    @classmethod
    def conversation_ended(cls) -> "Notification":
        return cls(NotificationKind.CONVERSATION_ENDED)

    @classmethod
    def start_microphone(cls) -> "Notification":
        return cls(NotificationKind.START_MICROPHONE)

    @classmethod
    def show_oauth_prompt(cls, auth_url: str) -> "Notification":
        return cls(NotificationKind.SHOW_OAUTH_PROMPT, {"authUrl": auth_url})

    @classmethod
    def error(cls, message: str, source: str) -> "Notification":
        return cls(NotificationKind.ERROR, {"message": message, "source": source})
