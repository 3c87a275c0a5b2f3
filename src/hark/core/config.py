"""
Hark Configuration: one frozen object, built once at startup.

Reads from environment variables (and a local .env) with sensible defaults.
The root HarkConfig is handed to the AssistantService explicitly; nothing
looks configuration up globally.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable

from dotenv import load_dotenv

load_dotenv()

# token_input(callback, auth_url): called by the assistant client when it
# needs an interactive OAuth code.
TokenInput = Callable[[Callable[[str], Any], str], Awaitable[None]]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class AuthConfig:
    """Where the assistant client finds its credentials."""

    key_file_path: str = ""
    saved_tokens_path: str = ""
    token_input: TokenInput | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_env(cls) -> AuthConfig:
        return cls(
            key_file_path=os.getenv("HARK_KEY_FILE_PATH", ""),
            saved_tokens_path=os.getenv("HARK_SAVED_TOKENS_PATH", ""),
        )


@dataclass(frozen=True)
class AudioConfig:
    """Audio format contract with the assistant backend."""

    encoding_in: str = "LINEAR16"
    sample_rate_in: int = 16000
    encoding_out: str = "MP3"
    sample_rate_out: int = 24000

    @classmethod
    def from_env(cls) -> AudioConfig:
        return cls(
            encoding_in=os.getenv("HARK_AUDIO_ENCODING_IN", "LINEAR16"),
            sample_rate_in=int(os.getenv("HARK_AUDIO_SAMPLE_RATE_IN", "16000")),
            encoding_out=os.getenv("HARK_AUDIO_ENCODING_OUT", "MP3"),
            sample_rate_out=int(os.getenv("HARK_AUDIO_SAMPLE_RATE_OUT", "24000")),
        )


@dataclass(frozen=True)
class ScreenConfig:
    is_on: bool = True


@dataclass(frozen=True)
class ConversationConfig:
    """Defaults sent with every start command.

    text_query is None for microphone turns. Use with_text_query() to derive
    the configuration for a single turn; the defaults themselves never carry
    a query.
    """

    audio: AudioConfig = field(default_factory=AudioConfig)
    lang: str = "en-US"
    device_model_id: str = ""
    device_id: str = ""
    text_query: str | None = None
    is_new: bool = False
    screen: ScreenConfig = field(default_factory=ScreenConfig)

    def with_text_query(self, text_query: str | None) -> ConversationConfig:
        return replace(self, text_query=text_query or None)

    @classmethod
    def from_env(cls) -> ConversationConfig:
        return cls(
            audio=AudioConfig.from_env(),
            lang=os.getenv("HARK_LANGUAGE", "en-US"),
            device_model_id=os.getenv("HARK_DEVICE_MODEL_ID", ""),
            device_id=os.getenv("HARK_DEVICE_ID", ""),
            is_new=_env_bool("HARK_FORCE_NEW_CONVERSATION", False),
            screen=ScreenConfig(is_on=_env_bool("HARK_SCREEN_OUTPUT", True)),
        )


@dataclass(frozen=True)
class ServerConfig:
    """Server settings."""

    host: str = "127.0.0.1"
    port: int = 8765
    ws_send_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> ServerConfig:
        return cls(
            host=os.getenv("HARK_HOST", "127.0.0.1"),
            port=int(os.getenv("HARK_PORT", "8765")),
            ws_send_timeout=float(os.getenv("HARK_WS_SEND_TIMEOUT", "5.0")),
        )


@dataclass(frozen=True)
class HarkConfig:
    """Root configuration."""

    # Dotted path "package.module:factory" of the assistant client factory
    client: str = ""
    enable_mic_on_immediate_response: bool = True
    auth: AuthConfig = field(default_factory=AuthConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> HarkConfig:
        return cls(
            client=os.getenv("HARK_ASSISTANT_CLIENT", ""),
            enable_mic_on_immediate_response=_env_bool(
                "HARK_ENABLE_MIC_ON_IMMEDIATE_RESPONSE", True
            ),
            auth=AuthConfig.from_env(),
            conversation=ConversationConfig.from_env(),
            server=ServerConfig.from_env(),
        )
