"""
Hark assistant boundary: the client contract and its typed events.

Concrete clients live outside this package and are loaded through
get_assistant_client().
"""

from hark.assistant.base import AssistantClient, AssistantConversation
from hark.assistant.events import (
    AudioData,
    ClientError,
    ConversationError,
    EndOfUtterance,
    Ended,
    Ready,
    ScreenData,
    Started,
    Transcription,
)
from hark.assistant.registry import get_assistant_client

__all__ = [
    "AssistantClient",
    "AssistantConversation",
    "get_assistant_client",
    # Events
    "Ready",
    "Started",
    "ClientError",
    "AudioData",
    "Transcription",
    "ScreenData",
    "EndOfUtterance",
    "Ended",
    "ConversationError",
]
