"""
Hark channel: notifications out, commands in.

The NotificationChannel is the only path between the session logic and the
presentation layer. WebSocketBridge exposes it over a FastAPI WebSocket.
"""

from hark.channel.bus import NotificationChannel
from hark.channel.messages import (
    Command,
    EndConversation,
    Invoke,
    MicAudioData,
    Notification,
    NotificationKind,
    OAuthCodeSubmitted,
    parse_command,
)

__all__ = [
    "NotificationChannel",
    "Notification",
    "NotificationKind",
    "Command",
    "Invoke",
    "MicAudioData",
    "EndConversation",
    "OAuthCodeSubmitted",
    "parse_command",
]
