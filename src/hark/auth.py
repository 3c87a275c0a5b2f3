"""
OAuth prompt relay: first-time authentication through the presentation layer.

The assistant client calls token_input(callback, auth_url) when it needs an
interactive OAuth code. The relay shows the URL to the user and hands the
submitted code to that callback, exactly once. Every prompt gets a fresh
relay, because every authentication attempt comes with its own callback.
A newer prompt retires an unanswered older one, so a code is only ever
handed to the callback that asked for it.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from hark.channel.bus import NotificationChannel
from hark.channel.messages import Notification, OAuthCodeSubmitted
from hark.core.config import TokenInput

logger = logging.getLogger(__name__)


class OAuthPromptRelay:
    def __init__(
        self,
        channel: NotificationChannel,
        callback: Callable[[str], Any],
        auth_url: str,
    ) -> None:
        self.channel = channel
        self.callback = callback
        self.auth_url = auth_url
        self.answered = False

    async def prompt(self) -> None:
        # Subscribe first: a fast UI may answer before publish() returns.
        self.channel.once(OAuthCodeSubmitted, self._on_code)
        await self.channel.publish(Notification.show_oauth_prompt(self.auth_url))
        logger.info("OAuth code requested from the user")

    async def _on_code(self, command: OAuthCodeSubmitted) -> None:
        if self.answered:
            return
        self.answered = True
        logger.info("OAuth code received, handing it to the assistant client")
        result = self.callback(command.code)
        if inspect.isawaitable(result):
            await result

    def retire(self) -> None:
        """Stop waiting for a code. No-op once answered."""
        if self.answered:
            return
        self.answered = True
        self.channel.off(OAuthCodeSubmitted, self._on_code)
        logger.info("OAuth prompt superseded by a newer one")


def make_token_input(channel: NotificationChannel) -> TokenInput:
    """Build the token_input callable given to the assistant client."""

    active: OAuthPromptRelay | None = None

    async def token_input(callback: Callable[[str], Any], auth_url: str) -> None:
        nonlocal active
        if active is not None:
            active.retire()
        active = OAuthPromptRelay(channel, callback, auth_url)
        await active.prompt()

    return token_input
