"""Host callbacks for turn output."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from hark.core.metrics import metrics

logger = logging.getLogger(__name__)


async def _ignore(*_args) -> None:
    return None


@dataclass
class EventHandlers:
    """Notification sinks supplied by the host application.

    Return values are ignored. A handler that raises is logged and the turn
    carries on.
    """

    on_query: Callable[[str], Awaitable[None]] = _ignore
    on_screen_data: Callable[[str], Awaitable[None]] = _ignore
    on_audio_data: Callable[[bytes], Awaitable[None]] = _ignore
    on_conversation_ended: Callable[[], Awaitable[None]] = _ignore

    async def notify(self, name: str, *args) -> None:
        handler = getattr(self, name)
        try:
            await handler(*args)
        except Exception as e:
            metrics.inc("handlers.failed", labels={"handler": name})
            logger.error("Handler %s failed: %s", name, e, exc_info=True)
