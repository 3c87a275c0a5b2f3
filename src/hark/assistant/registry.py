"""
Client registry: build the configured assistant client.

HARK_ASSISTANT_CLIENT names a factory as "package.module:callable". The
callable receives the AuthConfig and returns an AssistantClient. When the
attribute part is omitted, "create_client" is used.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from hark.assistant.base import AssistantClient

if TYPE_CHECKING:
    from hark.core.config import AuthConfig

logger = logging.getLogger(__name__)

DEFAULT_FACTORY = "create_client"


def get_assistant_client(target: str, auth: "AuthConfig") -> AssistantClient:
    if not target:
        raise ValueError(
            "No assistant client configured (set HARK_ASSISTANT_CLIENT=module:factory)"
        )

    module_name, _, attr = target.partition(":")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr or DEFAULT_FACTORY)

    client = factory(auth)
    if not isinstance(client, AssistantClient):
        raise TypeError(
            f"{target} returned {type(client).__name__}, expected an AssistantClient"
        )

    logger.info("Assistant client loaded: %s (%s)", target, client.name)
    return client
