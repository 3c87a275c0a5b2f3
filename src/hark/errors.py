"""Exception types raised by hark."""

from __future__ import annotations


class HarkError(Exception):
    """Base class for hark errors."""


class NotInitializedError(HarkError):
    """The assistant client was never constructed (or failed to construct)."""


class UnknownCommandError(HarkError, ValueError):
    """An inbound frame did not map to a known host command."""
