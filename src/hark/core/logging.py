"""
Hark Logging: colour for the terminal, JSON for log shippers.

- Colour formatter when stdout is a TTY (HARK_LOG_COLOR=auto|true|false)
- JSON formatter for production (HARK_LOG_FORMAT=json)
- Level from HARK_LOG_LEVEL (default INFO)
- Third-party chatter (uvicorn access, websockets, httpx) clamped to WARNING

Every record logged while a turn is being relayed (inside turn_context())
carries that turn's id, added by TurnContextFilter. Both formatters show it.

Structured extras (logger.info(..., extra={...})) forwarded by the JSON
formatter:
    turn_id, event, state, command, duration_ms
"""

from __future__ import annotations

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator


COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
    "RESET": "\033[0m",
    "DIM": "\033[2m",
}

_STRUCTURED_FIELDS = (
    "turn_id",
    "event",
    "state",
    "command",
    "duration_ms",
)

_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "websockets",
    "uvicorn.access",
    "asyncio",
)

_current_turn: ContextVar[str | None] = ContextVar("hark_turn_id", default=None)


@contextmanager
def turn_context(turn_id: str) -> Iterator[None]:
    """Attribute every record logged inside the block to turn_id."""
    token = _current_turn.set(turn_id)
    try:
        yield
    finally:
        _current_turn.reset(token)


class TurnContextFilter(logging.Filter):
    """Stamp records with the turn being relayed, unless the caller set one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "turn_id", None) is None:
            turn_id = _current_turn.get()
            if turn_id is not None:
                record.turn_id = turn_id
        return True


class ColorFormatter(logging.Formatter):
    """Single-line formatter for terminals, tagged with the turn id when known.

        12:00:01 [hark.session] INFO turn=ab12cd34: Final transcription: ...
    """

    def __init__(self, use_color: bool = True):
        super().__init__(
            fmt="%(asctime)s [%(name)s] %(levelname)s%(turn_tag)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{COLORS[color]}{text}{COLORS['RESET']}"

    def format(self, record: logging.LogRecord) -> str:
        orig_levelname = record.levelname
        orig_name = record.name
        turn_id = getattr(record, "turn_id", None)

        record.turn_tag = self._paint(f" turn={turn_id}", "DIM") if turn_id else ""
        record.name = self._paint(record.name, "DIM")
        if record.levelname in COLORS:
            record.levelname = self._paint(record.levelname, record.levelname)
        try:
            return super().format(record)
        finally:
            record.levelname = orig_levelname
            record.name = orig_name
            del record.turn_tag


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Known extra fields are lifted to the top level so a turn can be followed
    across loggers by its turn_id.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _STRUCTURED_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _should_use_color() -> bool:
    env_val = os.getenv("HARK_LOG_COLOR", "auto").lower()
    if env_val == "true":
        return True
    if env_val == "false":
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def setup_logging() -> None:
    """Configure the root logger. Call once at startup."""
    level_name = os.getenv("HARK_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    log_format = os.getenv("HARK_LOG_FORMAT", "text").lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_format == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = ColorFormatter(use_color=_should_use_color())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(TurnContextFilter())
    root.addHandler(handler)

    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    # Startup messages from uvicorn are worth keeping
    logging.getLogger("uvicorn.error").setLevel(level)

    logging.getLogger("hark").debug(
        "Logging configured (level=%s, format=%s)", level_name, log_format
    )
