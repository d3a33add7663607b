"""Structured logging configuration with suite correlation."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

_suite_id: str | None = None


class JSONFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "suite_id": getattr(record, "suite_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra_keys = {"section", "dialect"}
        for key in extra_keys:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


class SuiteIdFilter(logging.Filter):
    """Ensure a ``suite_id`` attribute is always present on log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.suite_id = _suite_id
        return True


def begin_suite() -> str:
    """Start a new suite correlation id and return it."""
    global _suite_id
    _suite_id = uuid4().hex[:12]
    return _suite_id


def end_suite() -> None:
    """Forget the active suite correlation id."""
    global _suite_id
    _suite_id = None


def current_suite_id() -> str | None:
    """Return the active suite id, ``None`` outside a suite."""
    return _suite_id


def configure_logging(level: str | int = "INFO") -> None:
    """Configure the root logger with JSON-formatted stderr output.

    stdout is left alone so pytest's own reporting stays readable.
    """

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(SuiteIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level_value)


__all__ = ["configure_logging", "begin_suite", "end_suite", "current_suite_id", "JSONFormatter"]
