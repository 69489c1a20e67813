"""
Structured logging for the ingestion pipeline.

Clients and enrichment steps receive an EventLog instead of calling the
logging module directly, so tests can hand them an isolated sink.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class EventLog:
    """
    Structured log sink wrapping a standard library logger.

    Metadata keyword arguments are attached to the record under ``meta`` and
    rendered by the formatters below.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("chronicler")

    def _emit(self, level: int, message: str, meta: Dict[str, Any]) -> None:
        self.logger.log(level, message, extra={"meta": meta})

    def debug(self, message: str, **meta: Any) -> None:
        self._emit(logging.DEBUG, message, meta)

    def info(self, message: str, **meta: Any) -> None:
        self._emit(logging.INFO, message, meta)

    def warning(self, message: str, **meta: Any) -> None:
        self._emit(logging.WARNING, message, meta)

    def error(self, message: str, **meta: Any) -> None:
        self._emit(logging.ERROR, message, meta)

    def child(self, name: str) -> "EventLog":
        """Return a sink writing to a child logger."""
        return EventLog(self.logger.getChild(name))


def get_event_log(name: Optional[str] = None) -> EventLog:
    """Default sink for the ``chronicler`` logger tree."""
    if name:
        return EventLog(logging.getLogger(f"chronicler.{name}"))
    return EventLog()


class TextLogFormatter(logging.Formatter):
    """Plain formatter that appends metadata as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        meta = getattr(record, "meta", None)
        if meta:
            pairs = " ".join(f"{key}={value}" for key, value in meta.items())
            line = f"{line} | {pairs}"
        return line


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "severity": record.levelname.lower(),
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "logger": record.name,
        }
        meta = getattr(record, "meta", None)
        if meta:
            payload.update(meta)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)
