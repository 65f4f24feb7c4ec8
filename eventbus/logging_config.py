"""
Structured Logging Configuration

Provides:
- Dispatch context (the event currently being dispatched) for log correlation
- JSON formatting for machine parsing
- Human-readable console formatting
- Optional rotating log file
"""

import contextvars
import json
import logging
import logging.handlers
import sys
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union


# Event name of the dispatch in progress on this context
current_event_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "current_event", default=None
)


@contextmanager
def dispatch_context(event_name: str) -> Iterator[str]:
    """Mark log records produced inside the block with ``event_name``."""
    token = current_event_var.set(event_name)
    try:
        yield event_name
    finally:
        current_event_var.reset(token)


def get_current_event() -> Optional[str]:
    """Get the event name being dispatched, if any."""
    return current_event_var.get()


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, extra_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        event_name = current_event_var.get()
        if event_name:
            log_data["event"] = event_name

        log_data.update(self.extra_fields)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class StructuredFormatter(logging.Formatter):
    """Human-readable structured formatter for console output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as one plain line."""
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )

        parts = [
            f"[{timestamp}]",
            f"[{record.levelname}]",
            f"[{record.name}]",
            record.getMessage(),
        ]

        event_name = current_event_var.get()
        if event_name:
            parts.append(f"[event={event_name}]")

        if record.exc_info:
            exc_text = "".join(traceback.format_exception(*record.exc_info))
            parts.append(f"\n{exc_text}")

        return " ".join(parts)


def setup_logging(
    level: Union[str, int] = logging.INFO,
    json_format: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    Configure logging for the ``eventbus`` package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting on the console handler
        log_file: Optional path of a rotating JSON log file
        max_bytes: Max size of log file before rotation
        backup_count: Number of backup files to keep
        extra_fields: Additional fields to include in JSON records

    Returns:
        The configured ``eventbus`` logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    bus_logger = logging.getLogger("eventbus")
    bus_logger.setLevel(level)
    bus_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if json_format:
        console_handler.setFormatter(JSONFormatter(extra_fields=extra_fields))
    else:
        console_handler.setFormatter(StructuredFormatter())
    bus_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter(extra_fields=extra_fields))
        bus_logger.addHandler(file_handler)

    return bus_logger
