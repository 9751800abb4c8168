"""Structured logging utility with JSON output."""

import logging
import json
import sys
import os
from datetime import datetime, timezone
from typing import Any, Dict


MAX_FIELD_CHARS = 500


def _sanitize(value: Any) -> Any:
    """Make an extra field JSON-safe. Raw bytes are never logged."""
    # ✅ Handle bytes - NEVER log raw bytes
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes: {len(value)} bytes>"

    # Check for bytes in lists/tuples
    if isinstance(value, (list, tuple)):
        value = [_sanitize(item) for item in value]

    # Ensure JSON serializable
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        # If not serializable, convert to string (truncate if too long)
        text = str(value)
        if len(text) > MAX_FIELD_CHARS:
            return text[:MAX_FIELD_CHARS] + "...[truncated]"
        return text


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    # Fields that Python's logging adds automatically (exclude these)
    BUILTIN_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
        'taskName', 'message',
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # ✅ Extract ALL extra fields dynamically
        for key, value in record.__dict__.items():
            if key not in self.BUILTIN_ATTRS and not key.startswith('_'):
                log_data[key] = _sanitize(value)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        # Get log level from environment
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Console handler with JSON formatting
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        # Prevent propagation to root logger
        logger.propagate = False

    return logger
