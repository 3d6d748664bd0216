"""Structured JSON logging with correlation ID support.

All loggers live under the "frontdesk" namespace.  configure_logging()
attaches one JSON handler to that namespace root, so module loggers created
with logging.getLogger(__name__) and get_logger() share the same output.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

ROOT_LOGGER_NAME = "frontdesk"


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install the JSON handler on the package root logger (idempotent).

    Args:
        level: Log level name. Defaults to LOG_LEVEL env var, then INFO.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.propagate = False

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger whose records reach the JSON handler."""
    configure_logging()
    return logging.getLogger(name)
