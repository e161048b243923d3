"""
Logging setup for the Ignite service and tools.

Environment variables:
- IGNITE_LOG_LEVEL (or LOG_LEVEL): DEBUG, INFO, WARNING, ERROR, CRITICAL
- LOG_FORMAT: simple, detailed, json
- IGNITE_QUEUE_LOG_LEVEL: separate level for the request queue, whose retry
  warnings get noisy while the backend is flapping
"""

import os
import sys
import json
import logging
from datetime import datetime, timezone
from typing import IO, Optional

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Record attributes set through `extra=` by Ignite modules
CONTEXT_FIELDS = ("request_id", "user_id", "path", "section")

NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "asyncio", "uvicorn.access")

QUEUE_LOGGER = "ignite.api.queue"


class IgniteJSONFormatter(logging.Formatter):
    """One JSON object per line, with request context when a record carries it"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        }
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _resolve_level(value: Optional[str], default: str = "INFO") -> str:
    level = (value or default).upper()
    if level not in LEVELS:
        sys.stderr.write(f"Warning: Invalid log level '{level}', using {default}\n")
        return default
    return level


def _build_formatter(format_style: str) -> logging.Formatter:
    if format_style == "json":
        return IgniteJSONFormatter()
    if format_style == "detailed":
        return logging.Formatter(
            fmt="%(asctime)s %(levelname)-8s %(name)s:%(lineno)d %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def configure_logging(
    level: Optional[str] = None,
    format_style: Optional[str] = None,
    stream: Optional[IO[str]] = None
) -> None:
    """
    Configure the root logger for Ignite.

    Args:
        level: Root log level. Defaults to IGNITE_LOG_LEVEL, then LOG_LEVEL, then INFO.
        format_style: simple, detailed or json. Defaults to LOG_FORMAT, then simple.
        stream: Output stream (stdout by default)
    """
    log_level = _resolve_level(level or os.getenv("IGNITE_LOG_LEVEL") or os.getenv("LOG_LEVEL"))
    log_format = (format_style or os.getenv("LOG_FORMAT", "simple")).lower()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(_build_formatter(log_format))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level))

    queue_level = os.getenv("IGNITE_QUEUE_LOG_LEVEL")
    if queue_level:
        logging.getLogger(QUEUE_LOGGER).setLevel(getattr(logging, _resolve_level(queue_level, log_level)))

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root_logger.info(f"Logging configured: level={log_level}, format={log_format}")
