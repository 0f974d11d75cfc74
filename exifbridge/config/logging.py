"""Logging helpers for exifbridge."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from logging import Handler
from logging.config import dictConfig
from logging.handlers import SysLogHandler
from pathlib import Path
from typing import Any

import msgspec

from ..const import ENV_PREFIX
from ..util import preview_bytes
from .model import RuntimeConfig

SYSLOG_SOCKET = Path("/dev/log")
LOG_STREAM_ENV = f"{ENV_PREFIX}LOG_STREAM"

_RESERVED_LOG_KEYS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


def _serialise_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (bytes, bytearray)):
        # Preview images can be megabytes; only the tail is rendered.
        return f"[{preview_bytes(bytes(value)).hex(' ').upper()}]"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Emit JSON per log line while trimming the shared prefix."""

    PREFIX = "exifbridge."

    def format(self, record: logging.LogRecord) -> str:
        logger_name = record.name
        if logger_name.startswith(self.PREFIX):
            logger_name = logger_name[len(self.PREFIX) :]

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": logger_name,
            "message": record.getMessage(),
        }

        extras = {
            key: _serialise_value(value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_KEYS and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return msgspec.json.encode(payload).decode("utf-8")


def _build_handler() -> Handler:
    if os.environ.get(LOG_STREAM_ENV) or not SYSLOG_SOCKET.exists():
        return logging.StreamHandler()

    syslog_handler = SysLogHandler(
        address=str(SYSLOG_SOCKET),
        facility=SysLogHandler.LOG_USER,
    )
    syslog_handler.ident = "exifbridge "
    return syslog_handler


def configure_logging(config: RuntimeConfig) -> None:
    """Configure the ``exifbridge`` logger tree based on runtime settings."""

    level_name = "DEBUG" if config.debug_logging else "INFO"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": "exifbridge.config.logging.StructuredLogFormatter",
                }
            },
            "handlers": {
                "exifbridge": {
                    "()": _build_handler,
                    "level": level_name,
                    "formatter": "structured",
                }
            },
            "loggers": {
                "exifbridge": {
                    "level": level_name,
                    "handlers": ["exifbridge"],
                    "propagate": False,
                }
            },
        }
    )

    logging.getLogger("exifbridge").info("Logging configured at level %s", level_name)
