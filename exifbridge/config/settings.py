"""Settings loader for exifbridge.

Configuration comes from the process environment:

* ``EXIFTOOL`` names the executable (default ``exiftool``).
* ``EXIFBRIDGE_COMMON_ARGS`` holds shell-quoted arguments passed after
  ``-common_args``.
* ``EXIFBRIDGE_CHUNK_SIZE``, ``EXIFBRIDGE_POLL_INTERVAL``,
  ``EXIFBRIDGE_READ_TIMEOUT`` and ``EXIFBRIDGE_CLOSE_TIMEOUT`` tune pipe
  handling.
* ``EXIFBRIDGE_DEBUG`` turns on debug logging.

Unset variables fall back to the defaults in :mod:`exifbridge.const`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from marshmallow import ValidationError

from ..const import ENV_PREFIX, EXECUTABLE_ENV
from .model import RuntimeConfig
from .schema import RuntimeConfigSchema

logger = logging.getLogger("exifbridge.config")

_ENV_FIELDS: dict[str, str] = {
    "COMMON_ARGS": "common_args",
    "CHUNK_SIZE": "chunk_size",
    "POLL_INTERVAL": "poll_interval",
    "READ_TIMEOUT": "read_timeout",
    "CLOSE_TIMEOUT": "close_timeout",
    "DEBUG": "debug_logging",
}


def _collect_raw_config(environ: Mapping[str, str]) -> dict[str, Any]:
    raw: dict[str, Any] = {}
    executable = environ.get(EXECUTABLE_ENV)
    if executable:
        raw["executable"] = executable
    for suffix, field_name in _ENV_FIELDS.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value is not None:
            raw[field_name] = value
    return raw


def load_runtime_config(environ: Mapping[str, str] | None = None) -> RuntimeConfig:
    """Load configuration from the environment.

    Raises:
        ValueError: a variable is present but fails validation.
    """
    raw = _collect_raw_config(os.environ if environ is None else environ)
    try:
        config = RuntimeConfigSchema().load(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid exifbridge configuration: {exc.messages}") from exc
    logger.debug("Loaded runtime config: %s", config)
    return config


__all__ = ["RuntimeConfig", "load_runtime_config"]
