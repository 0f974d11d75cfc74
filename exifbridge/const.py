"""Shared defaults for exifbridge components."""
from __future__ import annotations

from typing import Final

EXECUTABLE_ENV: Final[str] = "EXIFTOOL"
ENV_PREFIX: Final[str] = "EXIFBRIDGE_"
DEFAULT_EXECUTABLE: Final[str] = "exiftool"

DEFAULT_CHUNK_SIZE: Final[int] = 4096
DEFAULT_POLL_INTERVAL: Final[float] = 0.01
DEFAULT_READ_TIMEOUT: Final[float | None] = None
DEFAULT_CLOSE_TIMEOUT: Final[float] = 5.0
DEFAULT_DEBUG_LOGGING: Final[bool] = False

__all__ = [
    "EXECUTABLE_ENV",
    "ENV_PREFIX",
    "DEFAULT_EXECUTABLE",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_READ_TIMEOUT",
    "DEFAULT_CLOSE_TIMEOUT",
    "DEFAULT_DEBUG_LOGGING",
]
