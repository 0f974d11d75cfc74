"""General-purpose utilities for exifbridge."""

from __future__ import annotations

import logging

__all__ = [
    "log_hexdump",
    "preview_bytes",
]

_PREVIEW_LIMIT = 64


def preview_bytes(data: bytes, limit: int = _PREVIEW_LIMIT) -> bytes:
    """Return the tail of *data*, which is where the markers live."""
    if limit <= 0 or len(data) <= limit:
        return data
    return data[-limit:]


def log_hexdump(logger_instance: logging.Logger, level: int, label: str, data: bytes) -> None:
    """Log the tail of binary data in hexadecimal.

    Format: [HEXDUMP] %s (%d bytes): %s
    """
    if not logger_instance.isEnabledFor(level):
        return

    hex_str = preview_bytes(data).hex(" ").upper()
    logger_instance.log(level, "[HEXDUMP] %s (%d bytes): %s", label, len(data), hex_str)
