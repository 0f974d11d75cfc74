"""Exception taxonomy for exifbridge."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..transport.stream import ReadOutcome


class ExifBridgeError(RuntimeError):
    """Base class for every fatal exifbridge failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ProcessSpawnError(ExifBridgeError):
    """Raised when the exiftool child process cannot be started."""


class ProcessWriteError(ExifBridgeError):
    """Raised when a request cannot be written to the child's stdin."""


class StreamReadError(ExifBridgeError):
    """Raised when a pipe stops before its terminator shows up."""

    def __init__(
        self,
        message: str,
        *,
        outcome: "ReadOutcome",
        partial: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.outcome = outcome
        self.partial = partial


class ProtocolViolation(ExifBridgeError, ValueError):
    """Raised when a request or response breaks the batch framing."""

    def __init__(self, reason: str, *, data: bytes = b"") -> None:
        super().__init__(f"protocol violation: {reason}")
        self.reason = reason
        self.data = data


class StructuredOutputError(ExifBridgeError, ValueError):
    """Raised when JSON output from exiftool cannot be decoded."""


class SessionClosedError(ExifBridgeError):
    """Raised when a closed or faulted session is asked to execute."""


__all__ = [
    "ExifBridgeError",
    "ProcessSpawnError",
    "ProcessWriteError",
    "ProtocolViolation",
    "SessionClosedError",
    "StreamReadError",
    "StructuredOutputError",
]
