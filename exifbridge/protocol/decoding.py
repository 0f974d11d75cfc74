"""Response decoding for the ``-stay_open`` batch protocol.

A finished call leaves two buffers behind::

    stdout: <command output>{ready<N>}
    stderr: <warnings/errors>=<status>=post<N>

Decoding trims trailing blanks, drops the markers, and pulls the exit
status out of the ``=<status>=`` field on stderr.
"""

from __future__ import annotations

import msgspec

from . import protocol
from .errors import ProtocolViolation
from .sentinels import Sentinels


class ExifToolOutput(msgspec.Struct, frozen=True, kw_only=True):
    """Decoded result of one ``execute`` call."""

    status: int
    output: bytes = b""
    error: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status == 0


def trim_end(data: bytes) -> bytes:
    """Drop trailing tabs and spaces; line breaks are kept."""
    return data.rstrip(protocol.HORIZONTAL_WHITESPACE)


def strip_line_terminator(data: bytes) -> bytes:
    """Drop a single trailing ``\\n`` or ``\\r\\n`` printed after a marker."""
    if data.endswith(b"\r\n"):
        return data[:-2]
    if data.endswith(b"\n"):
        return data[:-1]
    return data


def _blank_to_empty(data: bytes) -> bytes:
    # Payload bytes are returned as-is unless there is nothing but blanks.
    return data if trim_end(data) else b""


def remove_marker(data: bytes, marker: bytes) -> bytes:
    if not marker or not data.endswith(marker):
        raise ProtocolViolation("missing terminator", data=data)
    return data[: -len(marker)]


def split_status(
    error: bytes,
    delimiter: str = protocol.STATUS_DELIMITER,
) -> tuple[int, bytes]:
    """Split ``<text>=<status>=`` into ``(status, text)``."""
    delim = delimiter.encode("utf-8")
    if not delim:
        raise ValueError("status delimiter must not be empty")
    if not error.endswith(delim):
        raise ProtocolViolation("missing status delimiter", data=error)

    body = error[: -len(delim)]
    start = body.rfind(delim)
    if start < 0:
        raise ProtocolViolation("unterminated status field", data=error)

    field = body[start + len(delim) :]
    if not field.isdigit():
        raise ProtocolViolation("malformed status code", data=field)
    status = int(field)
    if not protocol.STATUS_MIN <= status <= protocol.STATUS_MAX:
        raise ProtocolViolation("malformed status code", data=field)

    return status, error[:start]


def decode_response(
    raw_output: bytes,
    raw_error: bytes,
    sentinels: Sentinels,
    delimiter: str = protocol.STATUS_DELIMITER,
) -> ExifToolOutput:
    """Turn the raw stdout/stderr of one call into an :class:`ExifToolOutput`.

    Raises:
        ProtocolViolation: a marker is missing from the end of a buffer, or
            the status field on stderr is absent or not a byte-sized integer.
    """
    output = remove_marker(trim_end(bytes(raw_output)), sentinels.ready_bytes)
    error = remove_marker(trim_end(bytes(raw_error)), sentinels.err_post_bytes)
    status, error = split_status(error, delimiter)
    return ExifToolOutput(status=status, output=_blank_to_empty(output), error=_blank_to_empty(error))


__all__ = [
    "ExifToolOutput",
    "decode_response",
    "remove_marker",
    "split_status",
    "strip_line_terminator",
    "trim_end",
]
