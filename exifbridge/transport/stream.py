"""Chunked pipe reader that stops at a terminator marker."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Protocol

import msgspec

from ..const import DEFAULT_CHUNK_SIZE, DEFAULT_POLL_INTERVAL
from ..protocol import protocol

logger = logging.getLogger("exifbridge.stream")


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ReadOutcome(StrEnum):
    FOUND = "found"
    EOF = "eof"
    ERROR = "error"
    TIMEOUT = "timeout"


class ReadResult(msgspec.Struct, frozen=True):
    """Bytes accumulated by :func:`read_until_terminator` and why it stopped."""

    data: bytes
    outcome: ReadOutcome

    @property
    def found(self) -> bool:
        return self.outcome is ReadOutcome.FOUND


def _reader_at_eof(reader: ByteReader) -> bool:
    at_eof = getattr(reader, "at_eof", None)
    return bool(callable(at_eof) and at_eof())


async def _fill_until(
    reader: ByteReader,
    marker: bytes,
    buffer: bytearray,
    chunk_size: int,
    poll_interval: float,
) -> ReadOutcome:
    window = len(marker) + protocol.TERMINATOR_SLACK
    while True:
        try:
            chunk = await reader.read(chunk_size)
        except (OSError, ValueError, RuntimeError):
            logger.debug("Error reading pipe while waiting for %r", marker, exc_info=True)
            return ReadOutcome.ERROR

        if not chunk:
            if _reader_at_eof(reader):
                return ReadOutcome.EOF
            await asyncio.sleep(poll_interval)
            continue

        buffer.extend(chunk)
        if marker in buffer[-window:]:
            return ReadOutcome.FOUND


async def _consume_line_terminator(
    reader: ByteReader,
    marker: bytes,
    buffer: bytearray,
    poll_interval: float,
) -> ReadOutcome:
    # The line break exiftool prints after a marker belongs to this call.
    while True:
        tail = bytes(buffer[buffer.rfind(marker) + len(marker) :])
        if tail not in (b"", b"\r"):
            return ReadOutcome.FOUND
        try:
            chunk = await reader.read(1)
        except (OSError, ValueError, RuntimeError):
            logger.debug("Error reading line break after %r", marker, exc_info=True)
            return ReadOutcome.ERROR

        if not chunk:
            if _reader_at_eof(reader):
                return ReadOutcome.FOUND
            await asyncio.sleep(poll_interval)
            continue

        buffer.extend(chunk)


async def read_until_terminator(
    reader: ByteReader,
    terminator: str | bytes,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float | None = None,
    consume_line_terminator: bool = False,
) -> ReadResult:
    """Read *reader* in chunks until *terminator* shows up near the tail.

    Only the last ``len(terminator) + 2`` bytes are searched after each
    chunk, so the marker has to be the final thing the child wrote (give
    or take a line break). Empty reads on a stream that is not at EOF are
    retried after *poll_interval* seconds.

    With *consume_line_terminator*, a marker that lands exactly on a chunk
    boundary is followed by a read of the pending ``\\n`` or ``\\r\\n`` so
    that nothing of this response is left in the pipe.

    The read never raises for pipe trouble; the returned
    :class:`ReadResult` says whether the terminator was found or the
    stream hit EOF, failed or timed out first.
    """
    marker = terminator.encode("utf-8") if isinstance(terminator, str) else bytes(terminator)
    if not marker:
        raise ValueError("terminator must not be empty")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    buffer = bytearray()
    try:
        async with asyncio.timeout(timeout):
            outcome = await _fill_until(reader, marker, buffer, chunk_size, poll_interval)
            if outcome is ReadOutcome.FOUND and consume_line_terminator:
                outcome = await _consume_line_terminator(reader, marker, buffer, poll_interval)
    except TimeoutError:
        logger.warning("Timed out after %.3fs waiting for %r", timeout, marker)
        outcome = ReadOutcome.TIMEOUT

    return ReadResult(data=bytes(buffer), outcome=outcome)


__all__ = ["ByteReader", "ReadOutcome", "ReadResult", "read_until_terminator"]
