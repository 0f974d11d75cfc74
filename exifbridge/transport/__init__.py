"""Pipe transport helpers for exifbridge."""

from .stream import ByteReader, ReadOutcome, ReadResult, read_until_terminator

__all__ = ["ByteReader", "ReadOutcome", "ReadResult", "read_until_terminator"]
