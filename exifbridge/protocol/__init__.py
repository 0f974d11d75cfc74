"""Framing helpers for the exiftool ``-stay_open`` protocol."""

from . import protocol
from .decoding import ExifToolOutput, decode_response, split_status, strip_line_terminator, trim_end
from .encoding import encode_request, status_echo_line
from .errors import ProtocolViolation
from .sentinels import SentinelFactory, Sentinels, make_sentinels

__all__ = [
    "ExifToolOutput",
    "ProtocolViolation",
    "SentinelFactory",
    "Sentinels",
    "decode_response",
    "encode_request",
    "make_sentinels",
    "protocol",
    "split_status",
    "status_echo_line",
    "strip_line_terminator",
    "trim_end",
]
