"""exifbridge package initialisation."""

__version__ = "1.0.0"

from .config.settings import RuntimeConfig, load_runtime_config
from .protocol.decoding import ExifToolOutput
from .protocol.errors import (
    ExifBridgeError,
    ProcessSpawnError,
    ProcessWriteError,
    ProtocolViolation,
    SessionClosedError,
    StreamReadError,
    StructuredOutputError,
)
from .services.session import ExifToolSession

__all__ = [
    "__version__",
    "ExifBridgeError",
    "ExifToolOutput",
    "ExifToolSession",
    "ProcessSpawnError",
    "ProcessWriteError",
    "ProtocolViolation",
    "RuntimeConfig",
    "SessionClosedError",
    "StreamReadError",
    "StructuredOutputError",
    "load_runtime_config",
]
