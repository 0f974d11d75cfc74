"""Data model for exifbridge configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..const import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_EXECUTABLE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT,
)
from ..protocol import protocol

COMMON_ARGS_OPTION = "-common_args"


@dataclass(slots=True)
class RuntimeConfig:
    """Strongly typed configuration for an exiftool session."""

    executable: str = DEFAULT_EXECUTABLE
    common_args: tuple[str, ...] = field(default_factory=tuple)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    read_timeout: float | None = DEFAULT_READ_TIMEOUT
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT
    debug_logging: bool = DEFAULT_DEBUG_LOGGING

    def __post_init__(self) -> None:
        executable = (self.executable or "").strip()
        if not executable:
            raise ValueError("executable must be a non-empty command")
        self.executable = executable
        self.common_args = tuple(self.common_args)
        if any(not arg for arg in self.common_args):
            raise ValueError("common_args must not contain empty arguments")
        self.chunk_size = self._require_positive("chunk_size", int(self.chunk_size))
        self.poll_interval = self._require_non_negative("poll_interval", float(self.poll_interval))
        self.close_timeout = self._require_non_negative("close_timeout", float(self.close_timeout))
        if self.read_timeout is not None:
            if float(self.read_timeout) <= 0.0:
                raise ValueError("read_timeout must be a positive number or None")
            self.read_timeout = float(self.read_timeout)

    @property
    def startup_args(self) -> tuple[str, ...]:
        """Command line that puts exiftool into ``-stay_open`` batch mode."""
        args = protocol.STAY_OPEN_ARGS
        if self.common_args:
            # -common_args must be the last option on the command line.
            args = args + (COMMON_ARGS_OPTION, *self.common_args)
        return args

    @staticmethod
    def _require_positive(name: str, value: int) -> int:
        if value <= 0:
            raise ValueError(f"{name} must be a positive integer")
        return value

    @staticmethod
    def _require_non_negative(name: str, value: float) -> float:
        if value < 0.0:
            raise ValueError(f"{name} must not be negative")
        return value
