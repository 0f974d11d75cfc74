"""Wire constants for the exiftool ``-stay_open`` batch protocol."""
from __future__ import annotations

from typing import Final

STAY_OPEN_ARGS: Final[tuple[str, ...]] = ("-stay_open", "True", "-@", "-")
STAY_OPEN_SHUTDOWN: Final[bytes] = b"-stay_open\nFalse\n"

LINE_TERMINATOR: Final[bytes] = b"\n"
FORBIDDEN_PARAM_BYTES: Final[tuple[bytes, ...]] = (b"\n", b"\r")
HORIZONTAL_WHITESPACE: Final[bytes] = b" \t"

READY_PREFIX: Final[str] = "{ready"
READY_SUFFIX: Final[str] = "}"
ERR_POST_PREFIX: Final[str] = "post"
EXECUTE_PREFIX: Final[str] = "-execute"

# ${status} is expanded by exiftool 12.10+ to the exit status of the command.
STATUS_MACRO: Final[str] = "${status}"
STATUS_DELIMITER: Final[str] = "="
ECHO_STDERR_DIRECTIVE: Final[str] = "-echo4"

# Terminator matching scans this many extra bytes past the marker length so
# a trailing CR/LF emitted by exiftool does not hide the marker.
TERMINATOR_SLACK: Final[int] = 2

STATUS_MIN: Final[int] = 0
STATUS_MAX: Final[int] = 255

JSON_FLAG: Final[str] = "-j"
BINARY_FLAG: Final[str] = "-b"
PREVIEW_IMAGE_TAG: Final[str] = "-PreviewImage"
VERSION_FLAG: Final[str] = "-ver"
TAG_SELECTOR: Final[str] = "-"
