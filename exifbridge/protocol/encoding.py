"""Request serialisation for the ``-stay_open`` batch protocol."""

from __future__ import annotations

from collections.abc import Iterable

from . import protocol
from .errors import ProtocolViolation
from .sentinels import Sentinels


def status_echo_line(sentinels: Sentinels, delimiter: str = protocol.STATUS_DELIMITER) -> str:
    """Return the ``-echo4`` payload, e.g. ``=${status}=post123``."""
    return f"{delimiter}{protocol.STATUS_MACRO}{delimiter}{sentinels.err_post}"


def encode_request(
    params: Iterable[str],
    sentinels: Sentinels,
    delimiter: str = protocol.STATUS_DELIMITER,
) -> bytes:
    """Serialise *params* plus the framing directives into one stdin message.

    Layout, one argument per line::

        <param 1>
        ...
        -echo4
        =${status}=post<N>
        -execute<N>
    """
    lines: list[bytes] = []
    for param in params:
        encoded = param.encode("utf-8")
        for forbidden in protocol.FORBIDDEN_PARAM_BYTES:
            if forbidden in encoded:
                raise ProtocolViolation(
                    "parameter contains a line break",
                    data=encoded,
                )
        lines.append(encoded)

    lines.append(protocol.ECHO_STDERR_DIRECTIVE.encode("ascii"))
    lines.append(status_echo_line(sentinels, delimiter).encode("utf-8"))
    lines.append(sentinels.execute.encode("ascii"))

    return b"".join(line + protocol.LINE_TERMINATOR for line in lines)


__all__ = ["encode_request", "status_echo_line"]
