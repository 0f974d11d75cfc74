"""Per-call sentinel tokens for the ``-stay_open`` protocol.

Every request is tagged with a numeric call id. exiftool echoes the id
back in ``{ready<id>}`` on stdout once the command has run, and the
``-echo4`` directive makes it print ``post<id>`` as the last thing on
stderr. A reader waits for both markers before handing the buffers to
the decoder.

Ids are ``<nonce><counter>``: a fixed-width nonce drawn once per factory
followed by a counter that only moves forward, so two calls made through
the same session never share a marker.
"""

from __future__ import annotations

import itertools
import secrets
from typing import Final

import msgspec

from . import protocol

NONCE_DIGITS: Final[int] = 6


class Sentinels(msgspec.Struct, frozen=True, kw_only=True):
    """The three markers that frame a single call."""

    call_id: str
    ready: str
    err_post: str
    execute: str

    @property
    def ready_bytes(self) -> bytes:
        return self.ready.encode("ascii")

    @property
    def err_post_bytes(self) -> bytes:
        return self.err_post.encode("ascii")


def make_sentinels(call_id: object) -> Sentinels:
    """Build the marker triple for *call_id*."""
    ident = str(call_id)
    return Sentinels(
        call_id=ident,
        ready=f"{protocol.READY_PREFIX}{ident}{protocol.READY_SUFFIX}",
        err_post=f"{protocol.ERR_POST_PREFIX}{ident}",
        execute=f"{protocol.EXECUTE_PREFIX}{ident}",
    )


class SentinelFactory:
    """Issue unique sentinel triples for one session."""

    def __init__(self, nonce: int | None = None) -> None:
        if nonce is None:
            nonce = secrets.randbelow(10**NONCE_DIGITS)
        if not 0 <= nonce < 10**NONCE_DIGITS:
            raise ValueError(f"nonce must fit in {NONCE_DIGITS} decimal digits")
        self._nonce = f"{nonce:0{NONCE_DIGITS}d}"
        self._counter = itertools.count(1)

    @property
    def nonce(self) -> str:
        return self._nonce

    def next_call_id(self) -> str:
        return f"{self._nonce}{next(self._counter)}"

    def issue(self) -> Sentinels:
        return make_sentinels(self.next_call_id())


__all__ = ["Sentinels", "SentinelFactory", "make_sentinels"]
