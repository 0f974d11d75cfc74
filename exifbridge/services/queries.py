"""Convenience queries layered on :class:`ExifToolSession`."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import msgspec

from ..protocol import protocol
from ..protocol.errors import StructuredOutputError
from .session import ExifToolSession

logger = logging.getLogger("exifbridge.queries")

_JSON_DECODER = msgspec.json.Decoder()


async def execute_json(session: ExifToolSession, params: Iterable[str]) -> Any:
    """Run exiftool with ``-j`` and decode its JSON output."""
    result = await session.execute([protocol.JSON_FLAG, *params])
    try:
        return _JSON_DECODER.decode(result.output)
    except msgspec.DecodeError as exc:
        logger.warning(
            "exiftool returned undecodable JSON (status %d, %d bytes)",
            result.status,
            len(result.output),
        )
        raise StructuredOutputError(
            f"exiftool JSON output could not be decoded (status {result.status}): {exc}"
        ) from exc


async def get_tags(
    session: ExifToolSession,
    params: Iterable[str],
    tags: Iterable[str],
    files: Iterable[str],
) -> Any:
    """Read *tags* from *files*; tag names are given without the leading dash."""
    args = list(params)
    args.extend(f"{protocol.TAG_SELECTOR}{tag}" for tag in tags)
    args.extend(files)
    return await execute_json(session, args)


async def preview(session: ExifToolSession, path: str) -> bytes:
    """Return the embedded preview image of *path* as raw bytes."""
    result = await session.execute([protocol.BINARY_FLAG, protocol.PREVIEW_IMAGE_TAG, path])
    return result.output


async def version(session: ExifToolSession) -> str:
    """Return the exiftool version string, e.g. ``"12.76"``."""
    result = await session.execute([protocol.VERSION_FLAG])
    return result.output.decode("ascii", errors="replace").strip()


__all__ = ["execute_json", "get_tags", "preview", "version"]
