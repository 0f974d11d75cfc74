"""Session and query services for exifbridge."""

from .queries import execute_json, get_tags, preview, version
from .session import ExifToolSession, open_session

__all__ = [
    "ExifToolSession",
    "execute_json",
    "get_tags",
    "open_session",
    "preview",
    "version",
]
