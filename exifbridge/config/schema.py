"""Marshmallow schema for RuntimeConfig validation."""

from __future__ import annotations

import shlex
from typing import Any, Dict

from marshmallow import Schema, fields, post_load, pre_load, validate

from ..const import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_EXECUTABLE,
    DEFAULT_POLL_INTERVAL,
)
from .model import RuntimeConfig


class RuntimeConfigSchema(Schema):
    """Declarative validation schema for exifbridge configuration."""

    executable = fields.Str(load_default=DEFAULT_EXECUTABLE, validate=validate.Length(min=1))
    common_args = fields.List(
        fields.Str(validate=validate.Length(min=1)),
        load_default=tuple,
    )

    chunk_size = fields.Int(load_default=DEFAULT_CHUNK_SIZE, validate=validate.Range(min=1))
    poll_interval = fields.Float(load_default=DEFAULT_POLL_INTERVAL, validate=validate.Range(min=0.0))
    read_timeout = fields.Float(
        load_default=None,
        allow_none=True,
        validate=validate.Range(min=0.0, min_inclusive=False),
    )
    close_timeout = fields.Float(load_default=DEFAULT_CLOSE_TIMEOUT, validate=validate.Range(min=0.0))

    debug_logging = fields.Bool(load_default=DEFAULT_DEBUG_LOGGING)

    @pre_load
    def normalize_raw_values(self, data: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        data = dict(data)
        if isinstance(data.get("executable"), str):
            data["executable"] = data["executable"].strip()
        if isinstance(data.get("common_args"), str):
            data["common_args"] = shlex.split(data["common_args"])
        timeout = data.get("read_timeout")
        if isinstance(timeout, str) and timeout.strip().lower() in ("", "0", "none"):
            data["read_timeout"] = None
        return data

    @post_load
    def make_config(self, data: Dict[str, Any], **kwargs: Any) -> RuntimeConfig:
        data["common_args"] = tuple(data["common_args"])
        return RuntimeConfig(**data)
