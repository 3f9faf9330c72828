"""Payload encoding for cached values.

Two formats are stored:
- JSON (orjson) for records and lists
- plain numeric strings for counters and balances, e.g. "0" or "12.5"

``NULL_SENTINEL`` marks a confirmed not-found result. It is checked on the
raw payload before any decoding, so it never collides with a real value.
"""

from __future__ import annotations

from typing import Any, Protocol

import orjson
from pydantic import BaseModel

NULL_SENTINEL = "null"


class CacheDecodeError(ValueError):
    """Cached payload could not be decoded."""


class Codec(Protocol):
    def encode(self, value: Any) -> str: ...

    def decode(self, raw: str) -> Any: ...


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


class JsonCodec:
    """orjson-backed codec for records and lists."""

    def encode(self, value: Any) -> str:
        return orjson.dumps(value, default=_default).decode("utf-8")

    def decode(self, raw: str) -> Any:
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheDecodeError(f"Invalid JSON payload: {e}") from e


class NumberCodec:
    """Counters and balances as plain numeric strings."""

    def encode(self, value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"NumberCodec expects int or float, got {type(value).__name__}")
        return str(value)

    def decode(self, raw: str) -> int | float:
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError as e:
            raise CacheDecodeError(f"Invalid numeric payload: {raw!r}") from e


JSON = JsonCodec()
NUMBER = NumberCodec()
