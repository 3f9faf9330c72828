"""In-process stand-in for the redis asyncio client.

Implements the commands RedisStore issues, with a manual clock for expiry and
a ``fail`` switch that makes every command raise a connection error.
"""

from __future__ import annotations

import re
from typing import Any

from redis.exceptions import ConnectionError as RedisConnectionError


def glob_match(pattern: str, key: str) -> bool:
    """Redis MATCH semantics: * ? [set] and backslash escapes."""
    regex: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            regex.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            regex.append(".*")
        elif char == "?":
            regex.append(".")
        elif char == "[" and "]" in pattern[i + 2 :]:
            end = pattern.index("]", i + 1)
            body = pattern[i + 1 : end]
            negate = body.startswith("^")
            members = "".join(c if c == "-" else re.escape(c) for c in body[negate:])
            regex.append(f"[{'^' if negate else ''}{members}]")
            i = end + 1
            continue
        else:
            regex.append(re.escape(char))
        i += 1
    return re.fullmatch("".join(regex), key, re.DOTALL) is not None


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self.client = client
        self._queued: list[str] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self._queued.clear()

    def delete(self, key: str) -> FakePipeline:
        self._queued.append(key)
        return self

    async def execute(self) -> list[int]:
        self.client._check("PIPELINE")
        self.client.pipelines_executed += 1
        return [self.client._delete_one(key) for key in self._queued]


class FakeRedis:
    def __init__(self) -> None:
        self.now = 0.0
        self.fail = False
        self.closed = False
        self.commands: list[str] = []
        self.pipelines_executed = 0
        self._data: dict[str, tuple[str, float | None]] = {}
        self._scan_snapshot: list[str] = []

    # Test helpers

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def seed(self, key: str, value: str, ttl: float | None = None) -> None:
        self._data[key] = (value, self.now + ttl if ttl is not None else None)

    def ttl(self, key: str) -> float | None:
        self._purge(key)
        entry = self._data.get(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self.now

    def raw(self, key: str) -> str | None:
        self._purge(key)
        entry = self._data.get(key)
        return entry[0] if entry else None

    def keys(self) -> list[str]:
        for key in list(self._data):
            self._purge(key)
        return sorted(self._data)

    # Internals

    def _check(self, command: str) -> None:
        self.commands.append(command)
        if self.fail:
            raise RedisConnectionError("Connection refused")

    def _purge(self, key: str) -> None:
        entry = self._data.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= self.now:
            del self._data[key]

    def _delete_one(self, key: str) -> int:
        self._purge(key)
        return 1 if self._data.pop(key, None) is not None else 0

    # Client surface

    async def ping(self) -> bool:
        self._check("PING")
        return True

    async def get(self, key: str) -> str | None:
        self._check("GET")
        return self.raw(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check("SETEX")
        self._data[key] = (value, self.now + ttl)
        return True

    async def delete(self, *keys: str) -> int:
        self._check("DEL")
        return sum(self._delete_one(key) for key in keys)

    async def exists(self, key: str) -> int:
        self._check("EXISTS")
        return 1 if self.raw(key) is not None else 0

    async def scan(self, cursor: int = 0, match: str = "*", count: int = 10) -> tuple[int, list[str]]:
        self._check("SCAN")
        # Cursor indexes a snapshot taken when the scan starts, so keys
        # deleted mid-scan don't shift later pages.
        if cursor == 0:
            self._scan_snapshot = self.keys()
        keys = self._scan_snapshot
        page = [k for k in keys[cursor : cursor + count] if self.raw(k) is not None]
        next_cursor = cursor + count if cursor + count < len(keys) else 0
        return next_cursor, [k for k in page if glob_match(match, k)]

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def flushall(self) -> bool:
        self._check("FLUSHALL")
        self._data.clear()
        return True

    async def info(self) -> dict[str, Any]:
        self._check("INFO")
        return {"redis_version": "7.2.0", "connected_clients": 1}

    async def dbsize(self) -> int:
        self._check("DBSIZE")
        return len(self.keys())

    async def aclose(self) -> None:
        self.closed = True
