"""Never-raising facade over the Redis adapter.

Every operation returns a neutral value (a miss for reads, a success-shaped
no-op for writes) when the backend is unavailable, the kill-switch is
engaged, or the backend call fails. Callers never branch on cache health;
the document store is always the fallback of record.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from marketcache.cache.availability import ServiceAvailability
from marketcache.cache.redis import RedisStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default TTL (1 hour)
DEFAULT_EXPIRY = 3600


class DegradedCache:
    """Cache operations that fail soft."""

    def __init__(self, store: RedisStore, default_ttl: int = DEFAULT_EXPIRY) -> None:
        self.store = store
        self.default_ttl = default_ttl

    @property
    def availability(self) -> ServiceAvailability:
        return self.store.availability

    async def _guarded(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        neutral: T,
        key: str | None = None,
    ) -> T:
        if self.availability.degraded:
            return neutral
        try:
            return await call()
        except Exception as e:
            target = f" for key {key}" if key else ""
            logger.warning(f"Cache {operation} error{target}, degrading: {e}")
            self.availability.mark_error(e)
            return neutral

    async def get(self, key: str) -> str | None:
        return await self._guarded("get", lambda: self.store.get(key), None, key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> str | None:
        """Store ``value`` with an expiry. Returns "OK" (also when degraded)."""
        expiry = ttl if ttl is not None else self.default_ttl
        return await self._guarded(
            "set", lambda: self.store.set_ex(key, value, expiry), "OK", key
        )

    async def delete(self, *keys: str) -> int:
        return await self._guarded("delete", lambda: self.store.delete(*keys), 0, ",".join(keys))

    async def exists(self, key: str) -> int:
        return await self._guarded("exists", lambda: self.store.exists(key), 0, key)

    async def pipeline_delete(self, keys: Iterable[str]) -> int:
        batch = list(keys)
        return await self._guarded(
            "pipeline delete", lambda: self.store.pipeline_delete(batch), 0
        )

    async def flush_all(self) -> str:
        return await self._guarded("flushall", self.store.flush_all, "OK")

    async def info(self) -> dict[str, Any]:
        return await self._guarded("info", self.store.info, {})

    async def db_size(self) -> int:
        return await self._guarded("dbsize", self.store.db_size, 0)
