"""Read-through cache-aside fetch.

Every resource accessor is one call to ``CacheAside.fetch`` with its own key,
TTL and store query:

    job = await aside.fetch(CacheKeys.resource(Namespace.JOB, job_id),
                            lambda: store.fetch_one("jobs", {"_id": job_id}),
                            ttl=60)

Cache faults never fail a read. Source-of-truth faults always do.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from marketcache.cache.codec import JSON, NULL_SENTINEL, CacheDecodeError, Codec
from marketcache.cache.degraded import DegradedCache

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Any]]


class CacheAside:
    """Generic cache-aside reader."""

    def __init__(self, cache: DegradedCache, default_ttl: int | None = None) -> None:
        self.cache = cache
        self.default_ttl = default_ttl if default_ttl is not None else cache.default_ttl

    async def fetch(
        self,
        key: str,
        fetch_fn: FetchFn,
        ttl: int | None = None,
        *,
        codec: Codec = JSON,
        bypass: bool = False,
        cache_missing: bool = True,
    ) -> Any:
        """Return the cached value for ``key`` or load it with ``fetch_fn``.

        Returns None when the record does not exist (fresh or cached
        not-found). Exceptions raised by ``fetch_fn`` propagate unchanged and
        nothing is cached for them.

        Args:
            key: Deterministic cache key
            fetch_fn: Loads the value from the source of truth
            ttl: Expiry in seconds (defaults to the configured expiry)
            codec: Payload format (JSON or plain numeric string)
            bypass: Skip the cache entirely for a forced-fresh read
            cache_missing: Cache a not-found result as the null sentinel
        """
        if bypass:
            logger.debug(f"Cache bypass for {key}")
            return await fetch_fn()

        raw = await self.cache.get(key)
        # "0" is a hit; only an absent key is a miss
        if raw is not None:
            if raw == NULL_SENTINEL:
                logger.debug(f"Cache hit (not found) for {key}")
                return None
            try:
                value = codec.decode(raw)
            except CacheDecodeError as e:
                logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            else:
                logger.debug(f"Cache hit for {key}")
                return value

        logger.debug(f"Cache miss for {key}, fetching from store")
        result = await fetch_fn()
        expiry = ttl if ttl is not None else self.default_ttl

        if result is None:
            if cache_missing:
                await self._store(key, NULL_SENTINEL, expiry)
            return None

        try:
            payload = codec.encode(result)
        except (TypeError, ValueError) as e:
            logger.error(f"Cannot serialize value for {key}, not caching: {e}")
            return result

        await self._store(key, payload, expiry)
        return result

    async def _store(self, key: str, payload: str, ttl: int) -> None:
        try:
            await self.cache.set(key, payload, ttl)
        except Exception as e:
            logger.error(f"Cache set error for {key}: {e}")
