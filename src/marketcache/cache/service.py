"""Wiring for the cache layer.

One CacheService per process (or per test) owns the availability state and
every component built on top of it; nothing here reads ambient globals.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marketcache.cache.aside import CacheAside
from marketcache.cache.availability import ServiceAvailability
from marketcache.cache.background import DetachedTasks
from marketcache.cache.degraded import DegradedCache
from marketcache.cache.invalidation import CacheInvalidator, ResourceInvalidation
from marketcache.cache.redis import RedisStore, create_redis
from marketcache.config import Settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class CacheService:
    """Availability, adapter, degraded wrapper, reader and invalidators."""

    def __init__(self, client: Redis, config: Settings) -> None:
        self.config = config
        self.availability = ServiceAvailability(manually_disabled=config.cache_disabled)
        self.store = RedisStore(client, self.availability)
        self.cache = DegradedCache(self.store, default_ttl=config.default_expiry)
        self.aside = CacheAside(self.cache)
        self.background = DetachedTasks()
        self.invalidator = CacheInvalidator(
            self.store,
            self.cache,
            scan_count=config.invalidation_scan_count,
            background=self.background,
        )
        self.resources = ResourceInvalidation(self.invalidator)

    @classmethod
    def from_settings(cls, config: Settings, client: Redis | None = None) -> CacheService:
        return cls(client if client is not None else create_redis(config), config)

    async def start(self) -> bool:
        """Connect, start the monitor and wait (bounded) for readiness.

        The monitor keeps probing during the wait, so a backend that comes up
        within the grace period is seen as ready. Returns whether it did; the
        application runs in degraded mode either way.
        """
        await self.store.connect()
        self.store.start_monitor(self.config.cache_reconnect_interval)
        ready = await self.availability.wait_until_ready(self.config.cache_ready_timeout)
        if ready:
            logger.info("Cache backend connected and ready for caching operations")
        else:
            logger.warning("Cache backend not available - caching will be disabled")
        return ready

    async def stop(self) -> None:
        await self.background.drain()
        await self.store.close()
