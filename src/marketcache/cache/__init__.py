"""Cache layer for marketcache.

Provides Redis caching with the cache-aside pattern:
- Degradation wrapper so a cache outage never fails a request
- Read-through accessors with null-result caching
- TTL-based expiration per resource and per route tier
- Exact-key and pattern-based invalidation after writes
"""

from marketcache.cache.accessors import ResourceAccessors
from marketcache.cache.aside import CacheAside
from marketcache.cache.availability import AvailabilityState, ServiceAvailability
from marketcache.cache.background import DetachedTasks
from marketcache.cache.codec import JSON, NULL_SENTINEL, NUMBER, CacheDecodeError
from marketcache.cache.degraded import DEFAULT_EXPIRY, DegradedCache
from marketcache.cache.invalidation import CacheInvalidator, ResourceInvalidation
from marketcache.cache.keys import CacheKeys, Namespace
from marketcache.cache.redis import RedisStore, create_redis
from marketcache.cache.service import CacheService
from marketcache.cache.ttl import CacheTier

__all__ = [
    # Backend
    "RedisStore",
    "create_redis",
    "ServiceAvailability",
    "AvailabilityState",
    # Read path
    "DegradedCache",
    "DEFAULT_EXPIRY",
    "CacheAside",
    "ResourceAccessors",
    "JSON",
    "NUMBER",
    "NULL_SENTINEL",
    "CacheDecodeError",
    # Keys and TTLs
    "CacheKeys",
    "Namespace",
    "CacheTier",
    # Invalidation
    "CacheInvalidator",
    "ResourceInvalidation",
    # Wiring
    "CacheService",
    "DetachedTasks",
]
