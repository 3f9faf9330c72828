"""Middleware for marketcache."""

from marketcache.api.middleware.correlation import CorrelationMiddleware
from marketcache.api.middleware.response_cache import CacheRule, ResponseCacheMiddleware

__all__ = [
    "CorrelationMiddleware",
    "CacheRule",
    "ResponseCacheMiddleware",
]
