"""FastAPI application factory for marketcache.

Creates the application with:
- Cached read endpoints for jobs, notifications and wallet
- Response caching middleware with per-route TTL tiers
- Cache lifecycle (bounded readiness wait, reconnect monitor, drain on exit)
- Operational endpoints for the cache kill-switch and invalidation
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from marketcache.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    store_exception_handler,
)
from marketcache.api.middleware import CacheRule, CorrelationMiddleware, ResponseCacheMiddleware
from marketcache.api.routers import health, jobs, notifications, system, wallet
from marketcache.cache.accessors import ResourceAccessors
from marketcache.cache.service import CacheService
from marketcache.cache.ttl import CacheTier
from marketcache.config import Settings
from marketcache.config import settings as default_settings
from marketcache.observability import configure_logging
from marketcache.store import DocumentStore, InMemoryDocumentStore, StoreError

logger = logging.getLogger(__name__)

ROUTE_CACHE_RULES = [
    CacheRule("/jobs", CacheTier.STANDARD),
    CacheRule("/notifications", CacheTier.DYNAMIC),
    CacheRule("/wallet", CacheTier.DYNAMIC),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Startup waits a bounded time for the cache backend and carries on in
    degraded mode if it never becomes ready. Shutdown drains detached cache
    tasks before closing the connection.
    """
    config: Settings = app.state.settings
    cache: CacheService = app.state.cache

    configure_logging(json_format=config.env != "dev", level=config.log_level)
    logger.info(f"Starting marketcache ({config.env})")

    await cache.start()
    logger.info("marketcache startup complete")

    yield

    logger.info("Shutting down marketcache")
    await cache.stop()
    logger.info("marketcache shutdown complete")


def create_app(
    settings: Settings | None = None,
    cache: CacheService | None = None,
    store: DocumentStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``cache`` and ``store`` default to a Redis-backed service built from
    ``settings`` and an in-memory document store.
    """
    config = settings or default_settings
    cache = cache or CacheService.from_settings(config)
    store = store or InMemoryDocumentStore()

    app = FastAPI(
        title="marketcache",
        description="Cache-aside layer for a freelance marketplace API",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.cache = cache
    app.state.store = store
    app.state.accessors = ResourceAccessors(cache.aside, store)

    # Last added runs first: correlation ids are bound before cache lookups log.
    app.add_middleware(
        ResponseCacheMiddleware,
        cache=cache.cache,
        rules=ROUTE_CACHE_RULES,
        background=cache.background,
        bypass_header=config.cache_bypass_header,
        bypass_query=config.cache_bypass_query,
    )
    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(StoreError, cast(ExceptionHandler, store_exception_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    app.include_router(system.router)
    app.include_router(jobs.router)
    app.include_router(notifications.router)
    app.include_router(wallet.router)

    return app
