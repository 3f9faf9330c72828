"""Global pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fakes import FakeRedis

from marketcache.cache.service import CacheService
from marketcache.config import Settings
from marketcache.store import InMemoryDocumentStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: end-to-end flows through the HTTP app")


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def settings() -> Settings:
    """Settings with short timeouts so degraded paths resolve quickly."""
    return Settings(
        env="dev",
        redis_url="redis://cache.test:6379/0",
        cache_ready_timeout=0.05,
        cache_reconnect_interval=0.01,
        invalidation_scan_count=5,
        log_level="DEBUG",
    )


@pytest.fixture
def cache_service(fake_redis: FakeRedis, settings: Settings) -> CacheService:
    """Cache service that has not connected yet (still degraded)."""
    return CacheService(fake_redis, settings)  # type: ignore[arg-type]


@pytest_asyncio.fixture
async def connected_cache(cache_service: CacheService) -> AsyncIterator[CacheService]:
    """Cache service with a ready backend."""
    assert await cache_service.store.connect()
    yield cache_service
    await cache_service.background.drain()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        {
            "jobs": [
                {
                    "_id": "job123",
                    "title": "Build a landing page",
                    "budget": 500,
                    "status": "open",
                    "employer": "emp1",
                    "createdAt": "2024-01-01T00:00:00+00:00",
                },
                {
                    "_id": "job456",
                    "title": "Fix payment webhook",
                    "budget": 250,
                    "status": "in-progress",
                    "employer": "emp2",
                    "createdAt": "2024-01-02T00:00:00+00:00",
                },
            ],
            "users": [
                {"_id": "u1", "username": "ada", "wallet": 0, "password": "hash"},
                {"_id": "u2", "username": "grace", "wallet": 12.5, "password": "hash"},
            ],
            "notifications": [
                {"_id": "n1", "recipient": "u2", "isRead": False},
                {"_id": "n2", "recipient": "u2", "isRead": True},
            ],
        }
    )
