"""Fixtures for API tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from marketcache.api.app import create_app
from marketcache.cache.service import CacheService
from marketcache.config import Settings
from marketcache.store import InMemoryDocumentStore


@pytest.fixture
def app(
    settings: Settings, cache_service: CacheService, document_store: InMemoryDocumentStore
) -> FastAPI:
    return create_app(settings, cache=cache_service, store=document_store)


@pytest_asyncio.fixture
async def client(app: FastAPI, connected_cache: CacheService) -> AsyncIterator[httpx.AsyncClient]:
    """In-process client against an app whose cache is connected.

    The ASGI transport does not run the lifespan, so the cache is connected
    by the ``connected_cache`` fixture instead.
    """
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
