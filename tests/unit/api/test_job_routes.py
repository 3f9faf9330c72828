"""Tests for job, notification and wallet endpoints."""

from __future__ import annotations

import httpx
import pytest
from fakes import FakeRedis

from marketcache.cache.service import CacheService
from marketcache.cache.ttl import CacheTier


class TestJobReads:
    @pytest.mark.asyncio
    async def test_get_job_populates_both_layers(
        self,
        client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        response = await client.get("/jobs/job123")
        await connected_cache.background.drain()

        assert response.status_code == 200
        assert response.json()["title"] == "Build a landing page"
        assert fake_redis.ttl("job:job123") == 60
        assert fake_redis.ttl("api:anonymous:/jobs/job123") == CacheTier.STANDARD

    @pytest.mark.asyncio
    async def test_marketplace(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/jobs/marketplace")
        assert [job["_id"] for job in response.json()] == ["job123"]

    @pytest.mark.asyncio
    async def test_marketplace_bypass_reads_store(
        self,
        client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        fake_redis.seed("marketplace_jobs", '[{"_id":"stale"}]', ttl=60)

        response = await client.get("/jobs/marketplace", params={"bypassCache": "true"})
        await connected_cache.background.drain()

        assert [job["_id"] for job in response.json()] == ["job123"]
        assert fake_redis.keys() == ["marketplace_jobs"]


class TestJobWrites:
    @pytest.mark.asyncio
    async def test_create_requires_actor(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/jobs", json={"title": "New", "budget": 10})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_invalidates_marketplace(
        self,
        client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        await client.get("/jobs/marketplace")
        await connected_cache.background.drain()
        assert fake_redis.raw("marketplace_jobs") is not None

        response = await client.post(
            "/jobs", json={"title": "Write docs", "budget": 50}, headers={"X-User-Id": "emp9"}
        )
        await connected_cache.background.drain()

        assert response.status_code == 201
        assert response.json()["employer"] == "emp9"
        assert fake_redis.raw("marketplace_jobs") is None

        listed = (await client.get("/jobs/marketplace")).json()
        assert len(listed) == 2

    @pytest.mark.asyncio
    async def test_update_missing_job(self, client: httpx.AsyncClient) -> None:
        response = await client.put(
            "/jobs/nope", json={"title": "x"}, headers={"X-User-Id": "emp1"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_body(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/jobs", json={"title": "", "budget": -1}, headers={"X-User-Id": "emp1"}
        )
        assert response.status_code == 422


class TestCounters:
    @pytest.mark.asyncio
    async def test_unread_count_zero_is_cached(
        self,
        client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        response = await client.get("/notifications/unread-count", headers={"X-User-Id": "u1"})
        await connected_cache.background.drain()

        assert response.json() == {"count": 0}
        assert fake_redis.raw("unread_notifications_count:u1") == "0"
        assert fake_redis.ttl("api:u1:/notifications/unread-count") == CacheTier.DYNAMIC

    @pytest.mark.asyncio
    async def test_wallet_balance(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/wallet/balance", headers={"X-User-Id": "u2"})
        assert response.json() == {"balance": 12.5}

    @pytest.mark.asyncio
    async def test_wallet_unknown_user(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/wallet/balance", headers={"X-User-Id": "ghost"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_notifications_list(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/notifications", headers={"X-User-Id": "u2"})
        assert len(response.json()) == 2


class TestForcedFreshReads:
    """The bypass signal skips the accessor cache as well as the response cache."""

    @pytest.mark.asyncio
    async def test_job_bypass_header_reads_store(
        self,
        client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        stale = '{"_id":"job123","title":"Build a landing page","status":"closed"}'
        fake_redis.seed("job:job123", stale, ttl=60)

        cached = await client.get("/jobs/job123")
        fresh = await client.get("/jobs/job123", headers={"X-Skip-Cache": "true"})
        await connected_cache.background.drain()

        assert cached.json()["status"] == "closed"
        assert fresh.json()["status"] == "open"
        assert fake_redis.raw("job:job123") == stale

    @pytest.mark.asyncio
    async def test_wallet_bypass_query_reads_store(
        self,
        client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        fake_redis.seed("wallet_balance:u2", "5", ttl=60)

        response = await client.get(
            "/wallet/balance", params={"bypassCache": "true"}, headers={"X-User-Id": "u2"}
        )
        await connected_cache.background.drain()

        assert response.json() == {"balance": 12.5}
        assert fake_redis.raw("wallet_balance:u2") == "5"
        assert fake_redis.raw("api:u2:/wallet/balance?bypassCache=true") is None

    @pytest.mark.asyncio
    async def test_unread_count_bypass_reads_store(
        self, client: httpx.AsyncClient, fake_redis: FakeRedis
    ) -> None:
        fake_redis.seed("unread_notifications_count:u2", "7", ttl=60)

        response = await client.get(
            "/notifications/unread-count",
            headers={"X-User-Id": "u2", "X-Skip-Cache": "true"},
        )

        assert response.json() == {"count": 1}
