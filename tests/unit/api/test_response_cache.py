"""Tests for the response caching middleware."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fakes import FakeRedis
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from marketcache.api.middleware import CacheRule, ResponseCacheMiddleware
from marketcache.cache.service import CacheService
from marketcache.cache.ttl import CacheTier


def build_app(cache: CacheService) -> FastAPI:
    app = FastAPI()
    app.state.calls = 0

    def hit(request: Request) -> None:
        request.app.state.calls += 1

    @app.get("/items")
    async def list_items(request: Request) -> list[dict[str, int]]:
        hit(request)
        return [{"id": 1}, {"id": 2}]

    @app.get("/items/{item_id}")
    async def get_item(item_id: str, request: Request) -> dict[str, str]:
        hit(request)
        return {"id": item_id}

    @app.post("/items")
    async def create_item(request: Request) -> dict[str, bool]:
        hit(request)
        return {"ok": True}

    @app.get("/user/profile")
    async def profile(request: Request) -> dict[str, str]:
        hit(request)
        return {"id": "me"}

    @app.get("/text")
    async def text(request: Request) -> PlainTextResponse:
        hit(request)
        return PlainTextResponse("hello")

    @app.get("/failing")
    async def failing(request: Request) -> dict[str, str]:
        hit(request)
        return {"error": "upstream said no"}

    @app.get("/soft-error")
    async def soft_error(request: Request) -> dict[str, str]:
        hit(request)
        return {"message": "Unexpected error while loading"}

    @app.get("/created", status_code=201)
    async def created(request: Request) -> dict[str, bool]:
        hit(request)
        return {"ok": True}

    @app.get("/uncached")
    async def uncached(request: Request) -> dict[str, bool]:
        hit(request)
        return {"ok": True}

    app.add_middleware(
        ResponseCacheMiddleware,
        cache=cache.cache,
        background=cache.background,
        rules=[
            CacheRule("/items", CacheTier.SHORT_TERM),
            CacheRule("/user", CacheTier.STANDARD),
            CacheRule("/text", CacheTier.DYNAMIC),
            CacheRule("/failing", CacheTier.DYNAMIC),
            CacheRule("/soft-error", CacheTier.DYNAMIC),
            CacheRule("/created", CacheTier.DYNAMIC),
        ],
    )
    return app


@pytest.fixture
def mini_app(cache_service: CacheService) -> FastAPI:
    return build_app(cache_service)


@pytest_asyncio.fixture
async def mini_client(
    mini_app: FastAPI, connected_cache: CacheService
) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=mini_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestMissAndHit:
    """Misses are recorded, hits skip the route."""

    @pytest.mark.asyncio
    async def test_miss_writes_exact_body_with_tier_ttl(
        self,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        response = await mini_client.get("/items/42")
        await connected_cache.background.drain()

        assert response.status_code == 200
        assert "x-cache" not in response.headers
        assert fake_redis.raw("api:anonymous:/items/42") == response.text
        assert fake_redis.ttl("api:anonymous:/items/42") == CacheTier.SHORT_TERM

    @pytest.mark.asyncio
    async def test_object_hit_is_flagged_cached(
        self,
        mini_app: FastAPI,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
    ) -> None:
        await mini_client.get("/items/42")
        await connected_cache.background.drain()

        response = await mini_client.get("/items/42")

        assert response.json() == {"id": "42", "cached": True}
        assert response.headers["x-cache"] == "HIT"
        assert mini_app.state.calls == 1

    @pytest.mark.asyncio
    async def test_list_hit_is_returned_unchanged(
        self,
        mini_app: FastAPI,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
    ) -> None:
        first = await mini_client.get("/items")
        await connected_cache.background.drain()

        second = await mini_client.get("/items")

        assert second.content == first.content
        assert second.headers["x-cache"] == "HIT"
        assert mini_app.state.calls == 1

    @pytest.mark.asyncio
    async def test_key_includes_actor_and_query(
        self,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        await mini_client.get("/items", params={"page": "2"}, headers={"X-User-Id": "u1"})
        await connected_cache.background.drain()

        assert fake_redis.raw("api:u1:/items?page=2") is not None
        assert fake_redis.raw("api:anonymous:/items?page=2") is None

    @pytest.mark.asyncio
    async def test_undecodable_entry_falls_through(
        self,
        mini_app: FastAPI,
        mini_client: httpx.AsyncClient,
        fake_redis: FakeRedis,
    ) -> None:
        fake_redis.seed("api:anonymous:/items/7", "{broken", ttl=300)

        response = await mini_client.get("/items/7")

        assert response.json() == {"id": "7"}
        assert mini_app.state.calls == 1


class TestPassthrough:
    """Responses are never altered, only sometimes recorded."""

    @pytest.mark.asyncio
    async def test_miss_response_matches_uncached_response(
        self,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
    ) -> None:
        connected_cache.availability.disable()
        direct = await mini_client.get("/items")
        connected_cache.availability.enable()

        intercepted = await mini_client.get("/items")
        await connected_cache.background.drain()

        assert intercepted.status_code == direct.status_code
        assert intercepted.content == direct.content
        assert intercepted.headers["content-type"] == direct.headers["content-type"]
        assert intercepted.headers["content-length"] == direct.headers["content-length"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/failing", "/soft-error", "/text", "/created", "/uncached"])
    async def test_not_recorded(
        self,
        path: str,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        """Error bodies, non-JSON, non-200 and unmatched routes are not cached."""
        response = await mini_client.get(path)
        await connected_cache.background.drain()

        assert response.status_code in (200, 201)
        assert fake_redis.keys() == []

    @pytest.mark.asyncio
    async def test_text_body_passes_through(self, mini_client: httpx.AsyncClient) -> None:
        response = await mini_client.get("/text")
        assert response.text == "hello"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_private_path_skipped(
        self,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        await mini_client.get("/user/profile", headers={"X-User-Id": "u1"})
        await connected_cache.background.drain()
        assert fake_redis.commands == ["PING"]

    @pytest.mark.asyncio
    async def test_post_skipped(
        self, mini_client: httpx.AsyncClient, fake_redis: FakeRedis
    ) -> None:
        response = await mini_client.post("/items")
        assert response.json() == {"ok": True}
        assert fake_redis.commands == ["PING"]

    @pytest.mark.asyncio
    async def test_head_skipped(
        self, mini_client: httpx.AsyncClient, fake_redis: FakeRedis
    ) -> None:
        """HEAD never reads the GET entry; the route decides how to answer it."""
        fake_redis.seed("api:anonymous:/items", '[{"id":1}]', ttl=300)

        response = await mini_client.head("/items")

        assert response.status_code == 405
        assert "x-cache" not in response.headers
        assert fake_redis.commands == ["PING"]

    @pytest.mark.asyncio
    async def test_bypass_header_and_query(
        self,
        mini_app: FastAPI,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        fake_redis.seed("api:anonymous:/items", '[{"id":"stale"}]', ttl=300)

        by_header = await mini_client.get("/items", headers={"X-Skip-Cache": "true"})
        by_query = await mini_client.get("/items", params={"bypassCache": "true"})
        await connected_cache.background.drain()

        assert by_header.json() == [{"id": 1}, {"id": 2}]
        assert by_query.json() == [{"id": 1}, {"id": 2}]
        assert mini_app.state.calls == 2
        assert fake_redis.keys() == ["api:anonymous:/items"]

    @pytest.mark.asyncio
    async def test_degraded_cache_is_transparent(
        self,
        mini_app: FastAPI,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        fake_redis: FakeRedis,
    ) -> None:
        """A dead backend never fails the request."""
        fake_redis.fail = True

        first = await mini_client.get("/items/1")
        second = await mini_client.get("/items/1")
        await connected_cache.background.drain()

        assert first.json() == second.json() == {"id": "1"}
        assert mini_app.state.calls == 2


class TestDetachedWrites:
    """Write-back does not hold up the response."""

    @pytest.mark.asyncio
    async def test_write_failure_is_not_surfaced(
        self,
        mini_client: httpx.AsyncClient,
        connected_cache: CacheService,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def broken_set(*args: object, **kwargs: object) -> str:
            raise RuntimeError("write failed")

        monkeypatch.setattr(connected_cache.cache, "set", broken_set)

        response = await mini_client.get("/items/9")
        await connected_cache.background.drain()

        assert response.status_code == 200
        assert len(connected_cache.background) == 0

    def test_pending_writes_counts_background(self, connected_cache: CacheService) -> None:
        middleware = ResponseCacheMiddleware(
            FastAPI(), cache=connected_cache.cache, rules=[], background=connected_cache.background
        )
        assert middleware.pending_writes() == 0

    def test_rules_match_by_prefix(self) -> None:
        rule = CacheRule("/jobs", CacheTier.STANDARD)
        assert rule.matches("/jobs/marketplace")
        assert not rule.matches("/wallet/balance")