"""Response caching middleware.

Caches successful JSON responses of GET routes in Redis, keyed by actor and
full request path (query string included):

    api:{user_id|anonymous}:{path}?{query}

On a hit the stored body is served without calling the route. On a miss the
route runs, its response is passed through unchanged and, when cacheable, the
body is written back in a detached task with the TTL of the matching rule.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import orjson
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from marketcache.api.deps import resolve_actor
from marketcache.cache.background import DetachedTasks
from marketcache.cache.degraded import DegradedCache
from marketcache.cache.keys import CacheKeys
from marketcache.cache.ttl import CacheTier

logger = logging.getLogger(__name__)

CACHEABLE_METHODS = frozenset({"GET"})
JSON_MEDIA_TYPE = "application/json"


@dataclass(frozen=True)
class CacheRule:
    """Path prefix to TTL tier."""

    prefix: str
    tier: CacheTier

    def matches(self, path: str) -> bool:
        return path.startswith(self.prefix)


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """Serve cached route responses and record fresh ones.

    Passthrough (no read, no write) when the method is not GET, the path
    is private, the client asked to bypass the cache, no rule matches, or the
    cache is degraded.
    """

    def __init__(
        self,
        app: ASGIApp,
        cache: DegradedCache,
        rules: Sequence[CacheRule],
        background: DetachedTasks | None = None,
        actor_resolver: Callable[[Request], str | None] = resolve_actor,
        private_paths: Sequence[str] = ("/user/profile",),
        bypass_header: str = "X-Skip-Cache",
        bypass_query: str = "bypassCache",
    ) -> None:
        super().__init__(app)
        self.cache = cache
        self.rules = list(rules)
        self.background = background or DetachedTasks("response cache")
        self.actor_resolver = actor_resolver
        self.private_paths = tuple(private_paths)
        self.bypass_header = bypass_header
        self.bypass_query = bypass_query

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rule = self._eligible_rule(request)
        if rule is None:
            return await call_next(request)

        key = CacheKeys.api_response(self.actor_resolver(request), self._full_path(request))

        cached = await self.cache.get(key)
        if cached is not None:
            hit = self._hit_response(key, cached)
            if hit is not None:
                return hit

        response = await call_next(request)
        if response.status_code != 200:
            return response

        body = b""
        async for chunk in response.body_iterator:
            body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

        if self._cacheable(body):
            self.background.spawn(self._write(key, body.decode("utf-8"), int(rule.tier)))

        passthrough = Response(
            content=body,
            status_code=response.status_code,
            background=response.background,
        )
        passthrough.raw_headers = list(response.raw_headers)
        return passthrough

    def pending_writes(self) -> int:
        """Number of cache writes still in flight."""
        return len(self.background)

    # -------------------------------------------------------------------------
    # Eligibility
    # -------------------------------------------------------------------------

    def _eligible_rule(self, request: Request) -> CacheRule | None:
        if request.method not in CACHEABLE_METHODS:
            return None
        path = request.url.path
        if any(private in path for private in self.private_paths):
            return None
        if self._bypass(request):
            return None
        if self.cache.availability.degraded:
            return None
        for rule in self.rules:
            if rule.matches(path):
                return rule
        return None

    def _bypass(self, request: Request) -> bool:
        header = request.headers.get(self.bypass_header, "")
        query = request.query_params.get(self.bypass_query, "")
        return header.lower() == "true" or query.lower() == "true"

    @staticmethod
    def _full_path(request: Request) -> str:
        query = request.url.query
        return f"{request.url.path}?{query}" if query else request.url.path

    # -------------------------------------------------------------------------
    # Hit / miss
    # -------------------------------------------------------------------------

    def _hit_response(self, key: str, cached: str) -> Response | None:
        try:
            parsed = orjson.loads(cached)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Discarding undecodable cached response {key}: {e}")
            return None

        if isinstance(parsed, dict):
            content = orjson.dumps({**parsed, "cached": True})
        else:
            content = cached.encode("utf-8")
        return Response(
            content=content,
            status_code=200,
            media_type=JSON_MEDIA_TYPE,
            headers={"X-Cache": "HIT"},
        )

    @staticmethod
    def _cacheable(body: bytes) -> bool:
        """Valid JSON without an error indicator."""
        try:
            parsed: Any = orjson.loads(body)
        except orjson.JSONDecodeError:
            return False
        if isinstance(parsed, dict):
            if parsed.get("error"):
                return False
            message = parsed.get("message")
            if isinstance(message, str) and "error" in message.lower():
                return False
        return True

    async def _write(self, key: str, payload: str, ttl: int) -> None:
        await self.cache.set(key, payload, ttl)
        logger.debug(f"Cached response {key} for {ttl}s")
