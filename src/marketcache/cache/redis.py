"""Redis key/value adapter for marketcache.

Thin async wrapper over redis-py that:
- exposes the handful of commands the cache layer needs
- reports connection lifecycle into ServiceAvailability
- logs and re-raises every backend error (degradation happens one layer up)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Iterable
from typing import TYPE_CHECKING, Any, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from marketcache.cache.availability import ServiceAvailability
from marketcache.config import Settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SCAN page size
DEFAULT_SCAN_COUNT = 100


def create_redis(config: Settings) -> Redis:
    """Create a Redis client for the configured backend.

    Responses are decoded to ``str``; every cached payload is text
    (JSON or a plain numeric string).
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        config.backend_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=config.redis_socket_timeout,
        socket_connect_timeout=config.redis_socket_timeout,
    )


class RedisStore:
    """Key/value operations against the cache backend.

    Every method may raise ``RedisError``. Connectivity failures also flip
    the shared availability to unavailable before re-raising.
    """

    def __init__(self, client: Redis, availability: ServiceAvailability) -> None:
        self.client = client
        self.availability = availability
        self._monitor_task: asyncio.Task[None] | None = None
        self._monitor_running = False

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Probe the backend and emit the ready or error transition.

        Never raises; the application starts even when the cache is down.
        """
        self.availability.mark_connecting()
        try:
            await cast(Awaitable[bool], self.client.ping())
        except (RedisError, OSError) as e:
            logger.error(f"Cache backend connection failed: {e}")
            self.availability.mark_error(e)
            return False
        self.availability.mark_ready()
        return True

    def start_monitor(self, interval: float) -> None:
        """Start re-probing the backend while it is unavailable."""
        if self._monitor_running:
            return
        self._monitor_running = True
        self._monitor_task = asyncio.create_task(self._monitor_loop(interval))
        logger.info(f"Started cache connection monitor (every {interval:.1f}s)")

    async def stop_monitor(self) -> None:
        self._monitor_running = False
        if self._monitor_task:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None

    async def _monitor_loop(self, interval: float) -> None:
        while self._monitor_running:
            try:
                await asyncio.sleep(interval)
                if not self.availability.is_available:
                    await self.connect()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cache connection monitor: {e}")

    async def close(self) -> None:
        """Stop monitoring, close the client and mark the backend closed."""
        await self.stop_monitor()
        try:
            await self.client.aclose()
        finally:
            self.availability.mark_closed()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def _run(self, command: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis {command} failed, backend unreachable: {e}")
            self.availability.mark_error(e)
            raise
        except RedisError as e:
            logger.error(f"Redis {command} failed: {e}")
            raise

    async def get(self, key: str) -> str | None:
        return cast(str | None, await self._run("GET", self.client.get(key)))

    async def set_ex(self, key: str, value: str, ttl_seconds: int) -> str | None:
        """SET with expiry. Returns "OK" on success."""
        result = await self._run("SETEX", self.client.setex(key, ttl_seconds, value))
        return "OK" if result else None

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return cast(int, await self._run("DEL", self.client.delete(*keys)))

    async def exists(self, key: str) -> int:
        return cast(int, await self._run("EXISTS", self.client.exists(key)))

    async def scan(
        self, pattern: str, count: int = DEFAULT_SCAN_COUNT
    ) -> AsyncIterator[list[str]]:
        """Yield batches of keys matching ``pattern``, one per SCAN page.

        Lazy and finite. A scan cannot be resumed once abandoned.
        """
        cursor = 0
        while True:
            cursor, keys = await self._run(
                "SCAN", self.client.scan(cursor=cursor, match=pattern, count=count)
            )
            if keys:
                yield list(keys)
            if cursor == 0:
                break

    async def scan_iter(self, pattern: str, count: int = DEFAULT_SCAN_COUNT) -> AsyncIterator[str]:
        async for batch in self.scan(pattern, count):
            for key in batch:
                yield key

    async def pipeline_delete(self, keys: Iterable[str]) -> int:
        """Delete keys in one non-transactional pipeline round trip."""
        batch = list(keys)
        if not batch:
            return 0

        async def _execute() -> list[Any]:
            async with self.client.pipeline(transaction=False) as pipe:
                for key in batch:
                    pipe.delete(key)
                return cast(list[Any], await pipe.execute())

        results = await self._run("PIPELINE DEL", _execute())
        return sum(int(r) for r in results if isinstance(r, int))

    async def flush_all(self) -> str:
        await self._run("FLUSHALL", self.client.flushall())
        return "OK"

    async def info(self) -> dict[str, Any]:
        return cast(dict[str, Any], await self._run("INFO", self.client.info()))

    async def db_size(self) -> int:
        return cast(int, await self._run("DBSIZE", self.client.dbsize()))

    async def ping(self) -> bool:
        return bool(await self._run("PING", cast(Awaitable[bool], self.client.ping())))
