"""Cache invalidation after writes to the source of truth.

Two flavours:
- exact keys: accessors that know their key template delete it directly
- patterns: streamed SCAN + pipelined DEL over the ``api:`` response cache

Pattern invalidation is deliberately approximate. It may delete more than
strictly necessary, trading a few extra misses for no reverse index and no
stale-entry leaks.

Invalidation failures never fail the write that triggered them: the safe
helpers log and return 0, and ``schedule`` lets callers fire and forget.

Example:
    invalidator = CacheInvalidator(store, scan_count=100)

    # After updating job 42
    invalidator.schedule(invalidator.invalidate_resource("job", "42"))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Iterable
from typing import Any

from marketcache.cache.background import DetachedTasks
from marketcache.cache.degraded import DegradedCache
from marketcache.cache.keys import CacheKeys, Namespace
from marketcache.cache.redis import DEFAULT_SCAN_COUNT, RedisStore

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Deletes cache entries by exact key or glob pattern."""

    def __init__(
        self,
        store: RedisStore,
        cache: DegradedCache | None = None,
        scan_count: int = DEFAULT_SCAN_COUNT,
        background: DetachedTasks | None = None,
    ) -> None:
        self.store = store
        self.cache = cache or DegradedCache(store)
        self.scan_count = scan_count
        self.background = background or DetachedTasks("invalidation")

    async def scan_delete(self, pattern: str) -> int:
        """Delete every key matching ``pattern``.

        Streams SCAN pages and pipelines one DEL per matched key per page,
        so no single round trip blocks the backend for long. Cost grows
        with the total keyspace, not the match count: one SCAN round trip
        per ``scan_count`` keys examined.

        Returns the number of keys removed. Backend errors propagate.
        """
        if self.store.availability.degraded:
            return 0

        deleted = 0
        async for batch in self.store.scan(pattern, self.scan_count):
            deleted += await self.store.pipeline_delete(batch)
        logger.debug(f"Invalidated {deleted} keys matching {pattern}")
        return deleted

    async def invalidate_pattern(self, pattern: str) -> int:
        """Like ``scan_delete`` but never raises."""
        try:
            return await self.scan_delete(pattern)
        except Exception as e:
            logger.error(f"Cache invalidation failed for pattern {pattern}: {e}")
            return 0

    async def invalidate_key(self, *keys: str) -> int:
        """Delete exact keys. Never raises."""
        if not keys:
            return 0
        deleted = await self.cache.delete(*keys)
        logger.debug(f"Invalidated {deleted} of {len(keys)} keys")
        return deleted

    async def invalidate_user(self, user_id: str) -> int:
        """Drop every cached HTTP response for one user."""
        return await self.invalidate_pattern(CacheKeys.user_pattern(user_id))

    async def invalidate_resource(self, resource_type: str, resource_id: str = "") -> int:
        """Drop every cached HTTP response that mentions a resource."""
        return await self.invalidate_pattern(
            CacheKeys.resource_pattern(resource_type, resource_id)
        )

    async def invalidate_endpoint(self, endpoint: str) -> int:
        """Drop every cached HTTP response under an endpoint path."""
        return await self.invalidate_pattern(CacheKeys.endpoint_pattern(endpoint))

    # -------------------------------------------------------------------------
    # Fire-and-forget
    # -------------------------------------------------------------------------

    def schedule(self, invalidation: Coroutine[Any, Any, int]) -> asyncio.Task[int]:
        """Run an invalidation in the background.

        The caller does not await the result; failures are logged by the
        done callback.
        """
        return self.background.spawn(invalidation)

    async def drain(self) -> None:
        """Wait for outstanding background invalidations."""
        await self.background.drain()


class ResourceInvalidation:
    """Maps domain writes to the cache entries they make stale.

    Exact accessor keys are deleted directly. The ``api:`` response cache is
    cleared by resource pattern.
    """

    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def _drop(self, keys: Iterable[str], patterns: Iterable[str] = ()) -> int:
        deleted = await self.invalidator.invalidate_key(*keys)
        for pattern in patterns:
            deleted += await self.invalidator.invalidate_pattern(pattern)
        return deleted

    async def job_changed(self, job_id: str, employer_id: str | None = None) -> int:
        keys = [
            CacheKeys.resource(Namespace.JOB, job_id),
            CacheKeys.resource(Namespace.JOB_ADMIN, job_id),
            CacheKeys.resource(Namespace.MARKETPLACE_JOBS),
            CacheKeys.resource(Namespace.ALL_JOBS_ADMIN),
            CacheKeys.resource(Namespace.SITE_STATS),
        ]
        if employer_id:
            keys.append(CacheKeys.resource(Namespace.USER_POSTED_JOBS, employer_id))
        return await self._drop(
            keys,
            [
                CacheKeys.resource_pattern("job", job_id),
                CacheKeys.resource_pattern("marketplace"),
            ],
        )

    async def bid_changed(self, bid_id: str, job_id: str, freelancer_id: str) -> int:
        keys = [
            CacheKeys.resource(Namespace.BID, bid_id),
            CacheKeys.resource(Namespace.BID_DETAILS, bid_id),
            CacheKeys.resource(Namespace.JOB_BIDS, job_id),
            CacheKeys.resource(Namespace.RECENT_BIDS, freelancer_id),
            CacheKeys.resource(Namespace.USER_BIDS, freelancer_id),
        ]
        return await self._drop(
            keys,
            [
                CacheKeys.resource_pattern("job", job_id),
                CacheKeys.resource_pattern("bid", bid_id),
            ],
        )

    async def user_changed(self, user_id: str, username: str | None = None) -> int:
        keys = [
            CacheKeys.resource(Namespace.USER_PROFILE, user_id),
            CacheKeys.resource(Namespace.USER_ADMIN, user_id),
            CacheKeys.resource(Namespace.ALL_USERS),
            CacheKeys.resource(Namespace.ALL_USERS_ADMIN),
        ]
        if username:
            keys.append(CacheKeys.resource(Namespace.PUBLIC_PROFILE, username))
        return await self._drop(keys, [CacheKeys.user_pattern(user_id)])

    async def notification_changed(self, user_id: str) -> int:
        keys = [
            CacheKeys.resource(Namespace.USER_NOTIFICATIONS, user_id),
            CacheKeys.resource(Namespace.UNREAD_NOTIFICATIONS_COUNT, user_id),
        ]
        return await self._drop(keys, [CacheKeys.resource_pattern("notifications")])

    async def wallet_changed(self, user_id: str, transaction_id: str | None = None) -> int:
        keys = [
            CacheKeys.resource(Namespace.WALLET_BALANCE, user_id),
            CacheKeys.resource(Namespace.RECENT_TRANSACTIONS, user_id),
            CacheKeys.resource(Namespace.ALL_TRANSACTIONS, user_id),
            CacheKeys.resource(Namespace.EARNINGS_SUMMARY, user_id),
        ]
        if transaction_id:
            keys.append(CacheKeys.resource(Namespace.TRANSACTION, transaction_id))
        return await self._drop(keys, [CacheKeys.user_pattern(user_id)])

    async def chat_changed(self, chat_id: str, participant_ids: Iterable[str] = ()) -> int:
        keys: list[str] = []
        for uid in participant_ids:
            keys.append(CacheKeys.resource(Namespace.CHAT, chat_id, uid))
            keys.append(CacheKeys.resource(Namespace.USER_CHATS, uid))
        return await self._drop(keys)

    async def review_changed(self, review_id: str, reviewer_id: str, reviewee_id: str) -> int:
        keys = [
            CacheKeys.resource(Namespace.REVIEW, review_id),
            CacheKeys.resource(Namespace.REVIEWS_BY_USER, reviewer_id),
            CacheKeys.resource(Namespace.REVIEWS_FOR_USER, reviewee_id),
            CacheKeys.resource(Namespace.USER_PROFILE, reviewee_id),
        ]
        return await self._drop(keys, [CacheKeys.resource_pattern("review")])

    async def admin_changed(self, admin_id: str | None = None) -> int:
        keys = [CacheKeys.resource(Namespace.ALL_ADMINS)]
        if admin_id:
            keys.append(CacheKeys.resource(Namespace.ADMIN, admin_id))
        return await self._drop(keys)
