"""Cached resource reads.

Each accessor is one ``CacheAside.fetch`` call: a key template, a TTL and a
store query. List accessors cache empty lists too; single-record accessors
cache not-found as the null sentinel.

Every accessor takes ``bypass``: a forced-fresh read that goes straight to the
store and leaves the cached entry alone.
"""

from __future__ import annotations

import re
from typing import Any

from marketcache.cache.aside import CacheAside
from marketcache.cache.codec import NUMBER
from marketcache.cache.keys import CacheKeys, Namespace
from marketcache.cache.ttl import (
    ADMIN_STATS_TTL,
    ADMIN_TTL,
    CHAT_TTL,
    RESOURCE_TTL,
    USER_SEARCH_TTL,
)
from marketcache.store.base import DESCENDING, DocumentStore, Record

# Collections
JOBS = "jobs"
BIDS = "bids"
USERS = "users"
NOTIFICATIONS = "notifications"
TRANSACTIONS = "transactions"
CHATS = "chats"
REVIEWS = "reviews"
ADMINS = "admins"

NEWEST_FIRST = [("createdAt", DESCENDING)]

SECRET_FIELDS = frozenset({"password"})


def _redact(record: Record | None) -> Record | None:
    if record is None:
        return None
    return {k: v for k, v in record.items() if k not in SECRET_FIELDS}


def _redact_all(records: list[Record]) -> list[Record]:
    return [{k: v for k, v in r.items() if k not in SECRET_FIELDS} for r in records]


class ResourceAccessors:
    """Read-through accessors for every cached marketplace resource."""

    def __init__(self, aside: CacheAside, store: DocumentStore) -> None:
        self.aside = aside
        self.store = store

    async def _one(
        self,
        key: str,
        collection: str,
        filter: dict[str, Any],
        ttl: int = RESOURCE_TTL,
        *,
        bypass: bool = False,
    ) -> Record | None:
        return await self.aside.fetch(
            key, lambda: self.store.fetch_one(collection, filter), ttl, bypass=bypass
        )

    async def _many(
        self,
        key: str,
        collection: str,
        filter: dict[str, Any],
        ttl: int = RESOURCE_TTL,
        limit: int | None = None,
        sort: list[tuple[str, int]] | None = None,
        *,
        bypass: bool = False,
    ) -> list[Record]:
        return await self.aside.fetch(
            key,
            lambda: self.store.fetch_many(collection, filter, sort=sort, limit=limit),
            ttl,
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    async def job(self, job_id: str, *, bypass: bool = False) -> Record | None:
        return await self._one(
            CacheKeys.resource(Namespace.JOB, job_id), JOBS, {"_id": job_id}, bypass=bypass
        )

    async def marketplace_jobs(self, *, bypass: bool = False) -> list[Record]:
        """Open jobs."""
        return await self._many(
            CacheKeys.resource(Namespace.MARKETPLACE_JOBS),
            JOBS,
            {"status": "open"},
            bypass=bypass,
        )

    async def filtered_jobs(
        self, role: str, user_id: str, *, bypass: bool = False
    ) -> list[Record]:
        """Open jobs visible to an actor; freelancers don't see their own postings."""
        filter: dict[str, Any] = {"status": "open"}
        if role in ("freelancer", "hybrid"):
            filter["employer"] = {"$ne": user_id}
        return await self._many(
            CacheKeys.resource(Namespace.FILTERED_JOBS, role, user_id),
            JOBS,
            filter,
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    async def user_posted_jobs(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.USER_POSTED_JOBS, user_id),
            JOBS,
            {"employer": user_id},
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Bids
    # -------------------------------------------------------------------------

    async def job_bids(self, job_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.JOB_BIDS, job_id), BIDS, {"job": job_id}, bypass=bypass
        )

    async def recent_bids(self, freelancer_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.RECENT_BIDS, freelancer_id),
            BIDS,
            {"freelancer": freelancer_id},
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    async def bid(self, bid_id: str, *, bypass: bool = False) -> Record | None:
        return await self._one(
            CacheKeys.resource(Namespace.BID, bid_id), BIDS, {"_id": bid_id}, bypass=bypass
        )

    async def bid_details(self, bid_id: str, *, bypass: bool = False) -> Record | None:
        """Bid with its job embedded."""
        key = CacheKeys.resource(Namespace.BID_DETAILS, bid_id)

        async def load() -> Record | None:
            bid = await self.store.fetch_one(BIDS, {"_id": bid_id})
            if bid is None:
                return None
            bid["job"] = await self.store.fetch_one(JOBS, {"_id": bid.get("job")})
            return bid

        return await self.aside.fetch(key, load, RESOURCE_TTL, bypass=bypass)

    async def user_bids(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.USER_BIDS, user_id),
            BIDS,
            {"freelancer": user_id},
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def user_profile(self, user_id: str, *, bypass: bool = False) -> Record | None:
        return await self.aside.fetch(
            CacheKeys.resource(Namespace.USER_PROFILE, user_id),
            self._load_user({"_id": user_id}),
            RESOURCE_TTL,
            bypass=bypass,
        )

    async def public_profile(self, username: str, *, bypass: bool = False) -> Record | None:
        return await self.aside.fetch(
            CacheKeys.resource(Namespace.PUBLIC_PROFILE, username),
            self._load_user({"username": username}),
            RESOURCE_TTL,
            bypass=bypass,
        )

    def _load_user(self, filter: dict[str, Any]):
        async def load() -> Record | None:
            return _redact(await self.store.fetch_one(USERS, filter))

        return load

    async def all_users(self, *, bypass: bool = False) -> list[Record]:
        async def load() -> list[Record]:
            return _redact_all(await self.store.fetch_many(USERS, {}))

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.ALL_USERS), load, RESOURCE_TTL, bypass=bypass
        )

    async def search_users(
        self, query: str, limit: int = 10, *, bypass: bool = False
    ) -> list[Record]:
        term = CacheKeys.search_term(query)

        async def load() -> list[Record]:
            users = await self.store.fetch_many(
                USERS, {"username": {"$regex": re.escape(term)}}, limit=limit
            )
            return _redact_all(users)

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.USER_SEARCH, term), load, USER_SEARCH_TTL, bypass=bypass
        )

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def user_notifications(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.USER_NOTIFICATIONS, user_id),
            NOTIFICATIONS,
            {"recipient": user_id},
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    async def unread_notification_count(self, user_id: str, *, bypass: bool = False) -> int:
        """Unread count, cached as a plain numeric string ("0" is a hit)."""
        count = await self.aside.fetch(
            CacheKeys.resource(Namespace.UNREAD_NOTIFICATIONS_COUNT, user_id),
            lambda: self.store.count(NOTIFICATIONS, {"recipient": user_id, "isRead": False}),
            RESOURCE_TTL,
            codec=NUMBER,
            bypass=bypass,
        )
        return int(count or 0)

    # -------------------------------------------------------------------------
    # Wallet and transactions
    # -------------------------------------------------------------------------

    async def wallet_balance(self, user_id: str, *, bypass: bool = False) -> float | int | None:
        """Balance as a plain numeric string.

        A missing user is not cached: an authenticated user should exist, so
        a miss here is transient.
        """

        async def load() -> float | int | None:
            user = await self.store.fetch_one(USERS, {"_id": user_id})
            if user is None:
                return None
            return user.get("wallet", 0)

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.WALLET_BALANCE, user_id),
            load,
            RESOURCE_TTL,
            codec=NUMBER,
            bypass=bypass,
            cache_missing=False,
        )

    async def recent_transactions(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.RECENT_TRANSACTIONS, user_id),
            TRANSACTIONS,
            {"user": user_id},
            limit=10,
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    async def all_transactions(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.ALL_TRANSACTIONS, user_id),
            TRANSACTIONS,
            {"user": user_id},
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    async def transaction(self, transaction_id: str, *, bypass: bool = False) -> Record | None:
        return await self._one(
            CacheKeys.resource(Namespace.TRANSACTION, transaction_id),
            TRANSACTIONS,
            {"_id": transaction_id},
            bypass=bypass,
        )

    async def earnings_summary(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.EARNINGS_SUMMARY, user_id),
            TRANSACTIONS,
            {"user": user_id},
            limit=5,
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def chat(self, chat_id: str, user_id: str, *, bypass: bool = False) -> Record | None:
        """A chat the user participates in.

        Keyed per participant: a cached chat is only served back to the user
        whose membership the store query checked.
        """
        return await self._one(
            CacheKeys.resource(Namespace.CHAT, chat_id, user_id),
            CHATS,
            {"_id": chat_id, "participants": user_id},
            ttl=CHAT_TTL,
            bypass=bypass,
        )

    async def user_chats(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.USER_CHATS, user_id),
            CHATS,
            {"participants": user_id},
            ttl=CHAT_TTL,
            sort=[("lastMessage", DESCENDING)],
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    async def review(self, review_id: str, *, bypass: bool = False) -> Record | None:
        return await self._one(
            CacheKeys.resource(Namespace.REVIEW, review_id),
            REVIEWS,
            {"_id": review_id},
            bypass=bypass,
        )

    async def reviews_for_user(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.REVIEWS_FOR_USER, user_id),
            REVIEWS,
            {"reviewedUser": user_id},
            bypass=bypass,
        )

    async def reviews_by_user(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.REVIEWS_BY_USER, user_id),
            REVIEWS,
            {"reviewer": user_id},
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    async def recent_projects(self, user_id: str, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.RECENT_PROJECTS, user_id),
            JOBS,
            {"freelancer": user_id, "status": {"$in": ["in-progress", "closed"]}},
            limit=10,
            sort=[("updatedAt", DESCENDING)],
            bypass=bypass,
        )

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    async def admin(self, admin_id: str, *, bypass: bool = False) -> Record | None:
        async def load() -> Record | None:
            return _redact(await self.store.fetch_one(ADMINS, {"_id": admin_id}))

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.ADMIN, admin_id), load, ADMIN_TTL, bypass=bypass
        )

    async def all_admins(self, *, bypass: bool = False) -> list[Record]:
        async def load() -> list[Record]:
            return _redact_all(await self.store.fetch_many(ADMINS, {}))

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.ALL_ADMINS), load, ADMIN_TTL, bypass=bypass
        )

    async def all_users_admin(self, *, bypass: bool = False) -> list[Record]:
        async def load() -> list[Record]:
            return _redact_all(await self.store.fetch_many(USERS, {}))

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.ALL_USERS_ADMIN), load, ADMIN_TTL, bypass=bypass
        )

    async def user_admin(self, user_id: str, *, bypass: bool = False) -> Record | None:
        return await self.aside.fetch(
            CacheKeys.resource(Namespace.USER_ADMIN, user_id),
            self._load_user({"_id": user_id}),
            ADMIN_TTL,
            bypass=bypass,
        )

    async def all_jobs_admin(self, *, bypass: bool = False) -> list[Record]:
        return await self._many(
            CacheKeys.resource(Namespace.ALL_JOBS_ADMIN),
            JOBS,
            {},
            ttl=ADMIN_TTL,
            sort=NEWEST_FIRST,
            bypass=bypass,
        )

    async def job_admin(self, job_id: str, *, bypass: bool = False) -> Record | None:
        return await self._one(
            CacheKeys.resource(Namespace.JOB_ADMIN, job_id),
            JOBS,
            {"_id": job_id},
            ttl=ADMIN_TTL,
            bypass=bypass,
        )

    async def site_stats(self, *, bypass: bool = False) -> dict[str, int]:
        async def load() -> dict[str, int]:
            return {
                "totalUsers": await self.store.count(USERS, {}),
                "totalJobs": await self.store.count(JOBS, {}),
                "totalCompletedJobs": await self.store.count(JOBS, {"status": "closed"}),
                "totalBids": await self.store.count(BIDS, {}),
                "totalTransactions": await self.store.count(
                    TRANSACTIONS, {"status": "completed"}
                ),
            }

        return await self.aside.fetch(
            CacheKeys.resource(Namespace.SITE_STATS), load, ADMIN_STATS_TTL, bypass=bypass
        )
