"""Cache key schema for marketcache.

Resource keys: {namespace}:{identifier}[:{identifier}...]

Where:
- namespace: resource type ("job", "job_bids", "user_profile", ...)
- identifier: resource id, user id, role, or a normalized search term

HTTP response keys: api:{actor_id}:{request_path}

Identical logical requests must produce identical keys, and every writer of
a resource must know which namespaces to invalidate.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

# Characters with meaning in a Redis glob
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: str) -> str:
    """Escape a literal for use inside a SCAN MATCH pattern."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class Namespace(str, Enum):
    """Resource-type namespaces, one writer family per namespace."""

    # Jobs
    JOB = "job"
    MARKETPLACE_JOBS = "marketplace_jobs"
    FILTERED_JOBS = "filtered_jobs"
    USER_POSTED_JOBS = "user_posted_jobs"

    # Bids
    JOB_BIDS = "job_bids"
    RECENT_BIDS = "recent_bids"
    BID = "bid"
    BID_DETAILS = "bid_details"
    USER_BIDS = "user_bids"

    # Users
    USER_PROFILE = "user_profile"
    PUBLIC_PROFILE = "public_profile"
    ALL_USERS = "all_users"
    USER_SEARCH = "user_search"

    # Notifications
    USER_NOTIFICATIONS = "user_notifications"
    UNREAD_NOTIFICATIONS_COUNT = "unread_notifications_count"

    # Wallet and transactions
    WALLET_BALANCE = "wallet_balance"
    RECENT_TRANSACTIONS = "recent_transactions"
    ALL_TRANSACTIONS = "all_transactions"
    TRANSACTION = "transaction"
    EARNINGS_SUMMARY = "earnings_summary"

    # Chat
    CHAT = "chat"
    USER_CHATS = "user_chats"

    # Reviews
    REVIEW = "review"
    REVIEWS_FOR_USER = "reviews_for_user"
    REVIEWS_BY_USER = "reviews_by_user"

    # Projects
    RECENT_PROJECTS = "recent_projects"

    # Admin
    ADMIN = "admin"
    ALL_ADMINS = "all_admins"
    ALL_USERS_ADMIN = "all_users_admin"
    USER_ADMIN = "user_admin"
    ALL_JOBS_ADMIN = "all_jobs_admin"
    JOB_ADMIN = "job_admin"
    SITE_STATS = "site_stats"


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    API_PREFIX = "api"
    ANONYMOUS = "anonymous"
    SEPARATOR = ":"

    @classmethod
    def resource(cls, namespace: Namespace, *identifiers: Any) -> str:
        """Key for a resource read.

        Singleton namespaces (e.g. ``all_users``) take no identifiers.
        """
        parts = [namespace.value, *(str(i) for i in identifiers)]
        return cls.SEPARATOR.join(parts)

    @classmethod
    def search_term(cls, query: str) -> str:
        """Normalize a free-text search term."""
        return " ".join(query.split()).lower()

    @classmethod
    def api_response(cls, actor_id: str | None, path: str) -> str:
        """Key for an intercepted HTTP response."""
        return f"{cls.API_PREFIX}:{actor_id or cls.ANONYMOUS}:{path}"

    @classmethod
    def user_pattern(cls, user_id: str) -> str:
        """Every cached HTTP response for one actor."""
        return f"{cls.API_PREFIX}:{escape_glob(user_id)}:*"

    @classmethod
    def resource_pattern(cls, resource_type: str, resource_id: str = "") -> str:
        """Every cached HTTP response whose path mentions the resource.

        Over-broad on purpose: an empty ``resource_id`` matches every
        response mentioning the resource type.
        """
        return f"{cls.API_PREFIX}:*:*{escape_glob(resource_type)}*{escape_glob(resource_id)}*"

    @classmethod
    def endpoint_pattern(cls, endpoint: str) -> str:
        """Every cached HTTP response for an endpoint path prefix."""
        return f"{cls.API_PREFIX}:*:{escape_glob(endpoint)}*"
