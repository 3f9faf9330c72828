"""TTL policy (seconds)."""

from __future__ import annotations

from enum import IntEnum


class CacheTier(IntEnum):
    """TTL tiers for intercepted HTTP responses; routes pick one explicitly."""

    LONG_TERM = 86400  # public data that rarely changes
    STANDARD = 3600
    SHORT_TERM = 300
    DYNAMIC = 30


# Resource accessor TTLs
RESOURCE_TTL = 60
CHAT_TTL = 30  # chat reads change quickly
USER_SEARCH_TTL = 60
ADMIN_TTL = 300
ADMIN_STATS_TTL = ADMIN_TTL * 2
