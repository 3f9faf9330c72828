"""Notification endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from marketcache.api.deps import AccessorsDep, BypassDep, UserIdDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user_id: UserIdDep, accessors: AccessorsDep, bypass: BypassDep
) -> list[dict[str, Any]]:
    return await accessors.user_notifications(user_id, bypass=bypass)


@router.get("/unread-count")
async def unread_count(
    user_id: UserIdDep, accessors: AccessorsDep, bypass: BypassDep
) -> dict[str, int]:
    """Unread notifications for the acting user; zero is a cached value."""
    return {"count": await accessors.unread_notification_count(user_id, bypass=bypass)}
