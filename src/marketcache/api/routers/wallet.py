"""Wallet endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from marketcache.api.deps import AccessorsDep, BypassDep, UserIdDep
from marketcache.api.errors import NotFoundError

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/balance")
async def balance(
    user_id: UserIdDep, accessors: AccessorsDep, bypass: BypassDep
) -> dict[str, float | int]:
    amount = await accessors.wallet_balance(user_id, bypass=bypass)
    if amount is None:
        raise NotFoundError("User", user_id)
    return {"balance": amount}


@router.get("/transactions")
async def transactions(
    user_id: UserIdDep, accessors: AccessorsDep, bypass: BypassDep
) -> list[dict[str, Any]]:
    return await accessors.recent_transactions(user_id, bypass=bypass)
