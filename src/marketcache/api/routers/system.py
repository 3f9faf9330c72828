"""Operational endpoints for the cache layer.

Manual kill-switch, diagnostics, flush (dev only) and targeted invalidation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field, model_validator

from marketcache.api.deps import CacheDep, SettingsDep
from marketcache.api.errors import BadRequestError, NotFoundError
from marketcache.cache.keys import CacheKeys

router = APIRouter(prefix="/system/cache", tags=["system"])


class InvalidationRequest(BaseModel):
    """Exactly one invalidation target."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    key: str | None = None
    pattern: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    resource_type: str | None = Field(default=None, alias="resourceType")
    resource_id: str = Field(default="", alias="resourceId")
    endpoint: str | None = None

    @model_validator(mode="after")
    def _one_target(self) -> InvalidationRequest:
        targets = [self.key, self.pattern, self.user_id, self.resource_type, self.endpoint]
        if sum(t is not None for t in targets) != 1:
            raise ValueError(
                "Provide exactly one of key, pattern, userId, resourceType or endpoint"
            )
        return self


@router.post("/disable")
async def disable_cache(cache: CacheDep) -> dict[str, Any]:
    cache.availability.disable()
    return cache.availability.snapshot()


@router.post("/enable")
async def enable_cache(cache: CacheDep) -> dict[str, Any]:
    cache.availability.enable()
    return cache.availability.snapshot()


@router.get("/status")
async def cache_status(cache: CacheDep) -> dict[str, Any]:
    """Availability snapshot plus the number of keys in the backend."""
    return {**cache.availability.snapshot(), "keys": await cache.cache.db_size()}


@router.post("/flush")
async def flush_cache(cache: CacheDep, config: SettingsDep) -> dict[str, str]:
    """Drop the whole keyspace. Only exposed in the dev environment."""
    if config.env != "dev":
        raise NotFoundError("Endpoint", "/system/cache/flush")
    return {"result": await cache.cache.flush_all()}


@router.post("/invalidate")
async def invalidate(body: InvalidationRequest, cache: CacheDep) -> dict[str, int]:
    invalidator = cache.invalidator
    if body.key is not None:
        deleted = await invalidator.invalidate_key(body.key)
    elif body.pattern is not None:
        if not body.pattern.startswith(f"{CacheKeys.API_PREFIX}{CacheKeys.SEPARATOR}"):
            raise BadRequestError(
                f"Invalidation patterns must start with '{CacheKeys.API_PREFIX}:'"
            )
        deleted = await invalidator.invalidate_pattern(body.pattern)
    elif body.user_id is not None:
        deleted = await invalidator.invalidate_user(body.user_id)
    elif body.resource_type is not None:
        deleted = await invalidator.invalidate_resource(body.resource_type, body.resource_id)
    else:
        deleted = await invalidator.invalidate_endpoint(body.endpoint or "")
    return {"deleted": deleted}
