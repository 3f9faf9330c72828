"""Shared FastAPI dependencies for marketcache routers.

Authentication is handled upstream (gateway or auth middleware). It exposes
the actor as ``request.state.user_id`` or forwards it in ``X-User-Id``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from marketcache.api.errors import UnauthorizedError
from marketcache.cache.accessors import ResourceAccessors
from marketcache.cache.service import CacheService
from marketcache.config import Settings
from marketcache.store.base import DocumentStore

ACTOR_HEADER = "x-user-id"
ROLE_HEADER = "x-user-role"


def resolve_actor(request: Request) -> str | None:
    """Actor id for the request, or None when anonymous."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return str(user_id)
    return request.headers.get(ACTOR_HEADER) or None


def bypass_signal(request: Request, config: Settings) -> bool:
    """True when the request asks for a forced-fresh read."""
    header = request.headers.get(config.cache_bypass_header, "")
    query = request.query_params.get(config.cache_bypass_query, "")
    return header.lower() == "true" or query.lower() == "true"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_accessors(request: Request) -> ResourceAccessors:
    return request.app.state.accessors


def current_user_id(request: Request) -> str:
    """FastAPI dependency for routes that require an actor."""
    user_id = resolve_actor(request)
    if user_id is None:
        raise UnauthorizedError()
    return user_id


def current_user_role(request: Request) -> str:
    return request.headers.get(ROLE_HEADER, "client")


def bypass_requested(
    request: Request, config: Annotated[Settings, Depends(get_settings)]
) -> bool:
    return bypass_signal(request, config)


CacheDep = Annotated[CacheService, Depends(get_cache)]
StoreDep = Annotated[DocumentStore, Depends(get_store)]
AccessorsDep = Annotated[ResourceAccessors, Depends(get_accessors)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
UserIdDep = Annotated[str, Depends(current_user_id)]
RoleDep = Annotated[str, Depends(current_user_role)]
BypassDep = Annotated[bool, Depends(bypass_requested)]
