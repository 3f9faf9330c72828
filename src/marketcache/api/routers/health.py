"""Health check endpoints.

- /health/live  - liveness probe (process is running)
- /health/ready - readiness probe (reports cache state)

The cache is an optimisation, so a degraded cache never fails readiness; it
is reported as ``degraded`` with status 200.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from marketcache.api.deps import CacheDep
from marketcache.cache.service import CacheService

router = APIRouter(tags=["health"])

PING_TIMEOUT = 2.0


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_cache(cache: CacheService) -> ComponentHealth:
    """Probe the cache backend unless it is already known to be degraded."""
    start = time.monotonic()
    availability = cache.availability
    if availability.manually_disabled:
        return ComponentHealth(
            name="cache",
            status=HealthStatus.DEGRADED,
            latency_ms=0.0,
            message="Cache manually disabled",
        )
    if availability.degraded:
        return ComponentHealth(
            name="cache",
            status=HealthStatus.DEGRADED,
            latency_ms=0.0,
            message=f"Cache {availability.state.value}",
        )

    try:
        await asyncio.wait_for(cache.store.ping(), timeout=PING_TIMEOUT)
    except asyncio.TimeoutError:
        return ComponentHealth(
            name="cache",
            status=HealthStatus.DEGRADED,
            latency_ms=(time.monotonic() - start) * 1000,
            message="Cache ping timed out",
        )
    except Exception as e:
        return ComponentHealth(
            name="cache",
            status=HealthStatus.DEGRADED,
            latency_ms=(time.monotonic() - start) * 1000,
            message=str(e),
        )
    return ComponentHealth(
        name="cache",
        status=HealthStatus.HEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(cache: CacheDep) -> ORJSONResponse:
    """Readiness probe.

    Always 200: requests are served from the source of truth while the cache
    is degraded.
    """
    component = await check_cache(cache)
    overall = (
        HealthStatus.HEALTHY
        if component.status is HealthStatus.HEALTHY
        else HealthStatus.DEGRADED
    )
    return ORJSONResponse(
        content={"status": overall.value, "components": [component.to_dict()]},
        status_code=200,
    )
