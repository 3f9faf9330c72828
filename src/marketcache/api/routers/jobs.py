"""Job endpoints.

Reads go through the cached accessors; writes go to the store and then drop
every cache entry the change makes stale, without waiting for it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from marketcache.api.deps import AccessorsDep, BypassDep, CacheDep, StoreDep, UserIdDep
from marketcache.api.errors import NotFoundError
from marketcache.cache.accessors import JOBS

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobCreate(BaseModel):
    model_config = {"extra": "forbid"}

    title: str = Field(min_length=1)
    description: str = ""
    budget: float = Field(ge=0)
    skills: list[str] = Field(default_factory=list)


class JobUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    budget: float | None = Field(default=None, ge=0)
    skills: list[str] | None = None
    status: str | None = None


def _now() -> str:
    return datetime.now(UTC).isoformat()


@router.get("/marketplace")
async def marketplace(accessors: AccessorsDep, bypass: BypassDep) -> list[dict[str, Any]]:
    """Open jobs."""
    return await accessors.marketplace_jobs(bypass=bypass)


@router.get("/{job_id}")
async def get_job(job_id: str, accessors: AccessorsDep, bypass: BypassDep) -> dict[str, Any]:
    job = await accessors.job(job_id, bypass=bypass)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(
    body: JobCreate, user_id: UserIdDep, store: StoreDep, cache: CacheDep
) -> dict[str, Any]:
    now = _now()
    job = await store.save(
        JOBS,
        {
            **body.model_dump(),
            "employer": user_id,
            "status": "open",
            "createdAt": now,
            "updatedAt": now,
        },
    )
    cache.invalidator.schedule(cache.resources.job_changed(job["_id"], user_id))
    return job


@router.put("/{job_id}")
async def update_job(
    job_id: str, body: JobUpdate, user_id: UserIdDep, store: StoreDep, cache: CacheDep
) -> dict[str, Any]:
    current = await store.fetch_one(JOBS, {"_id": job_id})
    if current is None:
        raise NotFoundError("Job", job_id)

    job = await store.save(
        JOBS, {**current, **body.model_dump(exclude_unset=True), "updatedAt": _now()}
    )
    cache.invalidator.schedule(cache.resources.job_changed(job_id, job.get("employer")))
    return job
