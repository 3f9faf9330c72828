"""API routers for marketcache."""

from marketcache.api.routers import health, jobs, notifications, system, wallet

__all__ = ["health", "jobs", "notifications", "system", "wallet"]
