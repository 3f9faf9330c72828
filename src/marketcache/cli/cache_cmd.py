"""CLI commands for operating on the cache backend.

Usage:
    marketcache cache status
    marketcache cache flush --yes
    marketcache cache invalidate --key job:job123
    marketcache cache invalidate --pattern "api:*:/jobs*"
    marketcache cache invalidate --user u1
    marketcache cache invalidate --resource job --id job123
    marketcache cache invalidate --endpoint /jobs/marketplace
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console

from marketcache.cache.service import CacheService
from marketcache.config import settings
from marketcache.observability import LogContext

T = TypeVar("T")

app = typer.Typer(help="Inspect and invalidate the cache backend", no_args_is_help=True)
console = Console()


async def _with_cache(operation: Callable[[CacheService], Awaitable[T]]) -> T:
    service = CacheService.from_settings(settings)
    if not await service.store.connect():
        console.print(f"[red]Cache backend unreachable:[/red] {settings.backend_url}")
        await service.store.close()
        raise typer.Exit(code=1)
    try:
        with LogContext(request_id="cli"):
            return await operation(service)
    finally:
        await service.stop()


@app.command("status")
def status() -> None:
    """Show availability and key count."""

    async def _status(service: CacheService) -> tuple[dict[str, object], int]:
        return service.availability.snapshot(), await service.cache.db_size()

    snapshot, keys = asyncio.run(_with_cache(_status))
    console.print(f"[bold]Backend:[/bold] {settings.backend_url}")
    for name, value in snapshot.items():
        console.print(f"  {name}: {value}")
    console.print(f"  keys: {keys}")


@app.command("flush")
def flush(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Drop every key in the cache backend."""
    if not yes:
        typer.confirm(f"Flush every key in {settings.backend_url}?", abort=True)

    async def _flush(service: CacheService) -> str:
        return await service.cache.flush_all()

    result = asyncio.run(_with_cache(_flush))
    console.print(f"[green]Flushed:[/green] {result}")


@app.command("invalidate")
def invalidate(
    key: list[str] | None = typer.Option(None, "--key", "-k", help="Exact key (repeatable)"),
    pattern: str | None = typer.Option(None, "--pattern", help="Glob pattern under api:"),
    user: str | None = typer.Option(None, "--user", "-u", help="Every response cached for a user"),
    resource: str | None = typer.Option(None, "--resource", "-r", help="Resource type, e.g. job"),
    resource_id: str = typer.Option("", "--id", help="Resource id used with --resource"),
    endpoint: str | None = typer.Option(None, "--endpoint", "-e", help="Endpoint path prefix"),
) -> None:
    """Drop cached entries; exactly one target kind is required."""
    targets = [key, pattern, user, resource, endpoint]
    if sum(bool(t) for t in targets) != 1:
        console.print(
            "[red]Give exactly one of --key, --pattern, --user, --resource, --endpoint[/red]"
        )
        raise typer.Exit(code=2)

    async def _invalidate(service: CacheService) -> int:
        invalidator = service.invalidator
        if key:
            return await invalidator.invalidate_key(*key)
        if pattern:
            return await invalidator.scan_delete(pattern)
        if user:
            return await invalidator.invalidate_user(user)
        if resource:
            return await invalidator.invalidate_resource(resource, resource_id)
        return await invalidator.invalidate_endpoint(endpoint or "")

    deleted = asyncio.run(_with_cache(_invalidate))
    console.print(f"[green]Deleted {deleted} keys[/green]")
