"""CLI command for running the API server.

Usage:
    marketcache serve
    marketcache serve --port 8080 --host 0.0.0.0
    marketcache serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from marketcache.config import settings

app = typer.Typer(help="Run the marketcache API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
) -> None:
    """Run the marketcache API server.

    A single worker process: cache availability and detached cache tasks are
    per-process state.
    """
    import uvicorn

    typer.echo("Starting marketcache server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Cache backend: {settings.backend_url}")
    typer.echo(f"  Log level: {log_level}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()

    uvicorn.run(
        app="marketcache.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )
