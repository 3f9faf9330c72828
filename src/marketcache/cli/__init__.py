"""CLI commands for marketcache.

Provides command-line interface using Typer:
- marketcache serve: Run the API server
- marketcache cache status: Show cache backend state
- marketcache cache flush: Drop every cached entry
- marketcache cache invalidate: Drop entries by key or pattern

Usage:
    marketcache --help
    marketcache serve --port 8080
    marketcache cache invalidate --resource job --id job123
"""

import typer

from marketcache.cli.cache_cmd import app as cache_app
from marketcache.cli.serve import app as serve_app

app = typer.Typer(
    name="marketcache",
    help="marketcache: cache-aside layer for a freelance marketplace API",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(cache_app, name="cache")


@app.callback()
def callback() -> None:
    """marketcache: cache-aside layer for a freelance marketplace API."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
