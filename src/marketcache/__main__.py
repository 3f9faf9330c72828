"""Entry point for ``python -m marketcache``."""

from marketcache.cli import main

if __name__ == "__main__":
    main()
