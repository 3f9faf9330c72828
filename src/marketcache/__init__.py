"""marketcache: cache-aside layer for a freelance marketplace API."""

__version__ = "0.1.0"
