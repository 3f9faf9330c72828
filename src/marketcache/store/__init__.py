"""Source-of-truth document store interface and in-memory implementation."""

from marketcache.store.base import (
    ASCENDING,
    DESCENDING,
    DocumentStore,
    Filter,
    Record,
    Sort,
    StoreError,
)
from marketcache.store.memory import InMemoryDocumentStore

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "DocumentStore",
    "Filter",
    "InMemoryDocumentStore",
    "Record",
    "Sort",
    "StoreError",
]
