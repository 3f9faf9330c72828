"""Document store interface consumed by the cache layer.

The cache treats the store as the source of truth. Any implementation
(MongoDB, PostgreSQL JSONB, in-memory) only has to provide these shapes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

Record = dict[str, Any]
Filter = Mapping[str, Any]
Sort = Sequence[tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


class StoreError(Exception):
    """The source of truth failed. Never masked by the cache layer."""

    def __init__(self, operation: str, collection: str, cause: BaseException | None = None):
        self.operation = operation
        self.collection = collection
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Store {operation} on '{collection}' failed{detail}")


class DocumentStore(ABC):
    """Abstract collection-oriented store."""

    @abstractmethod
    async def fetch_one(self, collection: str, filter: Filter) -> Record | None:
        """Return the first matching record or None."""
        pass

    @abstractmethod
    async def fetch_many(
        self,
        collection: str,
        filter: Filter,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """Return matching records, optionally sorted and limited."""
        pass

    @abstractmethod
    async def count(self, collection: str, filter: Filter) -> int:
        """Count matching records."""
        pass

    @abstractmethod
    async def save(self, collection: str, record: Record) -> Record:
        """Insert or replace a record (by ``_id``) and return it."""
        pass
