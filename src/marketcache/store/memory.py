"""In-memory document store.

Suitable for development, demos and tests. Records are deep-copied on the
way in and out so callers can't mutate stored state by accident.

Supported filter operators: plain equality (array fields match by
membership), ``$in``, ``$ne`` and case-insensitive ``$regex``.
"""

from __future__ import annotations

import copy
import logging
import re
import uuid
from typing import Any

from marketcache.store.base import DocumentStore, Filter, Record, Sort

logger = logging.getLogger(__name__)


def _matches(record: Record, filter: Filter) -> bool:
    for field, expected in filter.items():
        actual = record.get(field)
        if isinstance(expected, dict):
            if "$in" in expected and actual not in expected["$in"]:
                return False
            if "$ne" in expected and actual == expected["$ne"]:
                return False
            if "$regex" in expected and not (
                isinstance(actual, str) and re.search(expected["$regex"], actual, re.IGNORECASE)
            ):
                return False
        elif isinstance(actual, list):
            # Array fields match when they contain the value
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


def _sort_key(field: str):
    def key(record: Record) -> tuple[bool, Any]:
        value = record.get(field)
        # Missing values sort after present ones (before, when descending)
        return (value is None, value)

    return key


class InMemoryDocumentStore(DocumentStore):
    """Dict-of-lists store keyed by collection name."""

    def __init__(self, data: dict[str, list[Record]] | None = None) -> None:
        self._collections: dict[str, list[Record]] = {}
        for collection, records in (data or {}).items():
            for record in records:
                self._insert(collection, record)

    def _insert(self, collection: str, record: Record) -> Record:
        stored = copy.deepcopy(record)
        stored.setdefault("_id", uuid.uuid4().hex)
        docs = self._collections.setdefault(collection, [])
        for i, existing in enumerate(docs):
            if existing["_id"] == stored["_id"]:
                docs[i] = stored
                break
        else:
            docs.append(stored)
        return stored

    async def fetch_one(self, collection: str, filter: Filter) -> Record | None:
        for record in self._collections.get(collection, []):
            if _matches(record, filter):
                return copy.deepcopy(record)
        return None

    async def fetch_many(
        self,
        collection: str,
        filter: Filter,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        results = [r for r in self._collections.get(collection, []) if _matches(r, filter)]
        # Apply sort keys right-to-left so the first key wins
        for field, direction in reversed(list(sort or [])):
            results.sort(key=_sort_key(field), reverse=direction < 0)
        if limit is not None:
            results = results[:limit]
        return copy.deepcopy(results)

    async def count(self, collection: str, filter: Filter) -> int:
        return sum(1 for r in self._collections.get(collection, []) if _matches(r, filter))

    async def save(self, collection: str, record: Record) -> Record:
        stored = self._insert(collection, record)
        logger.debug(f"Saved {collection}/{stored['_id']}")
        return copy.deepcopy(stored)
