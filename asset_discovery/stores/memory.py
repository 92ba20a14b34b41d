"""In-memory result graph store backed by an arena of documents."""

from __future__ import annotations

import copy
import itertools
import threading
from collections import defaultdict
from typing import Any, Optional

from asset_discovery.stores.base import ResultGraphStore

__all__ = ["InMemoryResultGraphStore"]


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    """Evaluate the query subset used by ResultGraphStore ($in, $ne, $or)."""
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(document, clause) for clause in condition):
                return False
            continue

        value = document.get(key)
        if isinstance(condition, dict):
            for operator, operand in condition.items():
                if operator == "$in":
                    matched = value in operand
                elif operator == "$ne":
                    matched = value != operand
                else:
                    raise ValueError(f"Unsupported query operator: {operator}")
                if not matched:
                    return False
        elif value != condition:
            return False
    return True


class InMemoryResultGraphStore(ResultGraphStore):
    """
    Result graph store that keeps every document in process memory.

    Documents live in per-collection lists and are always copied on the way
    in and out, so callers never hold references into the arena. A single
    re-entrant lock serializes all primitives.
    """

    def __init__(self, max_page_size: int = 500, strict_annotation_types: bool = False) -> None:
        super().__init__(max_page_size=max_page_size, strict_annotation_types=strict_annotation_types)
        self._lock = threading.RLock()
        self._collections: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self._sequence = itertools.count(1)

    def _insert(self, collection: str, document: dict[str, Any]) -> None:
        with self._lock:
            self._collections[collection].append(copy.deepcopy(document))

    def _find_one(self, collection: str, query: dict[str, Any]) -> Optional[dict[str, Any]]:
        with self._lock:
            for document in self._collections[collection]:
                if _matches(document, query):
                    return copy.deepcopy(document)
        return None

    def _find(
        self, collection: str, query: dict[str, Any], offset: int = 0, limit: int = 0
    ) -> list[dict[str, Any]]:
        with self._lock:
            matches = [d for d in self._collections[collection] if _matches(d, query)]
            matches.sort(key=lambda d: d.get("seq", 0))
            end = offset + limit if limit else None
            return [copy.deepcopy(d) for d in matches[offset:end]]

    def _count(self, collection: str, query: dict[str, Any]) -> int:
        with self._lock:
            return sum(1 for d in self._collections[collection] if _matches(d, query))

    def _update(self, collection: str, query: dict[str, Any], fields: dict[str, Any]) -> int:
        with self._lock:
            for document in self._collections[collection]:
                if _matches(document, query):
                    document.update(copy.deepcopy(fields))
                    return 1
        return 0

    def _delete(self, collection: str, query: dict[str, Any]) -> int:
        with self._lock:
            documents = self._collections[collection]
            kept = [d for d in documents if not _matches(d, query)]
            deleted = len(documents) - len(kept)
            self._collections[collection] = kept
            return deleted

    def _next_sequence(self) -> int:
        with self._lock:
            return next(self._sequence)
