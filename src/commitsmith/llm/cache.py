"""
In-memory caches for generated suggestions.

Identical input within one process run must not trigger a second request
to the text-generation service. :class:`SuggestionCache` keeps two strict
LRU caches, one for single-file requests and one for batch requests, keyed
by :func:`fingerprint`. Nothing is persisted.
"""

from __future__ import annotations

import copy
import hashlib
import logging
from collections import OrderedDict
from typing import Dict, Generic, Hashable, List, Optional, Sequence, TypeVar

from commitsmith.models import FileDiff, Suggestion


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


SINGLE_CACHE_SIZE = 100
BATCH_CACHE_SIZE = 50
FINGERPRINT_CONTENT_PREFIX = 1000

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """A size-bounded least-recently-used mapping."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data: "OrderedDict[K, V]" = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def put(self, key: K, value: V) -> None:
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = value
        while len(self._data) > self.capacity:
            evicted, _ = self._data.popitem(last=False)
            logger.debug("Evicted cache entry %s", evicted)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


def fingerprint(diffs: Sequence[FileDiff]) -> str:
    """Derive a cache key from paths, change counts and a content prefix."""
    digest = hashlib.sha256()
    for diff in diffs:
        digest.update(diff.path.encode("utf-8", errors="replace"))
        digest.update(f"\0{diff.additions}\0{diff.deletions}\0".encode("ascii"))
        digest.update(diff.changes[:FINGERPRINT_CONTENT_PREFIX].encode("utf-8", errors="replace"))
        digest.update(b"\x1e")
    return digest.hexdigest()


class SuggestionCache:
    """Single-file and batch suggestion caches.

    Values are deep-copied on the way in and out so callers cannot
    mutate a cached result.
    """

    def __init__(self, single_size: int = SINGLE_CACHE_SIZE, batch_size: int = BATCH_CACHE_SIZE) -> None:
        self.single: LRUCache[str, List[Suggestion]] = LRUCache(single_size)
        self.batch: LRUCache[str, Dict[str, List[Suggestion]]] = LRUCache(batch_size)

    def get_single(self, key: str) -> Optional[List[Suggestion]]:
        value = self.single.get(key)
        return copy.deepcopy(value) if value is not None else None

    def put_single(self, key: str, suggestions: List[Suggestion]) -> None:
        self.single.put(key, copy.deepcopy(suggestions))

    def get_batch(self, key: str) -> Optional[Dict[str, List[Suggestion]]]:
        value = self.batch.get(key)
        return copy.deepcopy(value) if value is not None else None

    def put_batch(self, key: str, results: Dict[str, List[Suggestion]]) -> None:
        self.batch.put(key, copy.deepcopy(results))

    def clear(self) -> None:
        self.single.clear()
        self.batch.clear()
