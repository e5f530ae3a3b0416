"""
Per-collection read cache.

Each collection is loaded at most once until a mutation on that collection
invalidates it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CollectionCache:
    """Caches loaded collections keyed by collection (entity type or slot set)."""

    def __init__(self) -> None:
        self._entries: Dict[Hashable, Any] = {}
        self._lock = threading.RLock()

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        """Return the cached value for ``key``, calling ``loader`` on a miss."""
        # Load under the lock so invalidate() never interleaves with a load
        with self._lock:
            if key in self._entries:
                logger.debug("Cache hit for %s", key)
                return self._entries[key]

            value = loader()
            self._entries[key] = value

        logger.debug("Cached %s", key)
        return value

    def is_loaded(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def invalidate(self, key: Hashable) -> None:
        """Drop one collection; the next read reloads it."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Invalidated cache for %s", key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
