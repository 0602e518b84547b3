"""Thread-safe TTL cache with LRU eviction.

Used for username lookups on the read-side endpoints, where the same handful
of reactor ids are enriched over and over.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Iterable, Optional, Tuple


class TimedCache:
    """In-memory cache with per-item TTL and LRU eviction.

    Parameters
    ----------
    max_items:
        Maximum number of entries to keep.
    ttl:
        Time-to-live in seconds for each entry.
    """

    def __init__(self, max_items: int = 1024, ttl: float = 300.0) -> None:
        self.max_items: int = max(1, int(max_items))
        self.ttl: float = float(ttl)
        self._store: OrderedDict[Any, Tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def _prune(self) -> None:
        """Remove expired and overflowing entries (caller must hold lock)."""
        now = time.time()
        dead = [key for key, (expires, _val) in self._store.items() if expires <= now]
        for key in dead:
            self._store.pop(key, None)
        while len(self._store) > self.max_items:
            self._store.popitem(last=False)

    def get(self, key: Any) -> Optional[Any]:
        """Return cached value or ``None`` if missing/expired."""
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            expires, value = item
            if expires <= time.time():
                self._store.pop(key, None)
                return None
            self._store.move_to_end(key)
            return value

    def set(self, key: Any, value: Any) -> None:
        with self._lock:
            self._store[key] = (time.time() + self.ttl, value)
            self._store.move_to_end(key)
            self._prune()

    def split(self, keys: Iterable[Any]) -> Tuple[Dict[Any, Any], list]:
        """Partition *keys* into cached hits and misses."""
        hits: Dict[Any, Any] = {}
        misses: list = []
        for key in keys:
            value = self.get(key)
            if value is None:
                misses.append(key)
            else:
                hits[key] = value
        return hits, misses

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
