"""
Cache store for One Call forecast responses with per-entry TTL.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class CacheEntry:
    """A stored response and the lifetime it was granted when written."""

    key: str
    stored_at: float  # epoch seconds
    ttl_ms: float
    body: Any

    def age_ms(self, now: Optional[float] = None) -> float:
        if now is None:
            now = time.time()
        return (now - self.stored_at) * 1000

    def is_fresh(self, now: Optional[float] = None) -> bool:
        """Check if the entry is still within its own TTL."""
        return self.age_ms(now) < self.ttl_ms


class CacheStore:
    """
    Keyed mapping from cache key to CacheEntry.

    The janitor thread and request workers share one store, so every
    access goes through the lock.
    """

    def __init__(self):
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._cache.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        """Store an entry, replacing whatever was there."""
        with self._lock:
            self._cache[key] = entry

    def delete(self, key: str, entry: Optional[CacheEntry] = None) -> bool:
        """
        Remove a key.

        When ``entry`` is given the key is only removed if it still maps to
        that exact entry, so a concurrent refresh is never thrown away.
        Returns True if something was removed.
        """
        with self._lock:
            current = self._cache.get(key)
            if current is None:
                return False
            if entry is not None and current is not entry:
                return False
            del self._cache[key]
            return True

    def entries(self) -> List[Tuple[str, CacheEntry]]:
        """Snapshot of all (key, entry) pairs."""
        with self._lock:
            return list(self._cache.items())

    def clear(self) -> int:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache
