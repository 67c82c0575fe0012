"""
Bounded in-memory cache for recipe explosion results.

Unlike a process-wide cache, a BoundedCache is created by the caller and
passed explicitly to the code that should use it, so its lifetime and
eviction policy are visible at the call site.
"""
import logging
from typing import Any, Hashable, Optional

logger = logging.getLogger(__name__)


class BoundedCache:
    """Size-bounded cache with first-in, first-out eviction."""

    MAX_ENTRIES = 1000

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is None:
            max_entries = self.MAX_ENTRIES
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._cache: dict = {}  # insertion order == eviction order
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Get value from cache, or None."""
        if key in self._cache:
            self.hits += 1
            return self._cache[key]
        self.misses += 1
        return None

    def set(self, key: Hashable, value: Any):
        """Set value in cache, evicting the oldest entry when full."""
        if key in self._cache:
            # Re-setting does not refresh the entry's position
            self._cache[key] = value
            return
        if len(self._cache) >= self.max_entries:
            oldest = next(iter(self._cache))
            del self._cache[oldest]
            self.evictions += 1
            logger.debug(f"Cache evicted: {oldest}")
        self._cache[key] = value

    def __contains__(self, key: Hashable) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self):
        """Clear entire cache."""
        self._cache.clear()

    def stats(self) -> dict:
        """Get cache statistics."""
        return {
            "total_keys": len(self._cache),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
