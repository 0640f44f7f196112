"""Bounded in-memory store for decoded images.

This module provides the fast tier of the image cache: an LRU map from cache
key to decoded Pillow image, bounded both by entry count and by cumulative
decoded size.

Key Features:
    - LRU eviction: Least recently used entries evicted when either bound is hit
    - Cost budgeting: Entries weighted by decoded bitmap size
    - Thread-safe: All operations serialized by a lock
    - Statistics tracking: Hit/miss rates for monitoring
    - Wholesale clear: Used for memory-pressure trims
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from cachetools import LRUCache

from invcu_image_cache.infrastructure.image_codec import image_cost

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)


class MemoryStore:
    """LRU memory store for decoded images using cachetools LRUCache.

    The underlying LRUCache is sized in bytes (``getsizeof`` returns the
    decoded cost of each image), and the entry count limit is enforced on
    top of it by popping least recently used entries.

    Attributes:
        count_limit: Maximum number of cached images.
        cost_limit: Maximum cumulative decoded size in bytes.
        _cache: Underlying LRUCache providing recency ordering and cost limit.
        _lock: Serializes access; cachetools caches are not thread-safe.
        _hits: Total number of cache hits since initialization.
        _misses: Total number of cache misses since initialization.
        _evictions: Entries dropped to honor the count limit.
    """

    def __init__(self, count_limit: int = 200, cost_limit: int = 100 * 1024 * 1024) -> None:
        """Initialize memory store.

        Args:
            count_limit: Maximum number of cached images. Must be positive.
                Default: 200.
            cost_limit: Maximum cumulative decoded size in bytes. Must be
                positive. Default: 100 MiB.
        """
        if count_limit < 1:
            raise ValueError("count_limit must be positive")
        if cost_limit < 1:
            raise ValueError("cost_limit must be positive")
        self.count_limit = count_limit
        self.cost_limit = cost_limit
        self._cache: LRUCache[str, Image.Image] = LRUCache(maxsize=cost_limit, getsizeof=image_cost)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Image.Image | None:
        """Return the cached image for ``key`` and mark it recently used."""
        with self._lock:
            image = self._cache.get(key)
            if image is None:
                self._misses += 1
                return None
            self._hits += 1
        return image

    def put(self, key: str, image: Image.Image) -> None:
        """Cache ``image`` under ``key``, evicting older entries as needed.

        An image whose cost alone exceeds cost_limit is not stored.
        """
        cost = image_cost(image)
        if cost > self.cost_limit:
            logger.debug("Image for %s too large for memory store (%d bytes)", key[:40], cost)
            return

        with self._lock:
            self._cache[key] = image
            while len(self._cache) > self.count_limit:
                self._cache.popitem()
                self._evictions += 1

    def remove(self, key: str) -> None:
        """Drop ``key`` if present."""
        with self._lock:
            self._cache.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def current_cost(self) -> int:
        """Cumulative decoded size of all cached images in bytes."""
        with self._lock:
            return int(self._cache.currsize)

    def clear(self) -> None:
        """Drop all entries. Hit, miss and eviction counters are kept."""
        with self._lock:
            self._cache.clear()

    def get_stats(self) -> dict[str, int | float]:
        """Get memory store statistics.

        Returns:
            Dictionary with size, count_limit, cost, cost_limit, hits, misses,
            evictions and hit_rate (0.0-1.0, 0.0 before any lookup).
        """
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._cache),
                "count_limit": self.count_limit,
                "cost": int(self._cache.currsize),
                "cost_limit": self.cost_limit,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": self._hits / total if total > 0 else 0.0,
            }
