"""
Short-lived cache for derived counts.

Live holder counts and poll tallies are recomputed from raw rows on every
read. SSE streams and the polls list read them far more often than they
change, so reads go through a small TTL cache that is invalidated by the
change hub whenever a hold or vote is written. The TTL bounds staleness for
holds that silently expire (no write happens when a lease lapses).

- OrderedDict storage with LRU eviction and a size cap
- RLock so get_or_fetch can re-enter while holding the lock
- Double-checked locking so concurrent misses trigger one fetch
- Hit/miss counters exposed on /health
"""

import time
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from pushit.core.constants import (
    CACHE_KEY_ACTIVE_HOLDERS,
    CACHE_KEY_POLL_TALLIES,
    TABLE_BUTTON_HOLDS,
    TABLE_POLLS,
    TABLE_USER_VOTES,
)
from pushit.core.events import ChangeEvent, ChangeHub


class TTLCache:
    """Thread-safe TTL cache with LRU eviction.

    Storage format: OrderedDict[key: (value, stored_at)]
    """

    def __init__(self, max_size: int = 256):
        self._cache: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.RLock()
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value regardless of age, or None."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            self._cache.move_to_end(key)
            return entry[0]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache.pop(key, None)
            self._cache[key] = (value, time.time())
            while len(self._cache) > self._max_size:
                self._cache.popitem(last=False)

    def is_expired(self, key: str, ttl_seconds: float) -> bool:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return True
            return time.time() - entry[1] > ttl_seconds

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix. Returns how many were dropped."""
        with self._lock:
            doomed = [key for key in self._cache if key.startswith(prefix)]
            for key in doomed:
                del self._cache[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        """Size, hit rate and per-entry age, for monitoring."""
        with self._lock:
            total = self._hits + self._misses
            now = time.time()
            return {
                "size": len(self._cache),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(self._hits / total * 100, 2) if total else 0,
                "entries": {
                    key: {
                        "age_seconds": round(now - stored_at, 2),
                        "cached_at": datetime.fromtimestamp(stored_at).isoformat(),
                    }
                    for key, (_, stored_at) in self._cache.items()
                },
            }


def get_or_fetch(
    cache: TTLCache,
    cache_key: str,
    fetch_func: Callable[[], Any],
    ttl_seconds: float = 1.0
) -> Any:
    """
    Return a fresh cached value or compute it with fetch_func.

    The fast path reads without taking the lock for long. On a miss the lock
    is held across the fetch and the freshness check is repeated, so a burst
    of readers after an invalidation causes a single database query.
    """
    if ttl_seconds <= 0:
        return fetch_func()

    if not cache.is_expired(cache_key, ttl_seconds):
        cached = cache.get(cache_key)
        if cached is not None:
            with cache._lock:
                cache._hits += 1
            return cached

    with cache._lock:
        if not cache.is_expired(cache_key, ttl_seconds):
            cached = cache.get(cache_key)
            if cached is not None:
                cache._hits += 1
                return cached

        cache._misses += 1
        fresh = fetch_func()
        cache.set(cache_key, fresh)
        return fresh


def poll_tallies_key(poll_id: int) -> str:
    return CACHE_KEY_POLL_TALLIES.format(poll_id=poll_id)


def invalidate_on_change(cache: TTLCache) -> Callable[[ChangeEvent], None]:
    """Build a change-hub listener that drops the keys a write affects."""

    def listener(event: ChangeEvent) -> None:
        if event.table == TABLE_BUTTON_HOLDS:
            cache.invalidate(CACHE_KEY_ACTIVE_HOLDERS)
        elif event.table == TABLE_USER_VOTES:
            poll_id = event.payload.get("poll_id")
            if poll_id is None:
                cache.invalidate_prefix(poll_tallies_key(0)[:-1])
            else:
                cache.invalidate(poll_tallies_key(poll_id))
        elif event.table == TABLE_POLLS and event.record_id is not None:
            cache.invalidate(poll_tallies_key(event.record_id))

    return listener


def connect_cache(cache: TTLCache, hub: ChangeHub) -> Callable[[], None]:
    """Keep cache in sync with hub. Returns the disconnect function."""
    return hub.add_listener(invalidate_on_change(cache))


# Global cache instance shared across requests and SSE connections
global_cache = TTLCache()
