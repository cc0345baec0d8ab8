"""In-process cache for rendered public pages."""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

POST_KEY_PREFIX = "post:"
LISTING_KEY_PREFIX = "posts:list:"


def post_cache_key(slug: str) -> str:
    return f"{POST_KEY_PREFIX}{slug}"


def listing_cache_key(page: int, limit: int, query: str | None) -> str:
    return f"{LISTING_KEY_PREFIX}{page}:{limit}:{query or 'all'}"


class PageCache:
    """LRU cache with per-entry expiry.

    Holds the public blog payloads. Moderation and post edits call
    ``invalidate_post`` so visitors never see a stale comment list for
    longer than one request.
    """

    def __init__(
        self,
        max_entries: int = 500,
        ttl_seconds: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() > expires_at:
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._store.pop(key, None)
            while len(self._store) >= self.max_entries:
                self._store.popitem(last=False)
            self._store[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._store if key.startswith(prefix)]
            for key in keys:
                del self._store[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def invalidate_post(self, slug: str) -> None:
        """Drop a post's page and every listing page that may include it."""
        self.delete(post_cache_key(slug))
        self.delete_prefix(LISTING_KEY_PREFIX)

    def invalidate_listings(self) -> None:
        self.delete_prefix(LISTING_KEY_PREFIX)
