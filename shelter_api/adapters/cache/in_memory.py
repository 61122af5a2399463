"""Process-local TTL cache store.

Same contract as the Redis store, used for local development
(``CACHE_BACKEND=memory``) and as the substitutable store in tests. Values
are JSON round-tripped on write so callers see exactly what a remote store
would hand back.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from shelter_api.adapters.cache.base import CacheStore

logger = logging.getLogger(__name__)


@dataclass
class CacheItem:
    """Serialized value with its expiry timestamp."""

    payload: str
    expires_at: float


class InMemoryCacheStore(CacheStore):
    """Thread-safe dict-backed store with TTL expiry and glob deletion.

    ``set_available(False)`` simulates an outage: reads miss, writes and
    deletes report nothing done, exactly like a disconnected remote store.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._store: dict[str, CacheItem] = {}
        self._lock = threading.RLock()
        self._available = True

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCacheStore(size={len(self._store)}, available={self._available})"

    def set_available(self, available: bool) -> None:
        self._available = available

    def is_available(self) -> bool:
        return self._available

    async def ping(self) -> bool:
        return self._available

    async def get(self, key: str) -> Any | None:
        if not self._available:
            return None

        with self._lock:
            item = self._store.get(key)
            if item is None or item.expires_at <= self._clock():
                self._store.pop(key, None)
                logger.debug("cache.miss", extra={"cache_key": key})
                return None
            payload = item.payload

        logger.debug("cache.hit", extra={"cache_key": key})
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if not self._available:
            return False

        payload = json.dumps(value, default=str)
        with self._lock:
            self._evict_expired_locked()
            self._store[key] = CacheItem(payload=payload, expires_at=self._clock() + ttl_seconds)

        logger.debug("cache.set", extra={"cache_key": key, "ttl_s": ttl_seconds})
        return True

    async def delete(self, *keys: str) -> int:
        if not self._available:
            return 0

        with self._lock:
            now = self._clock()
            removed = 0
            for key in keys:
                item = self._store.pop(key, None)
                if item is not None and item.expires_at > now:
                    removed += 1
            return removed

    async def delete_by_pattern(self, pattern: str) -> int:
        if not self._available:
            return 0

        with self._lock:
            matching = [key for key in self._store if fnmatch.fnmatchcase(key, pattern)]
            for key in matching:
                del self._store[key]
            return len(matching)

    def keys(self) -> list[str]:
        """Live keys, for inspection in tests and diagnostics."""
        with self._lock:
            now = self._clock()
            return sorted(key for key, item in self._store.items() if item.expires_at > now)

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        expired = [key for key, item in self._store.items() if item.expires_at <= now]
        for key in expired:
            del self._store[key]
