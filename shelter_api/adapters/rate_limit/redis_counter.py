"""Remote fixed-window admission counter on Redis INCR/EXPIRE.

Classic fixed window: the first INCR of a key opens the window by setting
its expiry. Bursts straddling a window boundary can admit up to twice the
configured rate.
"""

from __future__ import annotations

import redis.asyncio as redis

from shelter_api.adapters.cache.base import BackendResult
from shelter_api.adapters.cache.redis_store import RedisCacheStore
from shelter_api.adapters.rate_limit.base import AdmissionCounter, WindowUsage


class RedisFixedWindowCounter(AdmissionCounter):
    """Counter stored in the shared Redis used by the cache.

    Counts are global across every instance talking to the same server.
    """

    def __init__(self, store: RedisCacheStore) -> None:
        self._store = store

    async def consume(self, key: str, window_seconds: int) -> BackendResult[WindowUsage]:
        async def _incr_and_ttl(client: redis.Redis) -> WindowUsage:
            count = int(await client.incr(key))
            if count == 1:
                await client.expire(key, window_seconds)
                return WindowUsage(count=count, ttl_seconds=window_seconds)

            ttl = int(await client.ttl(key))
            if ttl <= 0:
                # Key survived without an expiry (e.g. EXPIRE lost to a crash)
                await client.expire(key, window_seconds)
                ttl = window_seconds
            return WindowUsage(count=count, ttl_seconds=ttl)

        return await self._store.execute("rate_limit.consume", _incr_and_ttl)
