"""Cache store adapters.

``CacheStore`` is the only cache interface services see; the Redis store is
the production backend and the in-memory store serves development and tests.
"""

from shelter_api.adapters.cache.base import BackendResult, CacheStore, Ok, Unavailable
from shelter_api.adapters.cache.factory import create_cache_store
from shelter_api.adapters.cache.in_memory import InMemoryCacheStore
from shelter_api.adapters.cache.redis_store import RedisCacheStore

__all__ = [
    "BackendResult",
    "CacheStore",
    "InMemoryCacheStore",
    "Ok",
    "RedisCacheStore",
    "Unavailable",
    "create_cache_store",
]
