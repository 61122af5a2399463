"""Factory for the configured cache store."""

from shelter_api.adapters.cache.base import CacheStore
from shelter_api.adapters.cache.in_memory import InMemoryCacheStore
from shelter_api.adapters.cache.redis_store import RedisCacheStore
from shelter_api.core.config import CacheSettings, settings
from shelter_api.core.errors import ValidationAppError


def create_cache_store(cache_settings: CacheSettings | None = None) -> CacheStore:
    """Instantiate the cache store selected by ``CACHE_BACKEND``.

    The store is not connected yet; the application lifespan calls
    ``connect()`` for remote backends.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = cache_settings or settings.cache
    backend = cfg.backend.lower()

    if backend == "redis":
        return RedisCacheStore(
            cfg.redis_url,
            connect_timeout_seconds=cfg.connect_timeout_seconds,
            operation_timeout_seconds=cfg.operation_timeout_seconds,
            retry_interval_seconds=cfg.retry_interval_seconds,
        )

    if backend == "memory":
        return InMemoryCacheStore()

    raise ValidationAppError(
        code="cache_unknown_backend",
        message=f"Unknown cache backend: '{backend}'. Supported backends: redis, memory",
    )
