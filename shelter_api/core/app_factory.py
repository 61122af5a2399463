"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the lifespan that wires the cache store, admission counters, limiters and
services onto ``app.state``. Tests pass their own store and database to
``create_app`` instead of patching module globals.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from shelter_api.adapters.cache import CacheStore, RedisCacheStore, create_cache_store
from shelter_api.adapters.rate_limit import (
    AdmissionCounter,
    FailoverAdmissionCounter,
    InMemoryFixedWindowCounter,
    RedisFixedWindowCounter,
)
from shelter_api.api.routes import api_router, health_router
from shelter_api.core.cache_aside import CacheAside
from shelter_api.core.config import Settings, settings as default_settings
from shelter_api.core.exception_handlers import setup_exception_handlers
from shelter_api.core.logging import configure_logging
from shelter_api.core.middleware import request_id_middleware
from shelter_api.core.openapi import apply_openapi_customizations
from shelter_api.core.rate_limit import RateLimiter, build_policies
from shelter_api.repositories import InMemoryDatabase
from shelter_api.services.animals_service import AnimalsService
from shelter_api.services.applications_service import ApplicationsService
from shelter_api.services.shelters_service import SheltersService
from shelter_api.services.users_service import UsersService
from shelter_api.services.votes_service import VotesService

logger = logging.getLogger(__name__)


def build_admission_counter(store: CacheStore) -> AdmissionCounter:
    """Remote counter with in-process fallback for Redis, in-process only otherwise."""
    local = InMemoryFixedWindowCounter()
    if isinstance(store, RedisCacheStore):
        return FailoverAdmissionCounter(
            store=store,
            remote=RedisFixedWindowCounter(store),
            local=local,
        )
    return local


def build_services(app: FastAPI, cache: CacheAside, database: InMemoryDatabase, cfg: Settings) -> None:
    state = app.state
    state.shelters_service = SheltersService(
        shelters=database.shelters,
        photos=database.photos,
        cache=cache,
        cache_settings=cfg.cache,
    )
    state.animals_service = AnimalsService(
        animals=database.animals,
        shelters=database.shelters,
        photos=database.photos,
        cache=cache,
        cache_settings=cfg.cache,
    )
    state.users_service = UsersService(
        users=database.users,
        photos=database.photos,
        cache=cache,
        cache_settings=cfg.cache,
    )
    state.applications_service = ApplicationsService(
        applications=database.applications,
        animals=database.animals,
        cache=cache,
        cache_settings=cfg.cache,
    )
    state.votes_service = VotesService(
        votes=database.votes,
        shelters=database.shelters,
        photos=database.photos,
        cache=cache,
        cache_settings=cfg.cache,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    cfg: Settings = app.state.settings
    store: CacheStore | None = getattr(app.state, "cache_store", None)
    if store is None:
        store = create_cache_store(cfg.cache)
    database = getattr(app.state, "database", None)
    if database is None:
        database = InMemoryDatabase()
    app.state.cache_store = store
    app.state.database = database

    if isinstance(store, RedisCacheStore):
        # A failed connect leaves the store marked down; the platform keeps
        # serving without cache and with per-instance rate limits.
        await store.connect()
        store.start_health_checks(cfg.cache.health_check_interval_seconds)

    counter = build_admission_counter(store)
    app.state.rate_limiters = {
        name: RateLimiter(policy, counter)
        for name, policy in build_policies(cfg.rate_limit).items()
    }
    cache = CacheAside(store)
    app.state.cache = cache
    build_services(app, cache, database, cfg)

    logger.info(
        "app.started",
        extra={
            "cache_backend": type(store).__name__,
            "cache_available": store.is_available(),
            "rate_limit_enabled": cfg.rate_limit.enabled,
            "rate_limit_bypass": cfg.rate_limit.bypass,
        },
    )
    try:
        yield
    finally:
        await store.close()
        logger.info("app.stopped")


def create_app(
    settings: Settings | None = None,
    cache_store: CacheStore | None = None,
    database: InMemoryDatabase | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to build with; defaults to the environment-loaded ones.
        cache_store: Pre-built cache store (tests inject ``InMemoryCacheStore``).
        database: Pre-built repositories bundle.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Shelter API",
        description=(
            "Backend for shelters, adoptable animals, adopters and adoption "
            "applications. Reads are served cache-aside from a shared store; "
            "the /api surface is rate limited per client with a stricter "
            "limit on the auth endpoints."
        ),
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.settings = cfg
    if cache_store is not None:
        app.state.cache_store = cache_store
    if database is not None:
        app.state.database = database

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(api_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
