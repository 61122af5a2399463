"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module,
so the global settings object sees the test configuration.
"""

import asyncio
import fnmatch
import math
import os
from typing import Any, AsyncIterator

import pytest

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from shelter_api.adapters.cache import InMemoryCacheStore  # noqa: E402
from shelter_api.core.app_factory import create_app  # noqa: E402
from shelter_api.core.config import RateLimitSettings, Settings  # noqa: E402
from shelter_api.repositories import InMemoryDatabase  # noqa: E402

API_KEY = "test-api-key-123"


class FakeClock:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeRedis:
    """Subset of ``redis.asyncio.Redis`` used by the store and the counter.

    Keys expire against the injected clock. Setting ``fail_with`` makes every
    command raise it; ``delay`` makes every command sleep first. Raw bytes
    stored in ``data`` are decoded on read like a ``decode_responses`` client
    does.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.data: dict[str, str | bytes] = {}
        self.expiry: dict[str, float] = {}
        self.fail_with: Exception | None = None
        self.delay = 0.0
        self.commands: list[str] = []
        self.closed = False

    async def _enter(self, name: str) -> None:
        self.commands.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    def _purge(self, key: str) -> None:
        expires_at = self.expiry.get(key)
        if expires_at is not None and expires_at <= self.clock():
            self.data.pop(key, None)
            self.expiry.pop(key, None)

    async def ping(self) -> bool:
        await self._enter("ping")
        return True

    async def get(self, key: str) -> str | None:
        await self._enter("get")
        self._purge(key)
        value = self.data.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        await self._enter("set")
        self.data[key] = value
        self.expiry.pop(key, None)
        if ex is not None:
            self.expiry[key] = self.clock() + ex
        return True

    async def incr(self, key: str) -> int:
        await self._enter("incr")
        self._purge(key)
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        await self._enter("expire")
        if key not in self.data:
            return False
        self.expiry[key] = self.clock() + seconds
        return True

    async def ttl(self, key: str) -> int:
        await self._enter("ttl")
        self._purge(key)
        if key not in self.data:
            return -2
        expires_at = self.expiry.get(key)
        if expires_at is None:
            return -1
        return int(math.ceil(expires_at - self.clock()))

    async def delete(self, *keys: str) -> int:
        await self._enter("delete")
        removed = 0
        for key in keys:
            self._purge(key)
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def scan_iter(self, match: str | None = None, count: int | None = None) -> AsyncIterator[str]:
        await self._enter("scan")
        for key in list(self.data):
            self._purge(key)
            if key in self.data and (match is None or fnmatch.fnmatchcase(key, match)):
                yield key

    async def aclose(self) -> None:
        self.closed = True


def make_settings(**rate_limit_overrides: Any) -> Settings:
    """Environment settings with rate limiting overridden."""
    base = Settings()
    if not rate_limit_overrides:
        return base
    return base.model_copy(update={"rate_limit": RateLimitSettings(**rate_limit_overrides)})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"X-API-Key": API_KEY}


@pytest.fixture
def make_client(cache_store: InMemoryCacheStore, database: InMemoryDatabase):
    """Build started TestClients sharing the test's store and database.

    Keyword arguments override ``RateLimitSettings`` fields.
    """
    clients: list[TestClient] = []

    def _make(**rate_limit_overrides: Any) -> TestClient:
        app = create_app(make_settings(**rate_limit_overrides), cache_store=cache_store, database=database)
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
