"""Tests for the Redis INCR/EXPIRE admission counter against a fake client."""

import asyncio

from redis.exceptions import ConnectionError as RedisConnectionError

from shelter_api.adapters.cache import RedisCacheStore
from shelter_api.adapters.cache.base import Ok, Unavailable
from shelter_api.adapters.rate_limit import RedisFixedWindowCounter, WindowUsage


def _store(fake_redis, clock) -> RedisCacheStore:
    store = RedisCacheStore("redis://fake", client=fake_redis, clock=clock)
    asyncio.run(store.connect())
    return store


def test_first_increment_sets_expiry(fake_redis, clock) -> None:
    counter = RedisFixedWindowCounter(_store(fake_redis, clock))

    result = asyncio.run(counter.consume("rl:global:1.2.3.4", 60))

    assert result == Ok(WindowUsage(count=1, ttl_seconds=60))
    assert fake_redis.expiry["rl:global:1.2.3.4"] == clock() + 60


def test_subsequent_increments_report_remaining_ttl(fake_redis, clock) -> None:
    counter = RedisFixedWindowCounter(_store(fake_redis, clock))
    asyncio.run(counter.consume("k", 60))

    clock.advance(20)
    result = asyncio.run(counter.consume("k", 60))

    assert result == Ok(WindowUsage(count=2, ttl_seconds=40))


def test_key_without_expiry_gets_a_fresh_window(fake_redis, clock) -> None:
    fake_redis.data["k"] = "4"
    counter = RedisFixedWindowCounter(_store(fake_redis, clock))

    result = asyncio.run(counter.consume("k", 60))

    assert result == Ok(WindowUsage(count=5, ttl_seconds=60))
    assert "k" in fake_redis.expiry


def test_window_expires_and_count_restarts(fake_redis, clock) -> None:
    counter = RedisFixedWindowCounter(_store(fake_redis, clock))
    for _ in range(3):
        asyncio.run(counter.consume("k", 10))

    clock.advance(10)

    assert asyncio.run(counter.consume("k", 10)) == Ok(WindowUsage(count=1, ttl_seconds=10))


def test_backend_error_is_reported_as_unavailable(fake_redis, clock) -> None:
    store = _store(fake_redis, clock)
    counter = RedisFixedWindowCounter(store)
    fake_redis.fail_with = RedisConnectionError("connection refused")

    result = asyncio.run(counter.consume("k", 60))

    assert isinstance(result, Unavailable)
    assert result.operation == "rate_limit.consume"
    assert store.is_available() is False
