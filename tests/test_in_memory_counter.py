"""Unit tests for the in-process fixed-window admission counter."""

import asyncio

import pytest

from shelter_api.adapters.cache.base import Ok
from shelter_api.adapters.rate_limit import InMemoryFixedWindowCounter, WindowUsage


def test_first_request_opens_window(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)

    assert counter.consume_now("k", 60) == WindowUsage(count=1, ttl_seconds=60)


def test_counts_grow_within_window_and_ttl_shrinks(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)
    counter.consume_now("k", 60)

    clock.advance(15.2)
    usage = counter.consume_now("k", 60)

    assert usage.count == 2
    assert usage.ttl_seconds == 45


def test_ttl_never_drops_below_one_second(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)
    counter.consume_now("k", 10)

    clock.advance(9.999)

    assert counter.consume_now("k", 10).ttl_seconds == 1


def test_resets_on_new_window(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)
    counter.consume_now("k", 10)
    counter.consume_now("k", 10)

    clock.advance(10)

    assert counter.consume_now("k", 10) == WindowUsage(count=1, ttl_seconds=10)


def test_isolated_by_key(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)

    counter.consume_now("k1", 60)
    counter.consume_now("k1", 60)

    assert counter.consume_now("k2", 60).count == 1


def test_window_is_anchored_at_first_request_not_clock_boundary(clock) -> None:
    """Ten requests at t=59 and ten at t=61 straddle a window edge only if
    the window started at t=0; anchored at t=59 they all share one window."""
    clock.current = 0.0
    counter = InMemoryFixedWindowCounter(clock=clock)

    clock.current = 59.0
    first_burst = [counter.consume_now("ip", 60).count for _ in range(10)]
    clock.current = 61.0
    second_burst = [counter.consume_now("ip", 60).count for _ in range(10)]

    assert first_burst == list(range(1, 11))
    assert second_burst == list(range(11, 21))


def test_expired_windows_are_pruned(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)
    for i in range(100):
        counter.consume_now(f"k{i}", 1)

    clock.advance(5)
    for _ in range(1024):
        counter.consume_now("live", 60)

    assert len(counter) == 1


def test_async_consume_wraps_result_in_ok(clock) -> None:
    counter = InMemoryFixedWindowCounter(clock=clock)

    result = asyncio.run(counter.consume("k", 30))

    assert result == Ok(WindowUsage(count=1, ttl_seconds=30))


@pytest.mark.parametrize(("key", "window"), [("", 60), ("k", 0)])
def test_invalid_consume_args(key: str, window: int) -> None:
    counter = InMemoryFixedWindowCounter()

    with pytest.raises(ValueError):
        counter.consume_now(key, window)
