"""In-process fixed-window admission counter.

Notes:
- Per-process only: horizontally scaled instances each keep their own
  counts, so limits enforced here are per instance rather than global.
- The read-modify-write in ``consume`` contains no await, so interleaved
  tasks on the event loop cannot observe a half-updated entry; the lock
  covers callers on other threads.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from shelter_api.adapters.cache.base import BackendResult, Ok
from shelter_api.adapters.rate_limit.base import AdmissionCounter, WindowUsage

# Prune expired windows after this many calls
_PRUNE_EVERY = 1024


@dataclass
class _WindowState:
    count: int
    expires_at: float


class InMemoryFixedWindowCounter(AdmissionCounter):
    """Counter whose windows start at each identity's first request.

    Unlike clock-aligned windows, the window opens when an identity is first
    seen and lasts ``window_seconds`` from there, which matches the remote
    INCR + EXPIRE behavior.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the counter.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._calls = 0

    def __len__(self) -> int:
        return len(self._state_by_key)

    async def consume(self, key: str, window_seconds: int) -> BackendResult[WindowUsage]:
        return Ok(self.consume_now(key, window_seconds))

    def consume_now(self, key: str, window_seconds: int) -> WindowUsage:
        """Synchronous core of ``consume``.

        Raises:
            ValueError: If key is empty or window_seconds is invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        now = self._clock()

        with self._lock:
            self._calls += 1
            if self._calls % _PRUNE_EVERY == 0:
                self._prune_locked(now)

            state = self._state_by_key.get(key)
            if state is None or state.expires_at <= now:
                self._state_by_key[key] = _WindowState(count=1, expires_at=now + window_seconds)
                return WindowUsage(count=1, ttl_seconds=window_seconds)

            state.count += 1
            ttl = max(int(math.ceil(state.expires_at - now)), 1)
            return WindowUsage(count=state.count, ttl_seconds=ttl)

    def _prune_locked(self, now: float) -> None:
        expired = [key for key, state in self._state_by_key.items() if state.expires_at <= now]
        for key in expired:
            del self._state_by_key[key]
