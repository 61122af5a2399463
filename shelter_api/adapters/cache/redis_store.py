"""Redis-backed cache store.

Every command runs through ``execute`` which bounds it with a timeout and
turns backend errors into ``Unavailable``. Connection errors and timeouts
mark the store down; a rejected command (``WRONGTYPE``) or an undecodable
value fails only that call. While the server is marked down, calls
short-circuit to ``Unavailable`` until the retry interval elapses or the
background health check sees the server again, so a dead store costs
nothing per request.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

from shelter_api.adapters.cache.base import BackendResult, CacheStore, Ok, Unavailable, value_or

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DELETE_BATCH = 500


class RedisCacheStore(CacheStore):
    """Cache store over a shared Redis connection pool.

    The same instance is handed to the remote admission counter, which reuses
    ``execute`` for its INCR/EXPIRE/TTL sequence.
    """

    def __init__(
        self,
        url: str,
        *,
        connect_timeout_seconds: float = 5.0,
        operation_timeout_seconds: float = 2.0,
        retry_interval_seconds: float = 1.0,
        client: redis.Redis | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._url = url
        self._operation_timeout = operation_timeout_seconds
        self._retry_interval = retry_interval_seconds
        self._clock = clock
        self._client = client or redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=connect_timeout_seconds,
            socket_timeout=operation_timeout_seconds,
        )
        self._available = False
        self._retry_at = 0.0
        self._health_task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"RedisCacheStore(available={self._available})"

    @property
    def client(self) -> redis.Redis:
        return self._client

    def is_available(self) -> bool:
        return self._available

    def _mark_available(self) -> None:
        if not self._available:
            logger.info("cache.backend_available")
        self._available = True

    def _mark_unavailable(self, operation: str, reason: str) -> Unavailable:
        if self._available:
            logger.warning(
                "cache.backend_unavailable",
                extra={"operation": operation, "reason": reason},
            )
        self._available = False
        self._retry_at = self._clock() + self._retry_interval
        return Unavailable(operation=operation, reason=reason)

    def _command_failed(self, operation: str, reason: str) -> Unavailable:
        # The server answered; only this command or its data is bad.
        logger.warning(
            "cache.command_failed",
            extra={"operation": operation, "reason": reason},
        )
        self._mark_available()
        return Unavailable(operation=operation, reason=reason)

    async def execute(
        self,
        operation: str,
        command: Callable[[redis.Redis], Awaitable[T]],
        *,
        force: bool = False,
    ) -> BackendResult[T]:
        """Run ``command`` against the client with timeout and error tagging.

        Args:
            operation: Name used in logs and in the ``Unavailable`` tag.
            command: Coroutine factory receiving the Redis client.
            force: Attempt the call even while the backend is marked down.

        Returns:
            ``Ok(value)`` or ``Unavailable``; never raises for backend faults.
        """
        if not self._available and not force and self._clock() < self._retry_at:
            return Unavailable(operation=operation, reason="backend_marked_down")

        try:
            value = await asyncio.wait_for(command(self._client), timeout=self._operation_timeout)
        except asyncio.TimeoutError:
            return self._mark_unavailable(operation, "timeout")
        except (ResponseError, UnicodeDecodeError) as exc:
            return self._command_failed(operation, f"{type(exc).__name__}: {exc}")
        except (RedisError, OSError) as exc:
            return self._mark_unavailable(operation, f"{type(exc).__name__}: {exc}")

        self._mark_available()
        return Ok(value)

    async def connect(self) -> bool:
        """Probe the server once at startup; failure leaves the store degraded."""
        available = await self.ping()
        if available:
            logger.info("cache.connected")
        else:
            logger.warning("cache.connect_failed", extra={"hint": "running without shared cache"})
        return available

    async def ping(self) -> bool:
        result = await self.execute("ping", lambda client: client.ping(), force=True)
        return bool(value_or(result, False))

    def start_health_checks(self, interval_seconds: float) -> None:
        """Ping periodically so availability recovers without traffic."""
        if self._health_task is None:
            self._health_task = asyncio.create_task(self._health_loop(interval_seconds))

    async def _health_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.ping()

    async def get(self, key: str) -> Any | None:
        result = await self.execute("get", lambda client: client.get(key))
        raw = value_or(result, None)
        if raw is None:
            logger.debug("cache.miss", extra={"cache_key": key})
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("cache.undecodable_entry", extra={"cache_key": key})
            return None
        logger.debug("cache.hit", extra={"cache_key": key})
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        payload = json.dumps(value, default=str)
        result = await self.execute("set", lambda client: client.set(key, payload, ex=int(ttl_seconds)))
        stored = bool(value_or(result, False))
        if stored:
            logger.debug("cache.set", extra={"cache_key": key, "ttl_s": ttl_seconds})
        return stored

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        result = await self.execute("delete", lambda client: client.delete(*keys))
        return int(value_or(result, 0))

    async def delete_by_pattern(self, pattern: str) -> int:
        async def _scan_and_delete(client: redis.Redis) -> int:
            removed = 0
            batch: list[str] = []
            async for key in client.scan_iter(match=pattern, count=_DELETE_BATCH):
                batch.append(key)
                if len(batch) >= _DELETE_BATCH:
                    removed += await client.delete(*batch)
                    batch = []
            if batch:
                removed += await client.delete(*batch)
            return removed

        result = await self.execute("delete_by_pattern", _scan_and_delete)
        removed = int(value_or(result, 0))
        if removed:
            logger.debug("cache.pattern_deleted", extra={"pattern": pattern, "removed": removed})
        return removed

    async def close(self) -> None:
        if self._health_task is not None:
            self._health_task.cancel()
            try:
                await self._health_task
            except asyncio.CancelledError:
                pass
            self._health_task = None
        try:
            await self._client.aclose()
        except (RedisError, OSError) as exc:
            logger.warning("cache.close_failed", extra={"reason": str(exc)})
        self._available = False
