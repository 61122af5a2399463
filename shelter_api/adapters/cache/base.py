"""Cache store interface and backend outcome types.

Callers of a ``CacheStore`` never need failure branches: every operation
degrades to its "nothing happened" result (miss, not stored, zero removed)
when the backend is down. Backends report the raw outcome of each call as a
``BackendResult`` so the degrade decision lives in one place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Backend call completed."""

    value: T


@dataclass(frozen=True)
class Unavailable:
    """Backend call failed, timed out, or the backend is disconnected."""

    operation: str
    reason: str


BackendResult = Union[Ok[T], Unavailable]


def value_or(result: BackendResult[T], default: T) -> T:
    """Unwrap ``Ok`` or fall back to ``default`` on ``Unavailable``."""
    if isinstance(result, Ok):
        return result.value
    return default


class CacheStore(ABC):
    """Minimal async key-value contract used by the cache-aside protocol."""

    @abstractmethod
    def is_available(self) -> bool:
        """Report current liveness without performing I/O."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Probe the backend and refresh the liveness flag."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the decoded value for ``key`` or None when absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store ``value`` under ``key`` for ``ttl_seconds``.

        Returns:
            True if the entry was written.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Remove exact keys, returning how many existed."""
        raise NotImplementedError

    @abstractmethod
    async def delete_by_pattern(self, pattern: str) -> int:
        """Remove every key matching a glob pattern (``animals:search:*``)."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""
        return None
