"""Admission counter interface.

A counter tracks fixed-window request counts per identity key. The
rate-limit layer depends on this abstraction only, so the remote and the
in-process backends are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from shelter_api.adapters.cache.base import BackendResult


@dataclass(frozen=True)
class WindowUsage:
    """State of an identity's current window after one request was counted.

    Attributes:
        count: Requests seen in the window, including this one.
        ttl_seconds: Whole seconds until the window resets (>= 1).
    """

    count: int
    ttl_seconds: int


class AdmissionCounter(ABC):
    """Fixed-window request counter keyed by identity."""

    @abstractmethod
    async def consume(self, key: str, window_seconds: int) -> BackendResult[WindowUsage]:
        """Count one request for ``key``.

        The first request seen for a key (or the first after its window
        elapsed) opens a new window of ``window_seconds``.

        Args:
            key: Namespaced identity, e.g. ``rl:global:203.0.113.7``.
            window_seconds: Window length used when a new window opens.

        Returns:
            ``Ok(WindowUsage)``, or ``Unavailable`` if the backend failed.
        """
        raise NotImplementedError
