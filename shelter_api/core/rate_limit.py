"""Rate limiting for FastAPI route groups.

Each protected route group gets a ``RateLimitPolicy``; a ``RateLimiter``
pairs the policy with an admission counter and is consulted once per
request through the dependency returned by ``rate_limit_dependency``.

Strategy:
- Fixed window per client identity (network address by default), counted
  in the shared store when it is up and in-process otherwise.
- Fail-open: if the counter cannot answer, the request is admitted and a
  warning is logged. A broken limiter must not take the API down.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from fastapi import Request, Response

from shelter_api.adapters.cache.base import Unavailable
from shelter_api.adapters.rate_limit.base import AdmissionCounter
from shelter_api.core.config import RateLimitSettings
from shelter_api.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

GLOBAL_POLICY = "global"
AUTH_POLICY = "auth"


def client_identity(request: Request) -> str:
    """Network address of the direct peer."""
    return request.client.host if request.client else "unknown"


def forwarded_client_identity(request: Request) -> str:
    """First ``X-Forwarded-For`` hop, for deployments behind a trusted proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return client_identity(request)


def _never(_: Request) -> bool:
    return False


@dataclass(frozen=True)
class RateLimitPolicy:
    """Immutable limits for one route group.

    Attributes:
        name: Policy name used in logs and to look the limiter up.
        window_seconds: Fixed window length.
        max_requests: Requests admitted per window and identity.
        key_prefix: Namespace of the counter keys (``rl:global``).
        enabled: Disabled policies admit everything without counting.
        include_headers: Attach the informational headers to admitted responses.
        header_prefix: Prefix of those headers; policies stacked on one route
            need distinct prefixes.
        identity: Derives the caller identity from the request.
        skip: Requests for which the policy is bypassed.
    """

    name: str
    window_seconds: int
    max_requests: int
    key_prefix: str
    enabled: bool = True
    include_headers: bool = True
    header_prefix: str = "X-RateLimit"
    identity: Callable[[Request], str] = field(default=client_identity)
    skip: Callable[[Request], bool] = field(default=_never)

    def __post_init__(self) -> None:
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")

    def key_for(self, request: Request) -> str:
        return f"{self.key_prefix}:{self.identity(request)}"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (never negative).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Seconds until the window resets.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int

    def headers(self, prefix: str = "X-RateLimit") -> dict[str, str]:
        return {
            f"{prefix}-Limit": str(self.limit),
            f"{prefix}-Remaining": str(self.remaining),
            f"{prefix}-Reset": str(self.reset_at),
        }


def _hash_limiter_key(key: str) -> str:
    """Hash the limiter key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class RateLimiter:
    """Applies one policy using an admission counter."""

    def __init__(
        self,
        policy: RateLimitPolicy,
        counter: AdmissionCounter,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.policy = policy
        self._counter = counter
        self._clock = clock

    async def check(self, request: Request) -> RateLimitDecision | None:
        """Count the request against the policy.

        Returns:
            The decision, or None when the policy did not apply (disabled,
            skipped, or counter unavailable, in which case the request is
            admitted).
        """
        policy = self.policy
        if not policy.enabled or policy.skip(request):
            return None

        try:
            key = policy.key_for(request)
            result = await self._counter.consume(key, policy.window_seconds)
        except Exception as exc:  # noqa: BLE001 - fail-open boundary
            logger.warning(
                "rate_limit.fail_open",
                extra={"policy": policy.name, "reason": f"{type(exc).__name__}: {exc}"},
            )
            return None

        if isinstance(result, Unavailable):
            logger.warning(
                "rate_limit.fail_open",
                extra={"policy": policy.name, "reason": result.reason},
            )
            return None

        usage = result.value
        reset_at = int(math.ceil(self._clock())) + usage.ttl_seconds
        decision = RateLimitDecision(
            allowed=usage.count <= policy.max_requests,
            limit=policy.max_requests,
            remaining=max(policy.max_requests - usage.count, 0),
            reset_at=reset_at,
            retry_after_seconds=usage.ttl_seconds,
        )

        if not decision.allowed:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "policy": policy.name,
                    "key_hash": _hash_limiter_key(key),
                    "count": usage.count,
                    "limit": policy.max_requests,
                    "window_s": policy.window_seconds,
                    "retry_after_s": usage.ttl_seconds,
                },
            )
        return decision


def build_policies(cfg: RateLimitSettings) -> dict[str, RateLimitPolicy]:
    """Global policy for the whole API and a stricter one for auth endpoints."""
    identity = forwarded_client_identity if cfg.trust_forwarded_for else client_identity
    skip: Callable[[Request], bool] = (lambda _: True) if cfg.bypass else _never

    return {
        GLOBAL_POLICY: RateLimitPolicy(
            name=GLOBAL_POLICY,
            window_seconds=cfg.window_seconds,
            max_requests=cfg.max_requests,
            key_prefix="rl:global",
            enabled=cfg.enabled,
            include_headers=cfg.include_headers,
            identity=identity,
            skip=skip,
        ),
        AUTH_POLICY: RateLimitPolicy(
            name=AUTH_POLICY,
            window_seconds=cfg.auth_window_seconds,
            max_requests=cfg.auth_max_requests,
            key_prefix="rl:auth",
            enabled=cfg.auth_is_enabled,
            include_headers=cfg.include_headers,
            header_prefix="X-RateLimit-Auth",
            identity=identity,
            skip=skip,
        ),
    }


def rate_limit_dependency(policy_name: str) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the named policy.

    The limiter is looked up on ``app.state.rate_limiters`` at request time,
    so the same router works with whatever limiters the app was built with.

    Raises:
        RateLimitExceededError: 429 when the caller exhausted the window.
    """

    async def enforce_rate_limit(request: Request, response: Response) -> None:
        limiters: dict[str, RateLimiter] = getattr(request.app.state, "rate_limiters", {})
        limiter = limiters.get(policy_name)
        if limiter is None:
            return

        decision = await limiter.check(request)
        if decision is None:
            return

        policy = limiter.policy
        headers = decision.headers(policy.header_prefix) if policy.include_headers else {}

        if decision.allowed:
            response.headers.update(headers)
            return

        headers["Retry-After"] = str(decision.retry_after_seconds)
        raise RateLimitExceededError(
            code="too_many_requests",
            message="Too many requests. Try again later.",
            details={
                "limit": decision.limit,
                "window_seconds": policy.window_seconds,
                "retry_after": decision.retry_after_seconds,
            },
            retry_after_seconds=decision.retry_after_seconds,
            headers=headers,
        )

    enforce_rate_limit.__name__ = f"enforce_{policy_name}_rate_limit"
    return enforce_rate_limit
