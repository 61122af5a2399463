"""Application-level exception types.

Domain errors raised by services and the rate limiter. Each subclass maps to
one HTTP status in the exception handlers; infrastructure failures (cache or
counter store down) never surface as these, they are absorbed by the
adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    entity: str
    entity_id: int
    field: str
    limit: int
    window_seconds: int
    retry_after: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    status_code = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when the caller could not be authenticated."""

    status_code = 401


class ForbiddenAppError(AppError):
    """Raised when an authenticated caller may not touch a resource."""

    status_code = 403


class NotFoundAppError(AppError):
    """Raised when the target entity does not exist."""

    status_code = 404


class ConflictAppError(AppError):
    """Raised when a write collides with existing state (duplicate vote, email)."""

    status_code = 409


@dataclass
class RateLimitExceededError(AppError):
    """Raised when a client exhausted its admission window."""

    retry_after_seconds: int = 0
    headers: dict[str, str] | None = None

    status_code = 429


def not_found(entity: str, entity_id: int) -> NotFoundAppError:
    """Build the canonical not-found error for an entity id."""
    return NotFoundAppError(
        code=f"{entity}_not_found",
        message=f"{entity.capitalize()} {entity_id} not found",
        details={"entity": entity, "entity_id": entity_id},
    )
