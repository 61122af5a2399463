"""API key authentication and caller identity.

Identity is established upstream (the session gateway) and forwarded in the
``X-User-Id`` / ``X-User-Role`` headers; this service only checks that the
request carries a valid API key before trusting them. The resulting
``CurrentUser`` feeds ownership checks and the vote aggregator.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Request

from shelter_api.core.config import AppSettings
from shelter_api.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

SHELTER_ADMIN = "shelter_admin"
ADMIN = "admin"


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: str = "user"

    @property
    def is_shelter_admin(self) -> bool:
        return self.role == SHELTER_ADMIN


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ") == {"key1", "key2", "key3"}
        True
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _key_hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def validate_api_key(provided_key: str | None, app_settings: AppSettings) -> None:
    """Validate a provided API key against the configured keys.

    Raises:
        AuthenticationAppError: If the key is missing or unknown, or if
            authentication is required but no keys are configured.
    """
    if not app_settings.api_key_required:
        return

    valid_keys = parse_api_keys(app_settings.api_keys)
    if not valid_keys:
        logger.error("auth.api_keys_not_configured")
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not provided_key:
        logger.warning("auth.missing_key")
        raise AuthenticationAppError(
            code="missing_api_key",
            message="Missing API key. Provide X-API-Key header.",
        )

    if provided_key not in valid_keys:
        logger.warning("auth.invalid_key", extra={"api_key_hash": _key_hash(provided_key)})
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding mutating endpoints with the API key."""
    validate_api_key(x_api_key, request.app.state.settings.app)


async def get_optional_user(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
    x_user_role: Annotated[str | None, Header(alias="X-User-Role")] = None,
) -> CurrentUser | None:
    """Caller identity forwarded by the gateway, if any."""
    if not x_user_id:
        return None
    try:
        user_id = int(x_user_id)
    except ValueError as exc:
        raise AuthenticationAppError(
            code="invalid_user_id",
            message="X-User-Id must be an integer",
        ) from exc
    return CurrentUser(user_id=user_id, role=(x_user_role or "user").strip().lower())


async def require_user(
    user: Annotated[CurrentUser | None, Depends(get_optional_user)],
) -> CurrentUser:
    """Dependency for endpoints that act on behalf of a user."""
    if user is None:
        raise AuthenticationAppError(
            code="user_required",
            message="This endpoint requires an authenticated user",
        )
    return user


OptionalUser = Annotated[CurrentUser | None, Depends(get_optional_user)]
RequiredUser = Annotated[CurrentUser, Depends(require_user)]
