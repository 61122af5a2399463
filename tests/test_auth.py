"""Unit tests for API key authentication and caller identity."""

from unittest.mock import MagicMock

import pytest

from shelter_api.core.auth import (
    CurrentUser,
    get_optional_user,
    parse_api_keys,
    require_user,
    validate_api_key,
    verify_api_key,
)
from shelter_api.core.config import AppSettings
from shelter_api.core.errors import AuthenticationAppError


def _app_settings(**overrides) -> AppSettings:
    values = {"api_key_required": True, "api_keys": "valid-key-1,valid-key-2"}
    values.update(overrides)
    return AppSettings(**values)


def _request(app_settings: AppSettings) -> MagicMock:
    request = MagicMock()
    request.app.state.settings.app = app_settings
    return request


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    def test_parse_multiple_keys_with_whitespace(self) -> None:
        assert parse_api_keys("key1 , key2  ,  key3") == {"key1", "key2", "key3"}

    def test_parse_removes_duplicate_keys(self) -> None:
        assert parse_api_keys("key1,key2,key1") == {"key1", "key2"}

    @pytest.mark.parametrize("raw", [None, "", "   ,  ,  "])
    def test_parse_empty_inputs(self, raw) -> None:
        assert parse_api_keys(raw) == set()


class TestValidateAPIKey:
    """Test core API key validation logic."""

    def test_validate_bypassed_when_auth_disabled(self) -> None:
        cfg = _app_settings(api_key_required=False, api_keys=None)

        validate_api_key("any-random-key", cfg)
        validate_api_key(None, cfg)

    @pytest.mark.parametrize("keys", [None, ""])
    def test_validate_raises_when_no_keys_configured(self, keys) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key", _app_settings(api_keys=keys))

        assert exc_info.value.code == "api_keys_not_configured"
        assert "no valid keys are configured" in exc_info.value.message

    def test_validate_accepts_valid_key(self) -> None:
        validate_api_key("valid-key-1", _app_settings())
        validate_api_key("valid-key-2", _app_settings())

    def test_validate_rejects_invalid_key(self) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("invalid-key", _app_settings())

        assert exc_info.value.code == "invalid_api_key"
        assert exc_info.value.status_code == 401

    def test_validate_rejects_missing_key(self) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("", _app_settings())

        assert exc_info.value.code == "missing_api_key"

    def test_configured_keys_are_trimmed_but_provided_key_is_not(self) -> None:
        cfg = _app_settings(api_keys=" key1 , key2 ")

        validate_api_key("key1", cfg)
        with pytest.raises(AuthenticationAppError):
            validate_api_key(" key1 ", cfg)


class TestDependencies:
    """Test FastAPI dependencies for keys and identity."""

    @pytest.mark.asyncio
    async def test_verify_uses_app_settings(self) -> None:
        request = _request(_app_settings())

        await verify_api_key(request, x_api_key="valid-key-1")
        with pytest.raises(AuthenticationAppError):
            await verify_api_key(request, x_api_key="wrong-key")

    @pytest.mark.asyncio
    async def test_optional_user_from_headers(self) -> None:
        user = await get_optional_user(x_user_id="12", x_user_role=" Shelter_Admin ")

        assert user == CurrentUser(user_id=12, role="shelter_admin")
        assert user.is_shelter_admin is True

    @pytest.mark.asyncio
    async def test_optional_user_absent(self) -> None:
        assert await get_optional_user(x_user_id=None, x_user_role=None) is None

    @pytest.mark.asyncio
    async def test_optional_user_rejects_non_integer_id(self) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            await get_optional_user(x_user_id="abc", x_user_role=None)

        assert exc_info.value.code == "invalid_user_id"

    @pytest.mark.asyncio
    async def test_require_user(self) -> None:
        user = CurrentUser(user_id=1)

        assert await require_user(user) is user
        with pytest.raises(AuthenticationAppError) as exc_info:
            await require_user(None)

        assert exc_info.value.code == "user_required"
