import pytest
from pydantic import ValidationError

from shelter_api.core.config import CacheSettings, RateLimitSettings


class TestRateLimitSettings:
    def test_defaults(self) -> None:
        cfg = RateLimitSettings()

        assert (cfg.window_seconds, cfg.max_requests) == (60, 100)
        assert (cfg.auth_window_seconds, cfg.auth_max_requests) == (300, 10)
        assert cfg.bypass is False

    @pytest.mark.parametrize(
        ("enabled", "auth_enabled", "expected"),
        [(True, None, True), (False, None, False), (False, True, True), (True, False, False)],
    )
    def test_auth_flag_defaults_to_global_flag(self, enabled, auth_enabled, expected) -> None:
        cfg = RateLimitSettings(enabled=enabled, auth_enabled=auth_enabled)

        assert cfg.auth_is_enabled is expected

    def test_reads_prefixed_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "7")
        monkeypatch.setenv("RATE_LIMIT_BYPASS", "true")

        cfg = RateLimitSettings()

        assert cfg.max_requests == 7
        assert cfg.bypass is True

    def test_rejects_zero_window(self) -> None:
        with pytest.raises(ValidationError):
            RateLimitSettings(window_seconds=0)


def test_cache_ttls_default_per_entity() -> None:
    cfg = CacheSettings()

    assert cfg.shelters_ttl_seconds == 3600
    assert cfg.animal_search_ttl_seconds == 600
    assert cfg.votes_ttl_seconds == 300
    assert cfg.operation_timeout_seconds == 2.0
