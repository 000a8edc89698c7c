"""
Unit tests for gateway settings.
"""

import pytest

from shared.config import DEFAULT_EXCLUDED_PATH_PREFIXES, GatewaySettings, get_settings
from shared.errors import ConfigurationError


class TestGatewaySettings:
    """Test cases for GatewaySettings."""

    def test_defaults(self):
        settings = GatewaySettings()

        assert settings.wait_seconds == 5
        assert settings.max_lifetime == 3600
        assert settings.max_fails == 3
        assert settings.ban_seconds == 300
        assert settings.rotate_secret_interval == 3600
        assert settings.secret_grace_seconds == 0
        assert settings.suspicious_pattern_threshold == 10
        assert settings.fingerprint_rate_window_seconds == 60.0
        assert settings.fingerprint_rate_max_requests == 20
        assert settings.queue_cookie == "zant_q"
        assert settings.access_cookie == "zant_a"
        assert settings.store_backend == "memory"
        assert settings.excluded_path_prefixes == DEFAULT_EXCLUDED_PATH_PREFIXES

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ZANT_WAIT_SECONDS", "12")
        monkeypatch.setenv("ZANT_SECRET", "from-env")
        monkeypatch.setenv("ZANT_ENABLE_FINGERPRINTING", "false")

        settings = get_settings()

        assert settings.wait_seconds == 12
        assert settings.secret == "from-env"
        assert settings.enable_fingerprinting is False

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("ZANT_WAIT_SECONDS", "12")

        assert get_settings(wait_seconds=7).wait_seconds == 7

    @pytest.mark.parametrize("field", [
        "wait_seconds",
        "max_lifetime",
        "max_fails",
        "ban_seconds",
        "rotate_secret_interval",
        "suspicious_pattern_threshold",
        "fingerprint_rate_window_ms",
        "fingerprint_rate_max_requests",
    ])
    def test_non_positive_values_rejected(self, field):
        with pytest.raises(ConfigurationError) as exc_info:
            get_settings(**{field: 0})

        assert exc_info.value.details == {field: 0}

    def test_negative_grace_rejected(self):
        with pytest.raises(ConfigurationError):
            get_settings(secret_grace_seconds=-1)

    def test_empty_secret_rejected(self):
        with pytest.raises(ConfigurationError):
            get_settings(secret="")

    def test_unknown_backend_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_settings(store_backend="memcached")

        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_cookie_names_must_differ(self):
        with pytest.raises(ConfigurationError):
            get_settings(queue_cookie="same", access_cookie="same")
