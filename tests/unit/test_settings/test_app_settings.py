"""Unit tests for environment-driven settings."""

import os
from datetime import timedelta

import pytest
from pydantic import ValidationError

from experiment_client.fetch.config import ServerZone
from experiment_client.settings import AppSettings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Run each test without ambient EXPERIMENT_* variables or .env file."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.upper().startswith("EXPERIMENT_"):
            monkeypatch.delenv(name)


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self) -> None:
        """Test default settings without environment variables."""
        settings = AppSettings()

        assert settings.deployment_key is None
        assert settings.server_zone == ServerZone.US
        assert settings.fetch_timeout_ms == 10000
        assert settings.fetch_retries == 8
        assert settings.cache_key_prefix == "experiment"
        assert settings.cache_ttl_seconds == 300.0

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that EXPERIMENT_* variables override defaults."""
        monkeypatch.setenv("EXPERIMENT_DEPLOYMENT_KEY", "server-key")
        monkeypatch.setenv("EXPERIMENT_SERVER_ZONE", "EU")
        monkeypatch.setenv("EXPERIMENT_FETCH_RETRIES", "2")
        monkeypatch.setenv("EXPERIMENT_CACHE_TTL_SECONDS", "60")

        settings = AppSettings()

        assert settings.deployment_key == "server-key"
        assert settings.server_zone == ServerZone.EU
        assert settings.fetch_retries == 2
        assert settings.cache_ttl_seconds == 60.0

    def test_reads_dotenv_file(self, tmp_path) -> None:
        """Test that a .env file in the working directory is honored."""
        (tmp_path / ".env").write_text("EXPERIMENT_CACHE_KEY_PREFIX=from-file\n")

        assert AppSettings().cache_key_prefix == "from-file"

    def test_invalid_retries_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that negative retry counts fail validation."""
        monkeypatch.setenv("EXPERIMENT_FETCH_RETRIES", "-1")

        with pytest.raises(ValidationError):
            AppSettings()


class TestSettingsConversion:
    """Tests for building client configuration from settings."""

    def test_to_remote_config(self) -> None:
        """Test the remote configuration mirrors the settings."""
        settings = AppSettings(
            server_zone=ServerZone.EU,
            fetch_timeout_ms=2500,
            fetch_retries=3,
            retry_backoff_min_ms=100,
            retry_backoff_max_ms=800,
            retry_backoff_scalar=2.0,
        )

        config = settings.to_remote_config()

        assert config.get_server_url() == "https://api.lab.eu.amplitude.com"
        assert config.fetch_timeout_ms == 2500
        assert config.retry_policy.max_retries == 3
        assert config.retry_policy.get_delay_ms(2) == 400

    def test_to_caching_options(self) -> None:
        """Test TTL seconds become expiration timedeltas."""
        settings = AppSettings(
            cache_key_prefix="exp",
            cache_ttl_seconds=120,
            local_cache_ttl_seconds=15,
        )

        options = settings.to_caching_options()

        assert options.cache_key_prefix == "exp"
        assert options.absolute_expiration == timedelta(seconds=120)
        assert options.local_cache_expiration == timedelta(seconds=15)

    def test_unset_local_ttl(self) -> None:
        """Test that no local TTL leaves the local expiration unset."""
        options = AppSettings().to_caching_options()

        assert options.local_cache_expiration is None
