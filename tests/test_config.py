"""Tests for Pydantic Settings configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import (
    DEFAULT_USER_AGENT,
    BrowserSettings,
    CorrelatorSettings,
    Settings,
    WorkerSettings,
    get_settings,
)


def _clear_env(monkeypatch: pytest.MonkeyPatch, *prefixes: str) -> None:
    for key in list(os.environ.keys()):
        if key.startswith(prefixes):
            monkeypatch.delenv(key, raising=False)


class TestBrowserSettings:
    """Tests for BrowserSettings."""

    def test_default_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """BrowserSettings should run headless with a French locale."""
        _clear_env(monkeypatch, "BROWSER_")

        settings = BrowserSettings()

        assert settings.headless is True
        assert settings.user_agent == DEFAULT_USER_AGENT
        assert settings.locale == "fr-FR"
        assert settings.launch_attempts == 3
        assert settings.extractor_scripts_dir is None

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """BROWSER_ variables override defaults."""
        monkeypatch.setenv("BROWSER_HEADLESS", "false")
        monkeypatch.setenv("BROWSER_EXTRACTOR_SCRIPTS_DIR", "/opt/extractors")

        settings = BrowserSettings()

        assert settings.headless is False
        assert settings.extractor_scripts_dir == Path("/opt/extractors")

    def test_launch_attempts_must_be_positive(self) -> None:
        """At least one launch attempt is required."""
        with pytest.raises(ValidationError):
            BrowserSettings(launch_attempts=0)


class TestCorrelatorSettings:
    """Tests for CorrelatorSettings."""

    def test_default_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Defaults match the production timing policy."""
        _clear_env(monkeypatch, "CORRELATOR_")

        settings = CorrelatorSettings()

        assert settings.timeout == 30.0
        assert settings.initial_delay == 1.0
        assert settings.status_poll_interval == 0.5
        assert settings.max_status_attempts == 30
        assert settings.settle_delay == 2.0
        assert settings.extract_retry_interval == 2.0
        assert settings.max_extract_attempts == 10

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """CORRELATOR_ variables override defaults."""
        monkeypatch.setenv("CORRELATOR_TIMEOUT", "12.5")
        monkeypatch.setenv("CORRELATOR_MAX_EXTRACT_ATTEMPTS", "4")

        settings = CorrelatorSettings()

        assert settings.timeout == 12.5
        assert settings.max_extract_attempts == 4

    @pytest.mark.parametrize(
        "field",
        ["timeout", "status_poll_interval", "extract_retry_interval"],
    )
    def test_intervals_must_be_positive(self, field: str) -> None:
        """Zero deadlines and poll intervals are rejected."""
        with pytest.raises(ValidationError):
            CorrelatorSettings(**{field: 0})

    def test_delays_may_be_zero(self) -> None:
        """The initial and settle delays can be disabled."""
        settings = CorrelatorSettings(initial_delay=0, settle_delay=0)

        assert settings.initial_delay == 0
        assert settings.settle_delay == 0


class TestWorkerSettings:
    """Tests for WorkerSettings."""

    def test_default_sweep_interval(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The orphan sweep runs every two minutes."""
        _clear_env(monkeypatch, "WORKER_")

        assert WorkerSettings().sweep_interval == 120.0


class TestSettings:
    """Tests for main Settings class."""

    def test_default_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Default environment should be development."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)

        settings = Settings()

        assert settings.environment == "development"
        assert settings.is_production is False

    def test_is_production(self) -> None:
        """Only the production environment reports is_production."""
        assert Settings(environment="production").is_production is True
        assert Settings(environment="test").is_production is False

    def test_log_level_is_normalized(self) -> None:
        """Log level names are upper-cased."""
        assert Settings(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        """Unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_nested_settings(self) -> None:
        """Nested settings should be accessible."""
        settings = Settings()

        assert isinstance(settings.browser, BrowserSettings)
        assert isinstance(settings.correlator, CorrelatorSettings)
        assert isinstance(settings.worker, WorkerSettings)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_is_cached(self) -> None:
        """get_settings should return the same instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
