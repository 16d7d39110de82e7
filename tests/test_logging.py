"""Tests for structured logging configuration."""

from __future__ import annotations

import structlog

from core.config import Settings
from core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    search_context,
)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_logging_default(self) -> None:
        """configure_logging should work with defaults."""
        configure_logging()

        assert get_logger() is not None

    def test_configure_logging_json_format(self) -> None:
        """configure_logging should configure JSON format."""
        configure_logging(json_format=True, log_level="DEBUG")

        get_logger("json.test").debug("Worker acquired", handle_id="w1")

    def test_configure_from_settings(self) -> None:
        """Production settings select the JSON renderer."""
        configure_from_settings(Settings(environment="production", log_level="warning"))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_development_uses_console_renderer(self) -> None:
        """Development settings select the console renderer."""
        configure_from_settings(Settings(environment="development"))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


class TestContextFunctions:
    """Tests for context binding functions."""

    def test_bind_and_clear_context(self) -> None:
        """bind_context adds variables and clear_context removes them."""
        clear_context()

        bind_context(search_id="abc")
        assert structlog.contextvars.get_contextvars() == {"search_id": "abc"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_search_context_is_scoped(self) -> None:
        """search_context unbinds only its own keys on exit."""
        clear_context()
        bind_context(caller="cli")

        with search_context(search_id="s1"):
            assert structlog.contextvars.get_contextvars() == {
                "caller": "cli",
                "search_id": "s1",
            }

        assert structlog.contextvars.get_contextvars() == {"caller": "cli"}
        clear_context()
