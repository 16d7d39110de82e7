"""
Engine configuration using Pydantic Settings.

Typed and validated settings for the search engine, loaded from environment
variables and an optional .env file. Each concern has its own section and
environment prefix.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class BrowserSettings(BaseSettings):
    """Rendering worker (headless browser) settings."""

    model_config = SettingsConfigDict(env_prefix="BROWSER_")

    headless: bool = Field(default=True, description="Run workers without a visible window")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent for workers")
    locale: str = Field(default="fr-FR", description="Browser locale")
    launch_timeout: float = Field(default=25.0, gt=0, description="Browser launch timeout (s)")
    launch_attempts: int = Field(default=3, ge=1, description="Browser launch attempts")
    navigation_timeout: float = Field(default=30.0, gt=0, description="Page navigation timeout (s)")
    extractor_scripts_dir: Path | None = Field(
        default=None,
        description="Directory holding one <site>.js extraction script per site",
    )


class CorrelatorSettings(BaseSettings):
    """Timing policy of the per-job result correlator."""

    model_config = SettingsConfigDict(env_prefix="CORRELATOR_")

    timeout: float = Field(default=30.0, gt=0, description="Per-job deadline (s)")
    initial_delay: float = Field(default=1.0, ge=0, description="Delay before first probe (s)")
    status_poll_interval: float = Field(default=0.5, gt=0, description="Load-status poll delay (s)")
    max_status_attempts: int = Field(default=30, ge=1, description="Load-status probes")
    settle_delay: float = Field(default=2.0, ge=0, description="Wait after load complete (s)")
    extract_retry_interval: float = Field(default=2.0, gt=0, description="Extract retry delay (s)")
    max_extract_attempts: int = Field(default=10, ge=1, description="Extraction attempts")


class WorkerSettings(BaseSettings):
    """Worker registry maintenance settings."""

    model_config = SettingsConfigDict(env_prefix="WORKER_")

    sweep_interval: float = Field(default=120.0, gt=0, description="Orphan sweep interval (s)")


class Settings(BaseSettings):
    """
    Main engine settings.

    Aggregates all configuration sections and provides environment-specific
    settings loading.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Runtime environment"
    )
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    correlator: CorrelatorSettings = Field(default_factory=CorrelatorSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the log level and reject unknown names."""
        level = str(v).strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached engine settings.

    Returns:
        Configured Settings instance.
    """
    return Settings()
