"""
Pytest configuration and fixtures for the test suite.

This module contains shared fixtures used across all tests.
"""

from __future__ import annotations

import pytest
from worker_fakes import FakePlatform

from core.config import CorrelatorSettings
from services.workers.context import OrchestratorContext
from services.workers.manager import WorkerManager


@pytest.fixture()
def platform() -> FakePlatform:
    """Return an in-memory worker platform."""
    return FakePlatform()


@pytest.fixture()
def context() -> OrchestratorContext:
    """Return fresh engine state."""
    return OrchestratorContext()


@pytest.fixture()
def manager(platform: FakePlatform, context: OrchestratorContext) -> WorkerManager:
    """Return a worker manager on the fake platform."""
    return WorkerManager(platform, context, sweep_interval=0.01)


@pytest.fixture()
def fast_settings() -> CorrelatorSettings:
    """Correlator settings shrunk for tests."""
    return CorrelatorSettings(
        timeout=1.0,
        initial_delay=0.0,
        status_poll_interval=0.01,
        max_status_attempts=5,
        settle_delay=0.0,
        extract_retry_interval=0.01,
        max_extract_attempts=3,
    )
