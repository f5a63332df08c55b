# tests/conftest.py
"""
Main pytest configuration and shared fixtures for all tests.

This module provides:
- Async test support (pytest-asyncio auto mode)
- Settings for the test environment
- Store, registry and agent loop fixtures (tests/factories/fixtures.py)
"""

import pytest

from agent_orchestrator.config.settings import Settings, get_settings
from agent_orchestrator.infrastructure.observability import configure_logging


# ============================================================================
# Pytest Configuration
# ============================================================================

pytest_plugins = ["tests.factories.fixtures"]


def pytest_configure(config):
    """Configure pytest-asyncio to use auto mode."""
    config.option.asyncio_mode = "auto"


# ============================================================================
# Settings and Configuration
# ============================================================================

@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Test settings with overrides for test environment.

    Each integration test connects its own sqlite file database, so no
    database_url is set here.
    """
    return Settings(
        app_name="Agent Orchestrator Test",
        app_version="0.1.0-test",
        environment="local",
        debug=True,
        database_url=None,
        log_level=40,  # ERROR level to reduce noise in tests
        log_format="console",
        llm_provider="anthropic",
        llm_model="claude-test",
        llm_api_key="test-key",
    )


@pytest.fixture(scope="session", autouse=True)
def override_settings(test_settings: Settings):
    """Configure logging once for the session and start from an empty settings cache."""
    get_settings.cache_clear()
    configure_logging(test_settings)
    yield
    get_settings.cache_clear()
