"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It selects the testing environment before keyrate settings are imported.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

import pytest  # noqa: E402

from keyrate.core.clock import FakeClock  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock starting at t=0 ms."""
    return FakeClock(start_ms=0)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Rebuild settings from the (possibly monkeypatched) environment per test."""
    from keyrate.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
