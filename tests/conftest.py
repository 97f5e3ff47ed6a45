"""
Pytest configuration and fixtures for progressive-schema tests

This module provides shared fixtures for unit and integration tests.
"""
import os
from pathlib import Path

import pytest

from progressive_schema.core.config import BuilderConfig
from progressive_schema.core.schema import ProgressiveSchemaBuilder


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests of single engine components"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that drive the builder or CLI end to end"
    )


# =======================
# BUILDER FIXTURES
# =======================

@pytest.fixture(scope="function")
def builder() -> ProgressiveSchemaBuilder:
    """Builder with default configuration and empty state"""
    return ProgressiveSchemaBuilder()


@pytest.fixture(scope="function")
def make_builder():
    """
    Factory for builders with custom configuration

    Returns:
        Callable accepting BuilderConfig keyword arguments
    """
    def _make(initial_state=None, **config_values) -> ProgressiveSchemaBuilder:
        return ProgressiveSchemaBuilder(
            initial_state=initial_state,
            config=BuilderConfig(**config_values),
        )

    return _make


# =======================
# RECORD FIXTURES
# =======================

@pytest.fixture(scope="function")
def event_records() -> list[dict]:
    """Event-like records with ids, coordinates, an enum and nested venue data"""
    statuses = ["active", "inactive", "pending"]
    return [
        {
            "id": i,
            "title": f"Event {i}",
            "status": statuses[i % 3],
            "lat": 40.5 + i * 0.01,
            "lng": -74.5 - i * 0.01,
            "start_date": "2024-03-15",
            "venue": {"name": f"Hall {i % 4}", "city": "Berlin"},
        }
        for i in range(30)
    ]


@pytest.fixture(scope="function")
def record_factory():
    """
    Factory producing n records from a template callable

    Returns:
        Callable (n, template) -> list of records where template(i) builds record i
    """
    def _factory(n: int, template) -> list[dict]:
        return [template(i) for i in range(n)]

    return _factory


# =======================
# ENVIRONMENT FIXTURES
# =======================

@pytest.fixture(scope="function")
def clean_schema_env(monkeypatch):
    """Remove SCHEMA_* variables so config tests see defaults"""
    for name in list(os.environ):
        if name.startswith("SCHEMA_"):
            monkeypatch.delenv(name, raising=False)
    yield monkeypatch

    # Variables loaded from .env files bypass monkeypatch
    for name in list(os.environ):
        if name.startswith("SCHEMA_"):
            os.environ.pop(name)


@pytest.fixture(scope="session")
def test_data_dir() -> Path:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory
    """
    return Path(__file__).parent / "fixtures"
