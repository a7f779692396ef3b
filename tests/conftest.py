# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Unit tests run against an AsyncMock session: queued results are fed to
``db.execute`` through ``side_effect`` in the order the service issues
its queries.
"""

from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from edubalance.core.config import Settings, clear_settings_cache
from edubalance.domains.balancing.distribution import build_section_balance
from edubalance.models.balancing import SectionBalance


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Ensure every test sees settings built from its own environment."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Provide default settings independent of the host environment."""
    return Settings(environment="development", debug=True, log_level="DEBUG")


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock database session."""
    return make_mock_db()


def make_mock_db() -> AsyncMock:
    """Build a mock session; tests needing two sessions call this directly."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


def scalar_result(value: Any) -> MagicMock:
    """Build a result whose scalar_one_or_none() returns value."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def scalars_result(values: list[Any]) -> MagicMock:
    """Build a result whose scalars().all() returns values."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


def rows_result(rows: list[Any]) -> MagicMock:
    """Build a result whose all() returns rows."""
    result = MagicMock()
    result.all.return_value = rows
    return result


def rowcount_result(rowcount: int) -> MagicMock:
    """Build an UPDATE result reporting rowcount affected rows."""
    result = MagicMock()
    result.rowcount = rowcount
    return result


# =============================================================================
# Helper Fixtures
# =============================================================================


def make_balance(
    section_id: str,
    current: int,
    capacity: int,
    name: str | None = None,
) -> SectionBalance:
    """Build a SectionBalance whose target equals current enrollment."""
    return build_section_balance(section_id, name or section_id, current, capacity)


@pytest.fixture
def sample_institution_id() -> str:
    """Provide a sample institution ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_department_id() -> str:
    """Provide a sample department ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440010"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires PostgreSQL)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
