"""Pytest configuration and shared fixtures.

Unit tests run without a database: SQLAlchemy sessions are AsyncMocks and
ORM objects are built transient through tests/factories.py. S3 is mocked
with moto.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pkgallery.core.settings import clear_settings_cache


@pytest.fixture(autouse=True)
def clean_settings_cache():
    """Clear the settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_session():
    """AsyncSession double.

    ``add`` is synchronous on the real session, everything else awaited.
    Tests set ``execute.return_value`` for queries.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    return session
