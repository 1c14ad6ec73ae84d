"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import pytest
from sqlalchemy.pool import StaticPool

from database.database import SessionLocal, configure_database
from database.models import Base
from tests import get_test_db_url


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring database (deselect with '-m \"not db\"')"
    )


@pytest.fixture
def db_engine():
    """
    Fresh schema per test.

    In-memory SQLite needs a single shared connection (StaticPool) so every
    session opened by matching_uow() sees the same database.
    """
    url = get_test_db_url()
    if url.startswith("sqlite"):
        engine = configure_database(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = configure_database(url)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Session bound to the test engine, closed after the test."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
