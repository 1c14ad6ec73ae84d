#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests can be run with standard Python tools:

    # Run all tests
    python -m pytest tests/ -v

    # Skip tests that need a database session
    python -m pytest tests/ -v -m "not db"

Database-backed tests run against in-memory SQLite (see conftest.py), so
no external services are needed. Set TEST_DATABASE_URL to run them against
PostgreSQL instead.
"""

import os

TEST_DB_URL = os.environ.get("TEST_DATABASE_URL", "sqlite://")


def get_test_db_url() -> str:
    """Get the test database URL."""
    return TEST_DB_URL
