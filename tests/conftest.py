"""
Shared pytest fixtures for record-spine tests.

This module provides:
- A recording stub driver and a ``DB`` handle over it
- An in-memory SQLite ``DB`` handle with the sample schema applied
- structlog reset between tests

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(sqlite_db):
            sqlite_db.insert(User(name="ada"))
"""

from collections.abc import Generator

import pytest
import structlog

from recordspine.core.connection import SqliteConnection
from recordspine.core.db import DB
from recordspine.core.logging import clear_context
from tests._support.records import SCHEMA
from tests._support.stub_driver import StubConnection


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any ``configure_logging`` call and bound context after each test."""
    yield
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def stub_conn() -> StubConnection:
    """Recording driver: inspect ``.calls``, ``.last_sql``, ``.last_args``."""
    return StubConnection()


@pytest.fixture
def stub_db(stub_conn: StubConnection) -> DB:
    return DB(stub_conn)


@pytest.fixture
def sqlite_conn() -> Generator[SqliteConnection, None, None]:
    conn = SqliteConnection(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def sqlite_db(sqlite_conn: SqliteConnection) -> DB:
    """In-memory SQLite handle with users/people/tags/posts/widgets tables."""
    db = DB(sqlite_conn)
    db.execute_script(SCHEMA)
    return db
