"""
Shared fixtures.

Store tests run against a real in-memory SQLite connection injected into
TursoDatabase, so SQL (schema, upserts, unique constraints, rollback) is
exercised for real while the libSQL driver stays mocked.
"""

import sqlite3
import sys
from unittest.mock import MagicMock

import pytest

# Mock external dependencies before any project module imports them
sys.modules["libsql_experimental"] = MagicMock()
sys.modules.setdefault("streamlit", MagicMock())


def _new_store():
    from turso_db import TursoDatabase

    db = TursoDatabase(url="libsql://test.turso.io", auth_token="test-token")
    db._conn = sqlite3.connect(":memory:")
    db.init_schema()
    return db


@pytest.fixture
def store():
    """TursoDatabase backed by an in-memory SQLite database."""
    db = _new_store()
    yield db
    db._conn.close()


@pytest.fixture
def make_store():
    """Factory for additional independent in-memory stores."""
    created = []

    def factory():
        db = _new_store()
        created.append(db)
        return db

    yield factory
    for db in created:
        db._conn.close()
