"""Conftest for integration tests.

Provides database fixtures for tests that require real PostgreSQL.
All tests in this directory are automatically marked as integration tests
and will be skipped if PostgreSQL is not available.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import nullcontext
from pathlib import Path

import psycopg2
import pytest

from voltmap.core.config import get_config
from voltmap.core.db import close_pool
from voltmap.core.migrations import MigrationRunner

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_collection_modifyitems(config, items):
    """Mark all tests in the integration directory."""
    for item in items:
        if "integration" in str(item.fspath):
            if "integration" not in item.keywords:
                item.add_marker(pytest.mark.integration)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_conn() -> Generator:
    """Provide a migrated database connection.

    Connection settings come from the VOLTMAP_DB_* environment variables.
    The shared connection pool used by the code under test is closed after
    each test.

    Yields:
        psycopg2 connection object
    """
    params = get_config().connection_params

    try:
        conn = psycopg2.connect(**params, connect_timeout=5)
    except psycopg2.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    MigrationRunner(migrations_dir=MIGRATIONS_DIR, connection_factory=lambda: nullcontext(conn)).up()

    yield conn

    conn.rollback()
    conn.close()
    close_pool()


@pytest.fixture
def actor(db_conn) -> Generator[str, None, None]:
    """A fresh users row; its trust events are left behind (the table is append-only)."""
    actor_id = f"it-{uuid.uuid4()}"
    with db_conn.cursor() as cur:
        cur.execute("INSERT INTO users (id, email) VALUES (%s, %s)", (actor_id, f"{actor_id}@example.com"))
    db_conn.commit()

    yield actor_id

    db_conn.rollback()
    with db_conn.cursor() as cur:
        cur.execute("DELETE FROM users WHERE id = %s", (actor_id,))
    db_conn.commit()
