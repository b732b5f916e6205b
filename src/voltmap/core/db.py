# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Database connection management for Voltmap.

Config via VOLTMAP_DB_* environment variables (see voltmap.core.config).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2 import pool as psycopg2_pool
from psycopg2.extras import RealDictCursor

from .config import get_config
from .exceptions import DatabaseException

logger = logging.getLogger(__name__)

# Connection pool (lazy init, thread-safe)
_pool: psycopg2_pool.ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def _get_pool() -> psycopg2_pool.ThreadedConnectionPool:
    """Get or create the connection pool."""
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                config = get_config()
                try:
                    _pool = psycopg2_pool.ThreadedConnectionPool(
                        **config.pool_config,
                        **config.connection_params,
                    )
                except psycopg2.OperationalError as e:
                    logger.error("Failed to create connection pool: %s", e)
                    raise DatabaseException(f"Failed to create connection pool: {e}") from e
                logger.info(
                    "Connection pool initialized: min=%d, max=%d",
                    config.db_pool_min,
                    config.db_pool_max,
                )
    return _pool


def _validate_connection(conn: Any) -> bool:
    """Check if a pooled connection is still usable."""
    if conn.closed:
        return False

    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        return True
    except psycopg2.Error:
        return False


def _get_healthy_connection(pool: psycopg2_pool.ThreadedConnectionPool) -> Any:
    """Get a healthy connection from pool, discarding stale ones.

    Raises:
        DatabaseException: If the pool is exhausted or no healthy
            connection could be obtained.
    """
    max_attempts = 3
    for _ in range(max_attempts):
        try:
            conn = pool.getconn()
        except psycopg2_pool.PoolError as e:
            raise DatabaseException(f"Failed to get connection from pool: {e}") from e

        if _validate_connection(conn):
            return conn

        logger.warning("Discarding stale pooled connection")
        pool.putconn(conn, close=True)

    raise DatabaseException("Failed to get healthy connection after multiple attempts")


@contextmanager
def get_cursor() -> Generator[Any, None, None]:
    """Get a database cursor with auto-commit on success, rollback on error.

    Everything executed inside one ``with`` block shares a transaction, so
    transaction-scoped locks (pg_advisory_xact_lock, SELECT ... FOR UPDATE)
    are released at commit or rollback.

    Usage:
        with get_cursor() as cur:
            cur.execute("SELECT * FROM stations WHERE id = %s", (station_id,))
            row = cur.fetchone()
    """
    pool = _get_pool()
    conn = _get_healthy_connection(pool)
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


@contextmanager
def get_connection() -> Generator[Any, None, None]:
    """Get a raw database connection from the pool.

    For cases that need connection-level control (like migrations).
    """
    pool = _get_pool()
    conn = _get_healthy_connection(pool)
    try:
        yield conn
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    """Close the connection pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Connection pool closed")


def check_connection() -> bool:
    """Check if database connection is working."""
    try:
        with get_cursor() as cur:
            cur.execute("SELECT 1")
        return True
    except (psycopg2.Error, DatabaseException):
        return False
