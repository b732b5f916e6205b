"""Global test fixtures for the Voltmap test suite."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all VOLTMAP_ variables and the trust score flag."""
    for key in list(os.environ.keys()):
        if key.startswith("VOLTMAP_") or key == "TRUST_SCORE_ENABLED":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_config_caches():
    """Drop the lazily built settings singletons around every test."""
    from voltmap.core.config import clear_config_cache
    from voltmap.server.config import clear_settings_cache

    clear_config_cache()
    clear_settings_cache()
    yield
    clear_config_cache()
    clear_settings_cache()


# ============================================================================
# Time
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """A fixed, timezone-aware 'current time'."""
    return datetime(2026, 3, 14, 12, 0, 0, tzinfo=UTC)


# ============================================================================
# psycopg2 Cursor Mocking
# ============================================================================


@pytest.fixture
def mock_cursor() -> MagicMock:
    """A RealDictCursor stand-in; configure fetchone/fetchall per test."""
    cursor = MagicMock()
    cursor.fetchone.return_value = None
    cursor.fetchall.return_value = []
    return cursor


@pytest.fixture
def patch_cursor(monkeypatch, mock_cursor):
    """Replace get_cursor in the given modules with one yielding mock_cursor.

    Usage::

        cur = patch_cursor("voltmap.core.verification.aggregator")
        cur.fetchall.return_value = [...]
    """

    def _patch(*modules: str, cursor: Any = None) -> Any:
        target = cursor if cursor is not None else mock_cursor

        @contextmanager
        def fake_get_cursor() -> Iterator[Any]:
            yield target

        for module in modules:
            monkeypatch.setattr(f"{module}.get_cursor", fake_get_cursor)
        return target

    return _patch
