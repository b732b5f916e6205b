"""Fixtures for the HTTP API tests."""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

JWT_SECRET = "test-secret-that-is-at-least-32-characters-long"


@pytest.fixture
def server_env(clean_env, monkeypatch):
    """A development-mode environment with a fixed JWT secret."""
    monkeypatch.setenv("VOLTMAP_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("VOLTMAP_HOST", "127.0.0.1")


@pytest.fixture(autouse=True)
def reset_limits():
    from voltmap.server.rate_limit import reset_rate_limits

    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def client(server_env):
    from voltmap.server.app import create_app

    return TestClient(create_app())


@pytest.fixture
def make_token(server_env):
    """Return a factory minting bearer headers for an actor."""
    from voltmap.server.auth import issue_actor_token

    def _make(actor_id: str = "actor-1", role: str = "user", expires_in: int | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_actor_token(actor_id, role=role, expires_in=expires_in)}"}

    return _make
