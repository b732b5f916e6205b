# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Authentication and authorization helpers for REST endpoints.

Provides authenticate() and require_role() for use by endpoint handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import JSONResponse

from .auth import ROLE_ADMIN, ROLE_USER, verify_actor_token
from .errors import AUTH_MISSING_TOKEN, FORBIDDEN_INSUFFICIENT_PERMISSION, auth_error, forbidden_error

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedActor:
    """The actor behind a verified bearer token."""

    actor_id: str
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def authenticate(request: Request) -> AuthenticatedActor | JSONResponse:
    """Authenticate a request. Returns the actor on success, error JSONResponse on failure.

    Usage in endpoints::

        actor = authenticate(request)
        if isinstance(actor, JSONResponse):
            return actor
        # actor is AuthenticatedActor
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return auth_error("Missing or invalid authentication token", code=AUTH_MISSING_TOKEN)

    payload = verify_actor_token(auth_header[7:].strip())
    if payload is None:
        return auth_error("Invalid authentication token")

    return AuthenticatedActor(
        actor_id=str(payload["sub"]),
        role=payload.get("role") or ROLE_USER,
    )


def require_role(actor: AuthenticatedActor, role: str) -> JSONResponse | None:
    """Check the actor holds a role. Returns 403 response or None.

    Admins pass every role check.
    """
    if actor.role == role or actor.is_admin:
        return None

    logger.info("Actor %s denied: role %s required", actor.actor_id, role)
    return forbidden_error(
        f"Insufficient role. Required: {role}",
        code=FORBIDDEN_INSUFFICIENT_PERMISSION,
    )
