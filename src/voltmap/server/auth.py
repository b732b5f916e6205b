"""Bearer JWT issuing and verification for actors.

Tokens are HS256 JWTs carrying the actor id in ``sub`` and a ``role``
claim ("user" or "admin"). The surrounding application's login flow (or
``voltmap token create``) mints them; this service only verifies.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Any

import jwt

from .config import get_settings

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


def issue_actor_token(actor_id: str, role: str = ROLE_USER, expires_in: int | None = None) -> str:
    """Create a signed access token for an actor."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    settings = get_settings()
    now = time.time()
    ttl = settings.access_token_expiry if expires_in is None else expires_in

    payload = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "sub": actor_id,
        "role": role,
        "iat": int(now),
        "exp": int(now + ttl),
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_actor_token(token: str) -> dict[str, Any] | None:
    """Verify an access token.

    Returns the payload if valid, None otherwise.
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Token expired")
        return None
    except jwt.InvalidAudienceError:
        logger.debug("Invalid audience")
        return None
    except jwt.InvalidIssuerError:
        logger.debug("Invalid issuer")
        return None
    except jwt.PyJWTError as e:
        logger.debug("JWT verification failed: %s", e)
        return None

    return payload
