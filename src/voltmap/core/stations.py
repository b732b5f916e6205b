"""Station directory: the slice of the station record the trust engine reads.

Station CRUD lives in the surrounding application. This module only looks
stations up and performs the two writes the engine is allowed to make:
moving the admin status (community consensus, moderation) and flagging a
heavily reported station as low trust.
"""

from __future__ import annotations

import logging
from typing import Any

from .db import get_cursor
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)

ADMIN_STATUSES = ("OPERATIONAL", "MAINTENANCE", "OFFLINE")
LOW_TRUST = "LOW"


def get_station(station_id: int) -> dict[str, Any] | None:
    """Fetch a station row, or None if it does not exist."""
    with get_cursor() as cur:
        cur.execute("SELECT * FROM stations WHERE id = %s", (station_id,))
        row = cur.fetchone()
        return dict(row) if row else None


def require_station(station_id: int) -> dict[str, Any]:
    """Fetch a station row or raise NotFoundError."""
    station = get_station(station_id)
    if station is None:
        raise NotFoundError("Station", str(station_id))
    return station


def is_publicly_visible(station: dict[str, Any]) -> bool:
    """Approved (or never moderated) and not hidden."""
    approval = station.get("approval_status")
    return approval in (None, "APPROVED") and not station.get("is_hidden", False)


def set_station_status(cur: Any, station_id: int, status: str) -> bool:
    """Set the admin status inside the caller's transaction.

    Returns True if a row changed.
    """
    if status not in ADMIN_STATUSES:
        raise ValueError(f"Unknown station status: {status}")

    cur.execute(
        """
        UPDATE stations SET status = %s, updated_at = NOW()
        WHERE id = %s AND status IS DISTINCT FROM %s
        RETURNING id
        """,
        (status, station_id, status),
    )
    changed = cur.fetchone() is not None
    if changed:
        logger.info("Station %s status set to %s", station_id, status)
    return changed


def update_station_status(station_id: int, status: str) -> bool:
    """Set the admin status in its own transaction. Returns True if a row changed."""
    with get_cursor() as cur:
        return set_station_status(cur, station_id, status)


def flag_station_low_trust(station_id: int) -> bool:
    """Mark a station as low trust. Returns True if it was not already flagged."""
    with get_cursor() as cur:
        cur.execute(
            """
            UPDATE stations SET trust_level = %s, updated_at = NOW()
            WHERE id = %s AND trust_level IS DISTINCT FROM %s
            RETURNING id
            """,
            (LOW_TRUST, station_id, LOW_TRUST),
        )
        flagged = cur.fetchone() is not None

    if flagged:
        logger.warning("Station %s flagged as low trust", station_id)
    return flagged
