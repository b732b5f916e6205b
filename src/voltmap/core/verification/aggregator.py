"""Verification aggregator: reduce a station's votes into a summary."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from ..config import get_config
from ..db import get_cursor
from .constants import TrustConstants
from .enums import Vote
from .models import VerificationSummary, utcnow

logger = logging.getLogger(__name__)


def leading_vote(counts: Mapping[Vote, int]) -> Vote | None:
    """Vote type with the highest count, or None when nothing was cast.

    Ties go to the type declared first in Vote (WORKING, NOT_WORKING, BUSY).
    """
    best: Vote | None = None
    for vote in Vote:
        n = counts.get(vote, 0)
        if n > 0 and (best is None or n > counts.get(best, 0)):
            best = vote
    return best


def build_summary(counts: Mapping[Vote, int], last_verified_at: datetime | None) -> VerificationSummary:
    """Build a summary from per-type counts."""
    return VerificationSummary(
        working=counts.get(Vote.WORKING, 0),
        not_working=counts.get(Vote.NOT_WORKING, 0),
        busy=counts.get(Vote.BUSY, 0),
        leading_vote=leading_vote(counts),
        last_verified_at=last_verified_at,
    )


def summarize_votes(rows: Iterable[Mapping[str, Any]]) -> VerificationSummary:
    """Reduce individual vote rows (``vote``, ``created_at``) into a summary."""
    counts = {vote: 0 for vote in Vote}
    last: datetime | None = None
    for row in rows:
        counts[Vote(row["vote"])] += 1
        created_at = row.get("created_at")
        if created_at is not None and (last is None or created_at > last):
            last = created_at
    return build_summary(counts, last)


def summarize(station_id: int, now: datetime | None = None) -> VerificationSummary:
    """Summarize every stored vote for a station.

    VOLTMAP_VERIFICATION_LOOKBACK_DAYS bounds the rows read; unset means all
    history. A station with no votes (or no such station) gets an all-zero
    summary.
    """
    lookback_days = get_config().verification_lookback_days

    sql = """
        SELECT vote, COUNT(*) AS count, MAX(created_at) AS last_at
        FROM station_verifications
        WHERE station_id = %s
    """
    params: list[Any] = [station_id]
    if lookback_days is not None:
        sql += " AND created_at >= %s"
        params.append((now or utcnow()) - timedelta(days=lookback_days))
    sql += " GROUP BY vote"

    with get_cursor() as cur:
        cur.execute(sql, params)
        rows = cur.fetchall()

    counts = {vote: 0 for vote in Vote}
    last: datetime | None = None
    for row in rows:
        counts[Vote(row["vote"])] = row["count"]
        if row["last_at"] is not None and (last is None or row["last_at"] > last):
            last = row["last_at"]

    return build_summary(counts, last)


def is_recently_verified(
    summary: VerificationSummary,
    now: datetime | None = None,
    window: timedelta = TrustConstants.RECENT_WINDOW,
) -> bool:
    """True if the newest vote falls inside the recency window."""
    if summary.last_verified_at is None:
        return False
    return (now or utcnow()) - summary.last_verified_at <= window
