"""Trust event ledger and actor reputation.

Trust events are append-only reputation deltas. An event is recorded at
most once per dedup key per lookback window:

    verification_reward    (actor, type, station)          30 minutes
    report_reward          (actor, type, station, reason)  24 hours
    contradiction_penalty  (actor, type)                   24 hours

The window check and the insert run in one transaction holding a
``pg_advisory_xact_lock`` on a hash of the key, so concurrent attempts for
the same key serialize and at most one of them inserts. The delta is
applied to ``users.trust_score`` (floored at 0) in the same transaction and
the actor's tier is recomputed from the new score.

The policy functions below decide *when* an event is due; they read votes
and reports and then call ``try_record_event``.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from typing import Any

from ..db import get_cursor
from ..exceptions import InvalidInputError
from .aggregator import summarize_votes
from .constants import TrustConstants
from .enums import TrustEventType, UserTrustLevel, Vote
from .models import TrustEvent, TrustEventOutcome, utcnow

logger = logging.getLogger(__name__)


# ============================================================================
# Reputation
# ============================================================================


def trust_level_for(score: int) -> UserTrustLevel:
    """Tier for a reputation score."""
    if score >= TrustConstants.TRUSTED_MIN_SCORE:
        return UserTrustLevel.TRUSTED
    if score >= TrustConstants.NORMAL_MIN_SCORE:
        return UserTrustLevel.NORMAL
    return UserTrustLevel.NEW


def get_actor_trust_level(actor_id: str) -> UserTrustLevel:
    """Stored tier of an actor; unknown actors are NEW."""
    with get_cursor() as cur:
        cur.execute("SELECT user_trust_level FROM users WHERE id = %s", (actor_id,))
        row = cur.fetchone()

    if not row or not row.get("user_trust_level"):
        return UserTrustLevel.NEW
    return UserTrustLevel(row["user_trust_level"])


def _apply_delta(cur: Any, actor_id: str, delta: int) -> int | None:
    """Apply a delta to an actor's score inside the caller's transaction.

    Returns the new score, or None if the actor has no users row.
    """
    cur.execute("SELECT trust_score FROM users WHERE id = %s FOR UPDATE", (actor_id,))
    row = cur.fetchone()
    if row is None:
        logger.warning("Trust event for unknown actor %s; score not updated", actor_id)
        return None

    new_score = max(0, (row["trust_score"] or 0) + delta)
    cur.execute(
        "UPDATE users SET trust_score = %s, user_trust_level = %s, updated_at = NOW() WHERE id = %s",
        (new_score, trust_level_for(new_score).value, actor_id),
    )
    return new_score


# ============================================================================
# Idempotent Recording
# ============================================================================


def _dedup_reason(event_type: TrustEventType, reason: str | None) -> str | None:
    return reason if event_type == TrustEventType.REPORT_REWARD else None


def event_lock_key(
    actor_id: str,
    event_type: TrustEventType,
    station_id: int | None,
    reason: str | None,
) -> int:
    """Signed 64-bit advisory lock key for a dedup key."""
    raw = f"{actor_id}|{event_type.value}|{station_id}|{_dedup_reason(event_type, reason)}"
    digest = hashlib.sha256(raw.encode()).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


def try_record_event(
    actor_id: str,
    event_type: TrustEventType | str,
    station_id: int | None = None,
    reason: str | None = None,
    delta: int | None = None,
    now: datetime | None = None,
) -> TrustEventOutcome:
    """Record a trust event unless an equivalent one exists in its window.

    Args:
        actor_id: Actor whose reputation changes
        event_type: One of TrustEventType
        station_id: Station the event is about (None for station-less penalties)
        reason: Report reason; part of the dedup key for report_reward only
        delta: Score change; defaults to the event type's standard delta
        now: Event time (defaults to the current time)

    Returns:
        TrustEventOutcome(recorded=True, event) for a new event, or
        TrustEventOutcome(recorded=False) for a duplicate.

    Raises:
        InvalidInputError: Unknown event type
    """
    try:
        event_type = TrustEventType(event_type)
    except ValueError as e:
        raise InvalidInputError(f"Unknown trust event type: {event_type}", field="event_type") from e

    now = now or utcnow()
    if delta is None:
        delta = TrustConstants.EVENT_DELTA[event_type]
    cutoff = now - TrustConstants.EVENT_LOOKBACK[event_type]
    dedup_reason = _dedup_reason(event_type, reason)

    with get_cursor() as cur:
        cur.execute(
            "SELECT pg_advisory_xact_lock(%s)",
            (event_lock_key(actor_id, event_type, station_id, reason),),
        )

        sql = """
            SELECT id FROM trust_events
            WHERE actor_id = %s
              AND event_type = %s
              AND station_id IS NOT DISTINCT FROM %s
              AND created_at > %s
        """
        params: list[Any] = [actor_id, event_type.value, station_id, cutoff]
        if event_type == TrustEventType.REPORT_REWARD:
            sql += " AND reason IS NOT DISTINCT FROM %s"
            params.append(dedup_reason)
        cur.execute(sql + " LIMIT 1", params)

        if cur.fetchone() is not None:
            logger.debug(
                "Skipping duplicate %s for actor %s (station=%s)",
                event_type.value,
                actor_id,
                station_id,
            )
            return TrustEventOutcome(recorded=False)

        cur.execute(
            """
            INSERT INTO trust_events (actor_id, event_type, station_id, reason, delta, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (actor_id, event_type.value, station_id, reason, delta, now),
        )
        event = TrustEvent.from_row(cur.fetchone())
        new_score = _apply_delta(cur, actor_id, delta)

    logger.info(
        "Recorded %s (%+d) for actor %s (station=%s, score=%s)",
        event_type.value,
        delta,
        actor_id,
        station_id,
        new_score,
    )
    return TrustEventOutcome(recorded=True, event=event)


# ============================================================================
# Policies
# ============================================================================


def _votes_between(cur: Any, station_id: int, start: datetime, end: datetime) -> list[dict[str, Any]]:
    cur.execute(
        """
        SELECT vote, created_at FROM station_verifications
        WHERE station_id = %s AND created_at >= %s AND created_at <= %s
        """,
        (station_id, start, end),
    )
    return cur.fetchall()


def _consensus_vote(rows: list[dict[str, Any]]) -> Vote | None:
    """Leading vote if it has enough votes to count as consensus."""
    summary = summarize_votes(rows)
    if summary.leading_vote is None:
        return None
    if summary.count(summary.leading_vote) < TrustConstants.CONSENSUS_MIN_VOTES:
        return None
    return summary.leading_vote


def reward_verification_consensus(
    station_id: int,
    actor_id: str,
    vote: Vote | str,
    now: datetime | None = None,
) -> TrustEventOutcome | None:
    """Reward an actor whose vote matches the station's recent consensus.

    Returns None when there is no matching consensus, otherwise the outcome
    of the (possibly duplicate) reward attempt.
    """
    now = now or utcnow()
    with get_cursor() as cur:
        rows = _votes_between(cur, station_id, now - TrustConstants.CONSENSUS_WINDOW, now)

    if _consensus_vote(rows) != Vote(vote):
        return None
    return try_record_event(actor_id, TrustEventType.VERIFICATION_REWARD, station_id=station_id, now=now)


def count_contradictions(actor_id: str, now: datetime | None = None) -> int:
    """Number of the actor's recent votes later contradicted by consensus.

    A vote is contradicted when the votes cast in the 30 minutes after it
    (its own included) reach consensus on a different type.
    """
    now = now or utcnow()
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT station_id, vote, created_at FROM station_verifications
            WHERE user_id = %s AND created_at >= %s
            ORDER BY created_at
            """,
            (actor_id, now - TrustConstants.CONTRADICTION_LOOKBACK),
        )
        own_votes = cur.fetchall()

        contradictions = 0
        for own in own_votes:
            start = own["created_at"]
            rows = _votes_between(cur, own["station_id"], start, start + TrustConstants.CONSENSUS_WINDOW)
            consensus = _consensus_vote(rows)
            if consensus is not None and consensus != Vote(own["vote"]):
                contradictions += 1

    return contradictions


def penalize_contradictions(actor_id: str, now: datetime | None = None) -> TrustEventOutcome | None:
    """Penalize an actor who repeatedly voted against consensus in the last 24h."""
    now = now or utcnow()
    contradictions = count_contradictions(actor_id, now)
    if contradictions < TrustConstants.CONTRADICTION_THRESHOLD:
        return None

    logger.info("Actor %s contradicted consensus %d times in 24h", actor_id, contradictions)
    return try_record_event(actor_id, TrustEventType.CONTRADICTION_PENALTY, now=now)


def reward_report_consensus(
    station_id: int,
    reason: str,
    now: datetime | None = None,
) -> list[TrustEventOutcome]:
    """Reward every reporter once enough reports agree on a reason."""
    now = now or utcnow()
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT user_id FROM reports
            WHERE station_id = %s AND reason = %s AND created_at >= %s
            ORDER BY created_at
            """,
            (station_id, reason, now - TrustConstants.REPORT_CONSENSUS_WINDOW),
        )
        rows = cur.fetchall()

    if len(rows) < TrustConstants.REPORT_CONSENSUS_MIN_REPORTS:
        return []

    outcomes: list[TrustEventOutcome] = []
    seen: set[str] = set()
    for row in rows:
        reporter = row["user_id"]
        if not reporter or reporter in seen:
            continue
        seen.add(reporter)
        outcomes.append(
            try_record_event(
                reporter,
                TrustEventType.REPORT_REWARD,
                station_id=station_id,
                reason=reason,
                now=now,
            )
        )
    return outcomes
