"""Verification ledger: the vote write path.

Votes are plain inserts; an actor may vote any number of times and every
row counts. After a vote is stored the trust policies run, community
consensus may move the station's admin status, and the station's display
status is resolved from the fresh summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import psycopg2

from ..db import get_cursor
from ..exceptions import DatabaseException, InvalidVoteError, NotFoundError
from ..stations import require_station, update_station_status
from .aggregator import summarize
from .constants import TrustConstants
from .enums import AdminStatus, PrimaryStatus, UserTrustLevel, Vote
from .models import Verification, VerificationSummary, utcnow
from .resolver import resolve_station_status
from .trust_events import (
    get_actor_trust_level,
    penalize_contradictions,
    reward_verification_consensus,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


def parse_vote(value: Any) -> Vote:
    """Validate a raw vote value."""
    try:
        return Vote(value)
    except ValueError as e:
        raise InvalidVoteError(value) from e


def _run_trust_policies(station_id: int, actor_id: str, vote: Vote, now: datetime) -> None:
    """Reward consensus and check contradictions. Failures never fail the vote."""
    try:
        reward_verification_consensus(station_id, actor_id, vote, now=now)
    except (DatabaseException, psycopg2.Error):
        logger.exception("Consensus reward failed for actor %s at station %s", actor_id, station_id)

    try:
        penalize_contradictions(actor_id, now=now)
    except (DatabaseException, psycopg2.Error):
        logger.exception("Contradiction check failed for actor %s", actor_id)


def record_vote(
    station_id: int,
    actor_id: str,
    vote: Vote | str,
    now: datetime | None = None,
    run_policies: bool = True,
) -> Verification:
    """Append a vote for a station.

    Raises:
        InvalidVoteError: Vote is not WORKING, NOT_WORKING or BUSY
        NotFoundError: Station does not exist
    """
    vote = parse_vote(vote)
    now = now or utcnow()

    with get_cursor() as cur:
        cur.execute("SELECT id FROM stations WHERE id = %s", (station_id,))
        if cur.fetchone() is None:
            raise NotFoundError("Station", str(station_id))

        cur.execute(
            """
            INSERT INTO station_verifications (station_id, user_id, vote, created_at)
            VALUES (%s, %s, %s, %s)
            RETURNING *
            """,
            (station_id, actor_id, vote.value, now),
        )
        verification = Verification.from_row(cur.fetchone())

    logger.info("Actor %s voted %s on station %s", actor_id, vote.value, station_id)

    if run_policies:
        _run_trust_policies(station_id, actor_id, vote, now)
    return verification


def display_name(first_name: str | None, email: str | None) -> str:
    """Public name for a voter: first name, else email local part."""
    if first_name:
        return first_name
    if email:
        return email.split("@", 1)[0]
    return "Anonymous"


def get_verification_history(station_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict[str, Any]]:
    """Most recent votes for a station, newest first, with voter name and tier."""
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT sv.id, sv.vote, sv.created_at,
                   u.first_name, u.email, u.user_trust_level
            FROM station_verifications sv
            LEFT JOIN users u ON u.id = sv.user_id
            WHERE sv.station_id = %s
            ORDER BY sv.created_at DESC, sv.id DESC
            LIMIT %s
            """,
            (station_id, limit),
        )
        rows = cur.fetchall()

    return [
        {
            "id": row["id"],
            "vote": row["vote"],
            "createdAt": row["created_at"].isoformat() if row["created_at"] else None,
            "userName": display_name(row.get("first_name"), row.get("email")),
            "userTrustLevel": row.get("user_trust_level") or UserTrustLevel.NEW.value,
        }
        for row in rows
    ]


# ============================================================================
# Community Consensus
# ============================================================================


def consensus_target(
    summary: VerificationSummary,
    actor_level: UserTrustLevel | str,
    vote: Vote | str,
) -> AdminStatus | None:
    """Admin status the community has settled on, or None for no change.

    A TRUSTED actor's WORKING or NOT_WORKING vote takes effect at once.
    Otherwise a type needs 3+ votes and strictly more than each other type.
    BUSY never changes the admin status.
    """
    if actor_level == UserTrustLevel.TRUSTED:
        if vote == Vote.NOT_WORKING:
            return AdminStatus.OFFLINE
        if vote == Vote.WORKING:
            return AdminStatus.OPERATIONAL
        return None

    working, not_working, busy = summary.working, summary.not_working, summary.busy
    if not_working >= TrustConstants.CONSENSUS_MIN_VOTES and not_working > working and not_working > busy:
        return AdminStatus.OFFLINE
    if working >= TrustConstants.CONSENSUS_MIN_VOTES and working > not_working and working > busy:
        return AdminStatus.OPERATIONAL
    return None


def apply_community_consensus(
    station: dict[str, Any],
    summary: VerificationSummary,
    actor_level: UserTrustLevel | str,
    vote: Vote | str,
) -> str:
    """Move the station's admin status if consensus calls for it.

    Returns the admin status after the call.
    """
    current = station.get("status")
    target = consensus_target(summary, actor_level, vote)
    if target is None or current == target:
        return current

    update_station_status(station["id"], target.value)
    logger.info(
        "Community consensus moved station %s from %s to %s",
        station["id"],
        current,
        target.value,
    )
    return target.value


@dataclass
class VoteResult:
    """Everything the vote endpoint returns.

    summary and primary_status are None when the vote was stored but the
    follow-up read failed.
    """

    verification: Verification
    summary: VerificationSummary | None = None
    primary_status: PrimaryStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "verification": self.verification.to_dict(),
            "summary": self.summary.to_dict() if self.summary is not None else None,
            "primaryStatus": self.primary_status.value if self.primary_status is not None else None,
        }


def cast_vote(
    station_id: int,
    actor_id: str,
    vote: Vote | str,
    now: datetime | None = None,
) -> VoteResult:
    """Record a vote and bring the station's derived state up to date.

    Once the vote row is committed the call does not raise: a failed
    summary or consensus step is logged and the stored vote is returned.

    Raises:
        InvalidVoteError: Vote is not WORKING, NOT_WORKING or BUSY
        NotFoundError: Station does not exist
    """
    vote = parse_vote(vote)
    now = now or utcnow()
    station = require_station(station_id)

    verification = record_vote(station_id, actor_id, vote, now=now)

    try:
        summary = summarize(station_id, now=now)
    except (DatabaseException, psycopg2.Error):
        logger.exception("Summary after vote %s failed for station %s", verification.id, station_id)
        return VoteResult(verification=verification)

    try:
        actor_level = get_actor_trust_level(actor_id)
        station["status"] = apply_community_consensus(station, summary, actor_level, vote)
    except (DatabaseException, psycopg2.Error):
        logger.exception("Community consensus check failed for station %s", station_id)

    primary = resolve_station_status(station, summary, now=now)
    return VoteResult(verification=verification, summary=summary, primary_status=primary)
