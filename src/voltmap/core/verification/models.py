"""Data models for the trust and verification engine.

Persisted records (Verification, Report, TrustEvent) are built from
RealDictCursor rows via ``from_row``. Derived read models
(VerificationSummary, TrustScore) are recomputed on every request and
never stored. ``to_dict`` produces the camelCase JSON shape served by the
HTTP layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .constants import TrustConstants
from .enums import TrustEventType, Vote


def utcnow() -> datetime:
    """Timezone-aware current time; TIMESTAMPTZ columns compare against it."""
    return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ============================================================================
# Persisted Records
# ============================================================================


@dataclass
class Verification:
    """One community vote. Append-only."""
    id: int
    station_id: int
    actor_id: str
    vote: Vote
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stationId": self.station_id,
            "userId": self.actor_id,
            "vote": self.vote.value,
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Verification:
        """Create from database row."""
        return cls(
            id=row["id"],
            station_id=row["station_id"],
            actor_id=row["user_id"],
            vote=Vote(row["vote"]),
            created_at=row["created_at"],
        )


@dataclass
class Report:
    """A user report about a station, moderated through review_status."""
    id: int
    station_id: int
    actor_id: str | None
    status: str
    reason: str | None
    review_status: str
    created_at: datetime
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stationId": self.station_id,
            "userId": self.actor_id,
            "status": self.status,
            "reason": self.reason,
            "reviewStatus": self.review_status,
            "reviewedBy": self.reviewed_by,
            "reviewedAt": _iso(self.reviewed_at),
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Report:
        """Create from database row."""
        return cls(
            id=row["id"],
            station_id=row["station_id"],
            actor_id=row.get("user_id"),
            status=row["status"],
            reason=row.get("reason"),
            review_status=row.get("review_status") or "open",
            created_at=row["created_at"],
            reviewed_by=row.get("reviewed_by"),
            reviewed_at=row.get("reviewed_at"),
        )


@dataclass
class TrustEvent:
    """A reputation delta applied to an actor. Never mutated or deleted."""
    id: str
    actor_id: str
    event_type: TrustEventType
    delta: int
    created_at: datetime
    station_id: int | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actorId": self.actor_id,
            "eventType": self.event_type.value,
            "stationId": self.station_id,
            "reason": self.reason,
            "delta": self.delta,
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> TrustEvent:
        """Create from database row."""
        return cls(
            id=str(row["id"]),
            actor_id=row["actor_id"],
            event_type=TrustEventType(row["event_type"]),
            delta=row["delta"],
            created_at=row["created_at"],
            station_id=row.get("station_id"),
            reason=row.get("reason"),
        )


@dataclass
class TrustEventOutcome:
    """Result of an idempotent trust event attempt.

    ``recorded`` is False when an equivalent event already exists inside
    the lookback window; that is a normal outcome, not an error.
    """
    recorded: bool
    event: TrustEvent | None = None


# ============================================================================
# Derived Read Models
# ============================================================================


@dataclass(frozen=True)
class VerificationSummary:
    """Vote tally for one station.

    total_votes, is_verified and is_strong_verified are derived from the
    counts, so they can never disagree with them.
    """
    working: int = 0
    not_working: int = 0
    busy: int = 0
    leading_vote: Vote | None = None
    last_verified_at: datetime | None = None

    @property
    def total_votes(self) -> int:
        return self.working + self.not_working + self.busy

    @property
    def is_verified(self) -> bool:
        return self.total_votes >= 1

    @property
    def is_strong_verified(self) -> bool:
        return (
            self.total_votes >= TrustConstants.STRONG_VERIFICATION_MIN_VOTES
            and self.leading_vote == Vote.WORKING
        )

    def count(self, vote: Vote) -> int:
        """Number of votes of the given type."""
        return {
            Vote.WORKING: self.working,
            Vote.NOT_WORKING: self.not_working,
            Vote.BUSY: self.busy,
        }[Vote(vote)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "working": self.working,
            "notWorking": self.not_working,
            "busy": self.busy,
            "totalVotes": self.total_votes,
            "leadingVote": self.leading_vote.value if self.leading_vote else None,
            "isVerified": self.is_verified,
            "isStrongVerified": self.is_strong_verified,
            "lastVerifiedAt": _iso(self.last_verified_at),
        }


@dataclass(frozen=True)
class TrustScore:
    """Bounded 0-100 station trust score with its components."""
    score: int
    label: str
    verification_score: int
    report_score: int
    recency_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "label": self.label,
            "components": {
                "verificationScore": self.verification_score,
                "reportScore": self.report_score,
                "recencyScore": self.recency_score,
            },
        }
