"""Station trust score calculator.

Score (0-100) = verification (0-40) + report reliability (0-30) + recency (0-30):

    verification = min(20, 5 * all votes) + min(20, 5 * votes in last 7 days)
    report       = max(0, 30 - 10 * open reports in last 30 days)
    recency      = 30 / 25 / 20 / 15 / 10 / 5 for last activity within
                   1 / 3 / 7 / 14 / 30 days / older

Last activity is the newest of: last vote, last report, station update.
The score is recomputed on every call from stored facts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..config import get_config
from ..db import get_cursor
from ..exceptions import FeatureDisabledError, NotFoundError
from .constants import TrustConstants
from .models import TrustScore, utcnow

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class ScoreInputs:
    """Persisted facts the score is computed from."""

    total_verifications: int = 0
    recent_verifications: int = 0
    open_recent_reports: int = 0
    last_activity_at: datetime | None = None


def verification_component(total: int, recent: int) -> int:
    per_vote = TrustConstants.POINTS_PER_VERIFICATION
    return min(TrustConstants.VERIFICATION_TOTAL_CAP, per_vote * max(total, 0)) + min(
        TrustConstants.VERIFICATION_RECENT_CAP, per_vote * max(recent, 0)
    )


def report_component(open_recent_reports: int) -> int:
    penalty = TrustConstants.REPORT_PENALTY_PER_OPEN * max(open_recent_reports, 0)
    return max(0, TrustConstants.REPORT_BASE - penalty)


def recency_component(last_activity_at: datetime | None, now: datetime) -> int:
    """Step function of days since last activity; no activity scores the floor."""
    if last_activity_at is None:
        return TrustConstants.RECENCY_FLOOR
    days = (now - last_activity_at).total_seconds() / SECONDS_PER_DAY
    for max_days, points in TrustConstants.RECENCY_STEPS:
        if days <= max_days:
            return points
    return TrustConstants.RECENCY_FLOOR


def trust_label(score: int) -> str:
    """Qualitative band for a score."""
    for min_score, label in TrustConstants.SCORE_BANDS:
        if score >= min_score:
            return label
    return TrustConstants.UNVERIFIED_LABEL


def calculate_score(inputs: ScoreInputs, now: datetime | None = None) -> TrustScore:
    """Pure score calculation from already-gathered inputs."""
    now = now or utcnow()
    verification = verification_component(inputs.total_verifications, inputs.recent_verifications)
    report = report_component(inputs.open_recent_reports)
    recency = recency_component(inputs.last_activity_at, now)

    score = max(TrustConstants.SCORE_MIN, min(TrustConstants.SCORE_MAX, verification + report + recency))
    return TrustScore(
        score=score,
        label=trust_label(score),
        verification_score=verification,
        report_score=report,
        recency_score=recency,
    )


def gather_inputs(station_id: int, now: datetime | None = None) -> ScoreInputs:
    """Read the facts a station's score depends on.

    Raises:
        NotFoundError: If the station does not exist.
    """
    now = now or utcnow()
    recent_cutoff = now - TrustConstants.RECENT_VERIFICATION_WINDOW
    report_cutoff = now - TrustConstants.OPEN_REPORT_WINDOW

    with get_cursor() as cur:
        cur.execute(
            "SELECT id, created_at, updated_at FROM stations WHERE id = %s",
            (station_id,),
        )
        station = cur.fetchone()
        if station is None:
            raise NotFoundError("Station", str(station_id))

        cur.execute(
            """
            SELECT COUNT(*) AS total,
                   COUNT(*) FILTER (WHERE created_at >= %s) AS recent,
                   MAX(created_at) AS last_at
            FROM station_verifications
            WHERE station_id = %s
            """,
            (recent_cutoff, station_id),
        )
        votes = cur.fetchone()

        cur.execute(
            """
            SELECT COUNT(*) FILTER (WHERE review_status = 'open' AND created_at >= %s) AS open_recent,
                   MAX(created_at) AS last_at
            FROM reports
            WHERE station_id = %s
            """,
            (report_cutoff, station_id),
        )
        reports = cur.fetchone()

    candidates = [
        station.get("updated_at") or station.get("created_at"),
        votes["last_at"],
        reports["last_at"],
    ]
    activity = [ts for ts in candidates if ts is not None]

    return ScoreInputs(
        total_verifications=votes["total"] or 0,
        recent_verifications=votes["recent"] or 0,
        open_recent_reports=reports["open_recent"] or 0,
        last_activity_at=max(activity) if activity else None,
    )


def require_trust_score_enabled() -> None:
    """Raise FeatureDisabledError while TRUST_SCORE_ENABLED is off."""
    if not get_config().trust_score_enabled:
        raise FeatureDisabledError("Trust score")


def compute_score(station_id: int, now: datetime | None = None) -> TrustScore:
    """Compute a station's trust score.

    Raises:
        NotFoundError: If the station does not exist.
    """
    now = now or utcnow()
    inputs = gather_inputs(station_id, now)
    result = calculate_score(inputs, now)
    logger.debug(
        "Trust score for station %s: %d (%s) from %s",
        station_id,
        result.score,
        result.label,
        inputs,
    )
    return result
