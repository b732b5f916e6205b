"""Policy constants for the trust and verification engine."""

from __future__ import annotations

from datetime import timedelta

from .enums import TrustEventType


class TrustConstants:
    """Windows, thresholds and point values used across the engine."""

    # Recency
    RECENT_WINDOW = timedelta(minutes=30)

    # Summary
    STRONG_VERIFICATION_MIN_VOTES = 3

    # Consensus
    CONSENSUS_MIN_VOTES = 3
    CONSENSUS_WINDOW = timedelta(minutes=30)
    CONTRADICTION_LOOKBACK = timedelta(hours=24)
    CONTRADICTION_THRESHOLD = 3
    REPORT_CONSENSUS_MIN_REPORTS = 3
    REPORT_CONSENSUS_WINDOW = timedelta(hours=24)

    # Reports
    LOW_TRUST_REPORT_THRESHOLD = 3

    # Trust events
    EVENT_LOOKBACK = {
        TrustEventType.VERIFICATION_REWARD: timedelta(minutes=30),
        TrustEventType.REPORT_REWARD: timedelta(hours=24),
        TrustEventType.CONTRADICTION_PENALTY: timedelta(hours=24),
    }
    EVENT_DELTA = {
        TrustEventType.VERIFICATION_REWARD: 1,
        TrustEventType.REPORT_REWARD: 2,
        TrustEventType.CONTRADICTION_PENALTY: -1,
    }

    # Actor tiers
    NORMAL_MIN_SCORE = 5
    TRUSTED_MIN_SCORE = 10

    # Trust score: verification component
    POINTS_PER_VERIFICATION = 5
    VERIFICATION_TOTAL_CAP = 20
    VERIFICATION_RECENT_CAP = 20
    RECENT_VERIFICATION_WINDOW = timedelta(days=7)

    # Trust score: report component
    REPORT_BASE = 30
    REPORT_PENALTY_PER_OPEN = 10
    OPEN_REPORT_WINDOW = timedelta(days=30)

    # Trust score: recency component, (max days since activity, points)
    RECENCY_STEPS = (
        (1, 30),
        (3, 25),
        (7, 20),
        (14, 15),
        (30, 10),
    )
    RECENCY_FLOOR = 5

    # Trust score: labels, (min score, label)
    SCORE_BANDS = (
        (80, "Highly Trusted"),
        (60, "Trusted"),
        (40, "Moderate"),
        (20, "Low Trust"),
    )
    UNVERIFIED_LABEL = "Unverified"

    SCORE_MIN = 0
    SCORE_MAX = 100
