"""Trust and verification engine.

Turns community votes and reports into a station display status and a
0-100 trust score, and records reputation events idempotently.
"""

from .aggregator import is_recently_verified, leading_vote, summarize, summarize_votes
from .constants import TrustConstants
from .enums import (
    AdminStatus,
    PrimaryStatus,
    ReportCondition,
    ReportReason,
    ReviewStatus,
    TrustEventType,
    UserTrustLevel,
    Vote,
)
from .ledger import (
    VoteResult,
    apply_community_consensus,
    cast_vote,
    consensus_target,
    get_verification_history,
    record_vote,
)
from .models import (
    Report,
    TrustEvent,
    TrustEventOutcome,
    TrustScore,
    Verification,
    VerificationSummary,
)
from .reports import count_reports, create_report, list_reports_with_details, review_report
from .resolver import resolve_station_status, resolve_status
from .scoring import (
    ScoreInputs,
    calculate_score,
    compute_score,
    require_trust_score_enabled,
    trust_label,
)
from .trust_events import (
    get_actor_trust_level,
    penalize_contradictions,
    reward_report_consensus,
    reward_verification_consensus,
    trust_level_for,
    try_record_event,
)

__all__ = [
    # Enums
    "AdminStatus",
    "PrimaryStatus",
    "ReportCondition",
    "ReportReason",
    "ReviewStatus",
    "TrustEventType",
    "UserTrustLevel",
    "Vote",
    # Constants
    "TrustConstants",
    # Models
    "Report",
    "TrustEvent",
    "TrustEventOutcome",
    "TrustScore",
    "Verification",
    "VerificationSummary",
    "VoteResult",
    "ScoreInputs",
    # Aggregation and status
    "summarize",
    "summarize_votes",
    "leading_vote",
    "is_recently_verified",
    "resolve_status",
    "resolve_station_status",
    # Scoring
    "calculate_score",
    "compute_score",
    "require_trust_score_enabled",
    "trust_label",
    # Votes
    "record_vote",
    "cast_vote",
    "get_verification_history",
    "apply_community_consensus",
    "consensus_target",
    # Reports
    "create_report",
    "review_report",
    "count_reports",
    "list_reports_with_details",
    # Trust events
    "try_record_event",
    "reward_verification_consensus",
    "penalize_contradictions",
    "reward_report_consensus",
    "get_actor_trust_level",
    "trust_level_for",
]
