"""Enums for the trust and verification engine.

Contains the vote, status, moderation and reputation enumerations.
Values match what is stored in the database columns.
"""

from enum import Enum


class Vote(str, Enum):
    """A community vote on a station's condition.

    Declaration order is the leading-vote tie-break order.
    """
    WORKING = "WORKING"
    NOT_WORKING = "NOT_WORKING"
    BUSY = "BUSY"


class PrimaryStatus(str, Enum):
    """The single display state shown for a station."""
    WORKING = "WORKING"
    BUSY = "BUSY"
    NOT_WORKING = "NOT_WORKING"
    NOT_RECENTLY_VERIFIED = "NOT_RECENTLY_VERIFIED"


class AdminStatus(str, Enum):
    """Operational status set by admins (or by community consensus)."""
    OPERATIONAL = "OPERATIONAL"
    MAINTENANCE = "MAINTENANCE"
    OFFLINE = "OFFLINE"


class ReviewStatus(str, Enum):
    """Moderation state of a report."""
    OPEN = "open"
    RESOLVED = "resolved"        # Problem fixed, station back in service
    REJECTED = "rejected"        # Report was wrong or spam
    CONFIRMED = "confirmed"      # Moderator agrees with the reporter


class ReportCondition(str, Enum):
    """Condition a reporter observed."""
    WORKING = "WORKING"
    NOT_WORKING = "NOT_WORKING"


class ReportReason(str, Enum):
    """Why a station was reported."""
    BUSY = "BUSY"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    ACCESS_ISSUE = "ACCESS_ISSUE"
    NOT_FOUND = "NOT_FOUND"


class TrustEventType(str, Enum):
    """Kind of reputation-affecting event."""
    VERIFICATION_REWARD = "verification_reward"      # Vote agreed with consensus
    REPORT_REWARD = "report_reward"                  # Report agreed with other reporters
    CONTRADICTION_PENALTY = "contradiction_penalty"  # Repeatedly voted against consensus


class UserTrustLevel(str, Enum):
    """Reputation tier of an actor."""
    NEW = "NEW"
    NORMAL = "NORMAL"
    TRUSTED = "TRUSTED"
