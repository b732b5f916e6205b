"""Station status resolver.

Combines a verification summary with station metadata into exactly one
PrimaryStatus. The precedence lives in ``STATUS_RULES``: an ordered list of
(name, predicate, result) evaluated top to bottom, first match wins. Every
caller that needs a display status goes through ``resolve_status``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .aggregator import is_recently_verified
from .enums import AdminStatus, PrimaryStatus, Vote
from .models import VerificationSummary, utcnow


@dataclass(frozen=True)
class StatusInputs:
    """Everything a rule may look at."""

    summary: VerificationSummary
    admin_status: str | None
    available_chargers: int | None
    total_chargers: int | None
    recent: bool

    @property
    def fully_occupied(self) -> bool:
        return (self.total_chargers or 0) > 0 and self.available_chargers == 0

    @property
    def recent_busy(self) -> bool:
        return self.recent and self.summary.total_votes > 0 and self.summary.leading_vote == Vote.BUSY


StatusRule = tuple[str, Callable[[StatusInputs], bool], PrimaryStatus]

STATUS_RULES: list[StatusRule] = [
    # Admin override
    ("admin_offline", lambda s: s.admin_status == AdminStatus.OFFLINE, PrimaryStatus.NOT_WORKING),
    # Live occupancy beats votes
    ("no_free_chargers", lambda s: s.fully_occupied, PrimaryStatus.BUSY),
    ("operational_recent_busy", lambda s: s.admin_status == AdminStatus.OPERATIONAL and s.recent_busy, PrimaryStatus.BUSY),
    ("operational", lambda s: s.admin_status == AdminStatus.OPERATIONAL, PrimaryStatus.WORKING),
    # Any other admin status: only fresh votes count
    ("recent_busy", lambda s: s.recent_busy, PrimaryStatus.BUSY),
    ("fallback", lambda s: True, PrimaryStatus.NOT_RECENTLY_VERIFIED),
]


def resolve_status(
    summary: VerificationSummary,
    admin_status: str | None,
    available_chargers: int | None,
    total_chargers: int | None,
    now: datetime | None = None,
) -> PrimaryStatus:
    """Map a summary plus station metadata to a display status.

    Pure and total: every input combination matches exactly one rule.
    """
    inputs = StatusInputs(
        summary=summary,
        admin_status=admin_status,
        available_chargers=available_chargers,
        total_chargers=total_chargers,
        recent=is_recently_verified(summary, now or utcnow()),
    )
    for _name, predicate, result in STATUS_RULES:
        if predicate(inputs):
            return result
    return PrimaryStatus.NOT_RECENTLY_VERIFIED


def resolve_station_status(
    station: dict[str, Any],
    summary: VerificationSummary,
    now: datetime | None = None,
) -> PrimaryStatus:
    """resolve_status() fed from a station row."""
    return resolve_status(
        summary,
        admin_status=station.get("status"),
        available_chargers=station.get("available_chargers"),
        total_chargers=station.get("charger_count"),
        now=now,
    )
