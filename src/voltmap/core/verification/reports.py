"""Report desk: user reports and moderator review."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import psycopg2

from ..db import get_cursor
from ..exceptions import DatabaseException, InvalidInputError, NotFoundError
from ..stations import flag_station_low_trust, set_station_status
from .constants import TrustConstants
from .enums import AdminStatus, ReportCondition, ReportReason, ReviewStatus
from .models import Report, utcnow
from .trust_events import reward_report_consensus

logger = logging.getLogger(__name__)


def _parse(enum_cls: type, value: Any, field: str, message: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        raise InvalidInputError(message, field=field, value=value) from e


def create_report(
    station_id: int,
    actor_id: str | None,
    status: str,
    reason: str | None = None,
    now: datetime | None = None,
) -> Report:
    """File a report against a station.

    A station with 3 or more reports is flagged as low trust. When a reason
    is given, reporters who agree on it are rewarded.

    Raises:
        InvalidInputError: Unknown status or reason
        NotFoundError: Station does not exist
    """
    condition = _parse(ReportCondition, status, "status", "Invalid report status. Must be WORKING or NOT_WORKING")
    report_reason = None
    if reason is not None:
        report_reason = _parse(
            ReportReason,
            reason,
            "reason",
            "Invalid report reason. Must be BUSY, OUT_OF_SERVICE, ACCESS_ISSUE, or NOT_FOUND",
        )
    now = now or utcnow()

    with get_cursor() as cur:
        cur.execute("SELECT id FROM stations WHERE id = %s", (station_id,))
        if cur.fetchone() is None:
            raise NotFoundError("Station", str(station_id))

        cur.execute(
            """
            INSERT INTO reports (station_id, user_id, status, reason, review_status, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                station_id,
                actor_id,
                condition.value,
                report_reason.value if report_reason else None,
                ReviewStatus.OPEN.value,
                now,
            ),
        )
        report = Report.from_row(cur.fetchone())

        cur.execute("SELECT COUNT(*) AS count FROM reports WHERE station_id = %s", (station_id,))
        report_count = cur.fetchone()["count"]

    logger.info("Report %s filed on station %s (%s)", report.id, station_id, report.reason or condition.value)

    if report_count >= TrustConstants.LOW_TRUST_REPORT_THRESHOLD:
        try:
            flag_station_low_trust(station_id)
        except (DatabaseException, psycopg2.Error):
            logger.exception("Low-trust flag failed for station %s", station_id)

    if report_reason is not None:
        try:
            reward_report_consensus(station_id, report_reason.value, now=now)
        except (DatabaseException, psycopg2.Error):
            logger.exception("Report consensus reward failed for station %s", station_id)

    return report


def count_reports(station_id: int) -> int:
    """Total reports ever filed on a station."""
    with get_cursor() as cur:
        cur.execute("SELECT COUNT(*) AS count FROM reports WHERE station_id = %s", (station_id,))
        row = cur.fetchone()
    return row["count"] if row else 0


def _station_status_after_review(report: Report, new_status: ReviewStatus) -> AdminStatus | None:
    if new_status == ReviewStatus.RESOLVED:
        return AdminStatus.OPERATIONAL
    if new_status == ReviewStatus.CONFIRMED and report.status == ReportCondition.NOT_WORKING:
        return AdminStatus.OFFLINE
    return None


def review_report(report_id: int, review_status: str, reviewer_id: str) -> Report:
    """Move a report to a new review state.

    A single UPDATE ... RETURNING: concurrent reviews do not interleave and
    the last one wins. Resolving a report puts the station back in service;
    confirming a NOT_WORKING report takes it offline. The station write
    commits or rolls back together with the review.

    Raises:
        InvalidInputError: Unknown review state
        NotFoundError: Report does not exist
    """
    new_status = _parse(ReviewStatus, review_status, "reviewStatus", "Invalid review status")

    with get_cursor() as cur:
        cur.execute(
            """
            UPDATE reports
            SET review_status = %s, reviewed_by = %s, reviewed_at = NOW(), updated_at = NOW()
            WHERE id = %s
            RETURNING *
            """,
            (new_status.value, reviewer_id, report_id),
        )
        row = cur.fetchone()
        if row is None:
            raise NotFoundError("Report", str(report_id))

        report = Report.from_row(row)
        station_status = _station_status_after_review(report, new_status)
        if station_status is not None:
            set_station_status(cur, report.station_id, station_status.value)

    logger.info("Report %s marked %s by %s", report_id, new_status.value, reviewer_id)
    return report


def list_reports_with_details() -> list[dict[str, Any]]:
    """All reports, newest first, with station and reporter details for moderators."""
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT r.*, s.name AS station_name, s.name_ar AS station_name_ar,
                   u.email AS reporter_email
            FROM reports r
            LEFT JOIN stations s ON s.id = r.station_id
            LEFT JOIN users u ON u.id = r.user_id
            ORDER BY r.created_at DESC
            """
        )
        rows = cur.fetchall()

    results = []
    for row in rows:
        item = Report.from_row(row).to_dict()
        item["stationName"] = row.get("station_name")
        item["stationNameAr"] = row.get("station_name_ar")
        item["reporterEmail"] = row.get("reporter_email")
        results.append(item)
    return results
