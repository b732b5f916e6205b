"""Station verification and trust API endpoints.

Provides REST endpoints for the community verification read and write paths:
- GET  /stations/{id}/verification-summary - Vote tally for a station
- GET  /stations/{id}/verification-history - Recent votes with voter name and tier
- GET  /stations/{id}/status - Resolved display status plus summary
- GET  /stations/{id}/trust-score - 0-100 trust score (feature-flagged)
- POST /stations/{id}/verify - Cast a vote
- POST /stations/{id}/reports - File a report
- GET  /stations/{id}/reports/count - Number of reports on a station
- GET  /users/{id}/trust-level - Actor reputation tier
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from voltmap.core.exceptions import VoltmapException
from voltmap.core.stations import get_station, is_publicly_visible
from voltmap.core.verification import (
    cast_vote,
    compute_score,
    count_reports,
    create_report,
    get_actor_trust_level,
    get_verification_history,
    require_trust_score_enabled,
    resolve_station_status,
    summarize,
)

from .auth_helpers import authenticate
from .config import get_settings
from .errors import (
    NOT_FOUND_STATION,
    exception_response,
    internal_error,
    invalid_format_error,
    invalid_json_error,
    missing_field_error,
    not_found_error,
    rate_limited_error,
    validation_error,
)
from .rate_limit import check_rate_limit

logger = logging.getLogger(__name__)

INVALID_VOTE_MESSAGE = "Invalid vote. Must be WORKING, NOT_WORKING, or BUSY"
MAX_HISTORY_LIMIT = 100


def _station_id(request: Request) -> int | JSONResponse:
    try:
        return int(request.path_params["id"])
    except (KeyError, TypeError, ValueError):
        return invalid_format_error("station id", "must be an integer")


def _visible_station(station_id: int) -> dict[str, Any] | None:
    """Station row if it exists and the public may see it."""
    station = get_station(station_id)
    if station is None or not is_publicly_visible(station):
        return None
    return station


async def _json_body(request: Request) -> dict[str, Any] | JSONResponse:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return invalid_json_error()
    if not isinstance(body, dict):
        return invalid_json_error()
    return body


# =============================================================================
# READ PATH
# =============================================================================


async def verification_summary_endpoint(request: Request) -> JSONResponse:
    """Get the vote summary for a station.

    Endpoint: GET /stations/{id}/verification-summary

    Response:
    {
        "working": 4,
        "notWorking": 1,
        "busy": 0,
        "totalVotes": 5,
        "leadingVote": "WORKING",
        "isVerified": true,
        "isStrongVerified": true,
        "lastVerifiedAt": "2026-01-10T12:00:00+00:00"
    }
    """
    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    try:
        if await asyncio.to_thread(_visible_station, station_id) is None:
            return not_found_error("Station", code=NOT_FOUND_STATION)
        summary = await asyncio.to_thread(summarize, station_id)
        return JSONResponse(summary.to_dict())
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error summarizing votes for station %s", station_id)
        return internal_error("Internal server error")


async def verification_history_endpoint(request: Request) -> JSONResponse:
    """Get recent votes for a station, newest first.

    Query params:
    - limit: Max results (default 20, max 100)

    Endpoint: GET /stations/{id}/verification-history
    """
    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    try:
        limit = int(request.query_params.get("limit", 20))
    except ValueError:
        return invalid_format_error("limit", "must be an integer")
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))

    try:
        if await asyncio.to_thread(_visible_station, station_id) is None:
            return not_found_error("Station", code=NOT_FOUND_STATION)
        history = await asyncio.to_thread(get_verification_history, station_id, limit=limit)
        return JSONResponse(history)
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error loading verification history for station %s", station_id)
        return internal_error("Internal server error")


async def station_status_endpoint(request: Request) -> JSONResponse:
    """Get the resolved display status of a station.

    Endpoint: GET /stations/{id}/status

    Response:
    {
        "stationId": 12,
        "primaryStatus": "BUSY",
        "summary": {...}
    }
    """
    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    try:
        station = await asyncio.to_thread(_visible_station, station_id)
        if station is None:
            return not_found_error("Station", code=NOT_FOUND_STATION)

        summary = await asyncio.to_thread(summarize, station_id)
        primary = resolve_station_status(station, summary)
        return JSONResponse(
            {
                "stationId": station_id,
                "primaryStatus": primary.value,
                "summary": summary.to_dict(),
            }
        )
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error resolving status for station %s", station_id)
        return internal_error("Internal server error")


async def trust_score_endpoint(request: Request) -> JSONResponse:
    """Get the trust score of a station.

    Returns a bare 404 {"message": "Feature not available"} while
    TRUST_SCORE_ENABLED is off.

    Endpoint: GET /stations/{id}/trust-score

    Response:
    {
        "score": 80,
        "label": "Highly Trusted",
        "components": {"verificationScore": 40, "reportScore": 30, "recencyScore": 10}
    }
    """
    try:
        require_trust_score_enabled()
    except VoltmapException as e:
        return exception_response(e)

    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    try:
        if await asyncio.to_thread(_visible_station, station_id) is None:
            return not_found_error("Station", code=NOT_FOUND_STATION)
        score = await asyncio.to_thread(compute_score, station_id)
        return JSONResponse(score.to_dict())
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error computing trust score for station %s", station_id)
        return internal_error("Internal server error")


async def report_count_endpoint(request: Request) -> JSONResponse:
    """Get the number of reports filed on a station.

    Endpoint: GET /stations/{id}/reports/count
    """
    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    try:
        count = await asyncio.to_thread(count_reports, station_id)
        return JSONResponse({"count": count})
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error counting reports for station %s", station_id)
        return internal_error("Internal server error")


async def user_trust_level_endpoint(request: Request) -> JSONResponse:
    """Get an actor's reputation tier for badge display.

    Endpoint: GET /users/{id}/trust-level
    """
    actor_id = request.path_params.get("id")
    if not actor_id:
        return missing_field_error("id")

    try:
        level = await asyncio.to_thread(get_actor_trust_level, actor_id)
        return JSONResponse({"trustLevel": level.value})
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error loading trust level for %s", actor_id)
        return internal_error("Internal server error")


# =============================================================================
# WRITE PATH
# =============================================================================


async def verify_station_endpoint(request: Request) -> JSONResponse:
    """Cast a community vote on a station.

    Hidden and unapproved stations answer 404, as on the read path.

    Endpoint: POST /stations/{id}/verify

    Request body:
    {"vote": "WORKING" | "NOT_WORKING" | "BUSY"}

    Response (201):
    {
        "verification": {...},
        "summary": {...},
        "primaryStatus": "WORKING"
    }
    """
    actor = authenticate(request)
    if isinstance(actor, JSONResponse):
        return actor

    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    if "vote" not in body:
        return validation_error(INVALID_VOTE_MESSAGE)

    settings = get_settings()
    if not check_rate_limit("vote", actor.actor_id, settings.vote_rate_limit, settings.vote_rate_window_seconds):
        return rate_limited_error("Too many verification attempts, please try again later")

    try:
        if await asyncio.to_thread(_visible_station, station_id) is None:
            return not_found_error("Station", code=NOT_FOUND_STATION)
        result = await asyncio.to_thread(cast_vote, station_id, actor.actor_id, body["vote"])
        return JSONResponse(result.to_dict(), status_code=201)
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error recording vote on station %s", station_id)
        return internal_error("Internal server error")


async def create_report_endpoint(request: Request) -> JSONResponse:
    """File a report about a station.

    Endpoint: POST /stations/{id}/reports

    Request body:
    {"status": "WORKING" | "NOT_WORKING", "reason": "OUT_OF_SERVICE"}
    """
    actor = authenticate(request)
    if isinstance(actor, JSONResponse):
        return actor

    station_id = _station_id(request)
    if isinstance(station_id, JSONResponse):
        return station_id

    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    if not body.get("status"):
        return missing_field_error("status")

    settings = get_settings()
    if not check_rate_limit(
        "report", actor.actor_id, settings.report_rate_limit, settings.report_rate_window_seconds
    ):
        return rate_limited_error("Too many reports, please try again later")

    try:
        report = await asyncio.to_thread(create_report, station_id, actor.actor_id, body["status"], body.get("reason"))
        return JSONResponse(report.to_dict(), status_code=201)
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error filing report on station %s", station_id)
        return internal_error("Internal server error")
