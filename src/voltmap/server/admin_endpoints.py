"""Moderation API endpoints (admin role required).

- GET   /admin/reports - All reports with station details
- PATCH /admin/reports/{id}/review - Move a report to a new review state
"""

from __future__ import annotations

import asyncio
import json
import logging

from starlette.requests import Request
from starlette.responses import JSONResponse

from voltmap.core.exceptions import VoltmapException
from voltmap.core.verification import list_reports_with_details, review_report

from .auth import ROLE_ADMIN
from .auth_helpers import authenticate, require_role
from .errors import (
    exception_response,
    internal_error,
    invalid_format_error,
    invalid_json_error,
    validation_error,
)

logger = logging.getLogger(__name__)


async def list_reports_endpoint(request: Request) -> JSONResponse:
    """List every report, newest first.

    Endpoint: GET /admin/reports
    """
    actor = authenticate(request)
    if isinstance(actor, JSONResponse):
        return actor
    if err := require_role(actor, ROLE_ADMIN):
        return err

    try:
        reports = await asyncio.to_thread(list_reports_with_details)
        logger.info("Admin %s listed %d reports", actor.actor_id, len(reports))
        return JSONResponse(reports)
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error listing reports")
        return internal_error("Internal server error")


async def review_report_endpoint(request: Request) -> JSONResponse:
    """Set a report's review state.

    Endpoint: PATCH /admin/reports/{id}/review

    Request body:
    {"reviewStatus": "open" | "resolved" | "rejected" | "confirmed"}

    Response: the updated report.
    """
    actor = authenticate(request)
    if isinstance(actor, JSONResponse):
        return actor
    if err := require_role(actor, ROLE_ADMIN):
        return err

    try:
        report_id = int(request.path_params["id"])
    except (KeyError, ValueError):
        return invalid_format_error("report id", "must be an integer")

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return invalid_json_error()
    if not isinstance(body, dict) or not body.get("reviewStatus"):
        return validation_error("Invalid review status")

    try:
        report = await asyncio.to_thread(review_report, report_id, body["reviewStatus"], actor.actor_id)
        return JSONResponse(report.to_dict())
    except VoltmapException as e:
        return exception_response(e)
    except Exception:
        logger.exception("Error reviewing report %s", report_id)
        return internal_error("Internal server error")
