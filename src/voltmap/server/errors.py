# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Standardized REST error responses for the Voltmap API.

All REST endpoints should use these helpers for consistent error format:
{
    "success": false,
    "error": {
        "code": "ERROR_CODE",
        "message": "Human readable message"
    }
}

Error codes follow the pattern: DOMAIN_SPECIFIC_ERROR
Examples: VALIDATION_INVALID_VALUE, AUTH_INVALID_TOKEN, NOT_FOUND_STATION

The one deliberate exception is a disabled feature, which answers with a
bare ``{"message": "Feature not available"}`` 404 so that gating cannot be
told apart from a missing route.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback

from starlette.responses import JSONResponse

from voltmap.core.exceptions import (
    FeatureDisabledError,
    NotFoundError,
    ValidationException,
    VoltmapException,
)
from voltmap.core.logging import current_request_id, new_request_id

logger = logging.getLogger(__name__)

# Debug mode: include exception details in 500 responses.
# Set VOLTMAP_DEBUG=1 to enable (default: off).
_DEBUG = os.environ.get("VOLTMAP_DEBUG", "0") == "1"

# =============================================================================
# STANDARD ERROR CODES
# =============================================================================

# Validation errors (400)
VALIDATION_MISSING_FIELD = "VALIDATION_MISSING_FIELD"
VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
VALIDATION_INVALID_VALUE = "VALIDATION_INVALID_VALUE"
VALIDATION_INVALID_JSON = "VALIDATION_INVALID_JSON"

# Authentication errors (401)
AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
AUTH_MISSING_TOKEN = "AUTH_MISSING_TOKEN"
AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"

# Authorization errors (403)
FORBIDDEN_INSUFFICIENT_PERMISSION = "FORBIDDEN_INSUFFICIENT_PERMISSION"

# Not found errors (404)
NOT_FOUND_RESOURCE = "NOT_FOUND_RESOURCE"
NOT_FOUND_STATION = "NOT_FOUND_STATION"
NOT_FOUND_REPORT = "NOT_FOUND_REPORT"

# Rate limiting (429)
RATE_LIMITED = "RATE_LIMITED"

# Server errors (500)
INTERNAL_ERROR = "INTERNAL_ERROR"

FEATURE_NOT_AVAILABLE_MESSAGE = "Feature not available"

_NOT_FOUND_CODES = {
    "Station": NOT_FOUND_STATION,
    "Report": NOT_FOUND_REPORT,
}


# =============================================================================
# ERROR RESPONSE HELPERS
# =============================================================================


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        code: Error code (e.g., VALIDATION_MISSING_FIELD)
        message: Human-readable error message
        status_code: HTTP status code (default 400)

    Returns:
        JSONResponse with standardized error format
    """
    return JSONResponse(
        {
            "success": False,
            "error": {
                "code": code,
                "message": message,
            },
        },
        status_code=status_code,
    )


def validation_error(message: str, code: str = VALIDATION_INVALID_VALUE) -> JSONResponse:
    """Create a 400 validation error response."""
    return error_response(code, message, status_code=400)


def missing_field_error(field_name: str) -> JSONResponse:
    """Create a 400 error for missing required field."""
    return error_response(
        VALIDATION_MISSING_FIELD,
        f"{field_name} is required",
        status_code=400,
    )


def invalid_format_error(field_name: str, details: str = "") -> JSONResponse:
    """Create a 400 error for invalid field format."""
    message = f"Invalid {field_name} format"
    if details:
        message = f"{message}: {details}"
    return error_response(VALIDATION_INVALID_FORMAT, message, status_code=400)


def invalid_json_error() -> JSONResponse:
    """Create a 400 error for invalid JSON body."""
    return error_response(VALIDATION_INVALID_JSON, "Invalid JSON body", status_code=400)


def auth_error(message: str = "Authentication failed", code: str = AUTH_INVALID_TOKEN) -> JSONResponse:
    """Create a 401 authentication error response."""
    return error_response(code, message, status_code=401)


def forbidden_error(message: str = "Permission denied", code: str = FORBIDDEN_INSUFFICIENT_PERMISSION) -> JSONResponse:
    """Create a 403 forbidden error response."""
    return error_response(code, message, status_code=403)


def not_found_error(resource: str, code: str = NOT_FOUND_RESOURCE) -> JSONResponse:
    """Create a 404 not found error response."""
    return error_response(code, f"{resource} not found", status_code=404)


def feature_not_available_error() -> JSONResponse:
    """Create the 404 returned while a feature flag is off."""
    return JSONResponse({"message": FEATURE_NOT_AVAILABLE_MESSAGE}, status_code=404)


def rate_limited_error(message: str = "Too many requests, please try again later") -> JSONResponse:
    """Create a 429 rate limit error response."""
    return error_response(RATE_LIMITED, message, status_code=429)


def internal_error(
    message: str = "Internal server error",
    exc: BaseException | None = None,
) -> JSONResponse:
    """Create a 500 internal error response.

    Always includes a request_id (the id of the request being served, when
    there is one) so the response can be matched to its log lines. In debug
    mode (VOLTMAP_DEBUG=1), also includes the exception type and message.

    Args:
        message: Base error message.
        exc: Optional exception to extract detail from. If None, uses the
             exception currently being handled, if any.
    """
    request_id = current_request_id() or new_request_id()

    error_body: dict = {
        "code": INTERNAL_ERROR,
        "message": message,
        "request_id": request_id,
    }

    if exc is None:
        exc = sys.exc_info()[1]

    if exc is not None:
        logger.error("request_id=%s %s: %s", request_id, type(exc).__name__, exc)
        if _DEBUG:
            error_body["exception"] = type(exc).__name__
            error_body["detail"] = str(exc)
            error_body["traceback"] = traceback.format_exception_only(type(exc), exc)[0].strip()

    return JSONResponse(
        {"success": False, "error": error_body},
        status_code=500,
    )


def exception_response(exc: VoltmapException) -> JSONResponse:
    """Map a domain exception to its HTTP error response."""
    if isinstance(exc, FeatureDisabledError):
        return feature_not_available_error()
    if isinstance(exc, NotFoundError):
        return not_found_error(exc.resource_type, code=_NOT_FOUND_CODES.get(exc.resource_type, NOT_FOUND_RESOURCE))
    if isinstance(exc, ValidationException):
        return validation_error(exc.message)
    return internal_error(exc=exc)
