# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Custom exception hierarchy for Voltmap.

Provides specific exception types for different error categories so the
HTTP layer can map each one to a status code without inspecting messages.
"""

from __future__ import annotations

from typing import Any


class VoltmapException(Exception):  # noqa: N818
    """Base exception for all Voltmap errors.

    All Voltmap-specific exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class DatabaseException(VoltmapException):
    """Exception for database-related errors.

    Raised when:
    - Database connection fails
    - The connection pool is exhausted
    - Query execution fails
    """

    pass


class ValidationException(VoltmapException):
    """Exception for validation errors.

    Raised when:
    - Input validation fails
    - Required fields are missing
    - Field values are outside their enumeration
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class InvalidInputError(ValidationException):
    """Malformed caller input (400-class, never retried)."""


class InvalidVoteError(InvalidInputError):
    """A vote outside WORKING / NOT_WORKING / BUSY."""

    def __init__(self, value: Any):
        super().__init__("Invalid vote. Must be WORKING, NOT_WORKING, or BUSY", field="vote", value=value)


class ConfigException(VoltmapException):
    """Exception for configuration errors.

    Raised when:
    - Required environment variables are missing
    - Service configuration is incomplete
    """

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []


class NotFoundError(VoltmapException):
    """Exception for resource not found errors.

    Raised when:
    - Requested station doesn't exist
    - Requested report doesn't exist
    """

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class FeatureDisabledError(VoltmapException):
    """A feature-flagged operation was called while its flag is off."""

    def __init__(self, feature: str):
        super().__init__(f"{feature} is disabled", {"feature": feature})
        self.feature = feature
