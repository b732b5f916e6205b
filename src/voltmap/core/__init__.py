"""Voltmap Core - configuration, storage and the trust/verification engine."""

from .config import CoreSettings, get_config
from .exceptions import (
    ConfigException,
    DatabaseException,
    FeatureDisabledError,
    InvalidInputError,
    InvalidVoteError,
    NotFoundError,
    ValidationException,
    VoltmapException,
)
from .logging import configure_logging

__all__ = [
    "CoreSettings",
    "get_config",
    "VoltmapException",
    "DatabaseException",
    "ValidationException",
    "InvalidInputError",
    "InvalidVoteError",
    "ConfigException",
    "NotFoundError",
    "FeatureDisabledError",
    "configure_logging",
]
