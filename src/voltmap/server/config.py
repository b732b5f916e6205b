# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Server configuration using pydantic-settings."""

from __future__ import annotations

import logging
import secrets
from importlib.metadata import PackageNotFoundError, version

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from voltmap.core.config import CoreSettings

logger = logging.getLogger(__name__)


def get_package_version() -> str:
    """Get the package version from installed metadata.

    Returns the version from pyproject.toml when installed,
    or a dev fallback when running from source without install.
    """
    try:
        return version("voltmap")
    except PackageNotFoundError:
        return "0.0.0-dev"


class ServerSettings(CoreSettings):
    """Configuration for the Voltmap HTTP API.

    Inherits core settings (DB, logging, trust feature flags) and adds
    server-specific settings (HTTP, JWT auth, CORS, rate limits).

    Settings can be configured via environment variables with VOLTMAP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="VOLTMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=8430, description="Port to bind to")
    external_url: str | None = Field(
        default=None,
        description="Public URL of the API (e.g., https://api.voltmap.example)",
    )

    # JWT authentication
    jwt_secret: str | None = Field(
        default=None,
        description="Secret for signing JWTs (REQUIRED in production - set VOLTMAP_JWT_SECRET)",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_issuer: str = Field(default="voltmap", description="Expected iss claim")
    jwt_audience: str = Field(default="voltmap-api", description="Expected aud claim")
    access_token_expiry: int = Field(
        default=86400,
        description="Access token expiry in seconds (default: 24 hours)",
    )

    # CORS settings
    allowed_origins: list[str] = Field(
        default=[],
        description="Allowed CORS origins. Empty = same-origin only. Set to ['*'] for development.",
    )

    # Rate limiting (per actor)
    vote_rate_limit: int = Field(default=30, description="Votes allowed per actor per vote window")
    vote_rate_window_seconds: int = Field(default=15 * 60, description="Vote rate limit window")
    report_rate_limit: int = Field(default=20, description="Reports allowed per actor per report window")
    report_rate_window_seconds: int = Field(default=60 * 60, description="Report rate limit window")

    server_name: str = Field(default="voltmap", description="Server name reported by /health")
    server_version: str = Field(default_factory=get_package_version, description="Server version")

    # Production mode flag (explicit override)
    production: bool = Field(
        default=False,
        description="Force production mode (stricter security requirements)",
    )

    @model_validator(mode="after")
    def validate_production_settings(self) -> ServerSettings:
        """Validate security settings for production environments.

        In production (when host is not local or external_url is set),
        require an explicit JWT secret of at least 32 characters.
        """
        is_production = (
            self.external_url is not None
            or self.host not in ("localhost", "127.0.0.1", "0.0.0.0")  # nosec B104
            or self.production
        )

        if is_production:
            if not self.jwt_secret:
                raise ValueError(
                    "VOLTMAP_JWT_SECRET is required in production mode. "
                    "Generate a secure secret with: python -c 'import secrets; print(secrets.token_hex(32))'"
                )
            elif len(self.jwt_secret) < 32:
                raise ValueError(
                    "VOLTMAP_JWT_SECRET must be at least 32 characters. "
                    "Generate a secure one with: python -c 'import secrets; print(secrets.token_hex(32))'"
                )

        # For development, generate a random secret if not provided
        if not self.jwt_secret:
            logger.warning("Auto-generating JWT secret - tokens will not persist across restarts")
            object.__setattr__(self, "jwt_secret", secrets.token_hex(32))

        return self


# Global settings instance - lazy loaded
_settings: ServerSettings | None = None


def get_settings() -> ServerSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = ServerSettings()
    return _settings


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    global _settings
    _settings = None
