"""Core configuration - centralized config for the voltmap package.

All environment-based configuration should flow through this module.
This provides a single source of truth and consistent defaults.

Usage:
    from voltmap.core.config import get_config
    config = get_config()

    # Access settings
    db_host = config.db_host
    if config.trust_score_enabled:
        ...
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Core configuration settings for Voltmap.

    Settings can be configured via environment variables. Most use the
    VOLTMAP_ prefix; the trust score feature flag keeps its historical
    unprefixed name (TRUST_SCORE_ENABLED) so it can be toggled without
    code or config-file changes.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # DATABASE SETTINGS
    # ==========================================================================

    db_host: str = Field(
        default="localhost",
        description="Database host",
        validation_alias="VOLTMAP_DB_HOST",
    )
    db_port: int = Field(
        default=5432,
        description="Database port",
        validation_alias="VOLTMAP_DB_PORT",
    )
    db_name: str = Field(
        default="voltmap",
        description="Database name",
        validation_alias="VOLTMAP_DB_NAME",
    )
    db_user: str = Field(
        default="voltmap",
        description="Database user",
        validation_alias="VOLTMAP_DB_USER",
    )
    db_password: str = Field(
        default="",
        description="Database password",
        validation_alias="VOLTMAP_DB_PASSWORD",
    )

    # Connection pool settings
    db_pool_min: int = Field(
        default=2,
        description="Minimum pool connections",
        validation_alias="VOLTMAP_DB_POOL_MIN",
    )
    db_pool_max: int = Field(
        default=20,
        description="Maximum pool connections",
        validation_alias="VOLTMAP_DB_POOL_MAX",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="VOLTMAP_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="VOLTMAP_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="VOLTMAP_LOG_FILE",
    )

    # ==========================================================================
    # TRUST / VERIFICATION SETTINGS
    # ==========================================================================

    trust_score_enabled: bool = Field(
        default=False,
        description="Expose the station trust score endpoint",
        validation_alias="TRUST_SCORE_ENABLED",
    )
    verification_lookback_days: int | None = Field(
        default=None,
        gt=0,
        description="Bound the vote rows a summary reads (None = all history)",
        validation_alias="VOLTMAP_VERIFICATION_LOOKBACK_DAYS",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def connection_params(self) -> dict:
        """Get database connection parameters dict."""
        return {
            "host": self.db_host,
            "port": self.db_port,
            "dbname": self.db_name,
            "user": self.db_user,
            "password": self.db_password,
        }

    @property
    def pool_config(self) -> dict:
        """Get connection pool configuration."""
        return {
            "minconn": self.db_pool_min,
            "maxconn": self.db_pool_max,
        }


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
