# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for EduBalance.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A cached instance is provided via get_settings(); services also accept
explicit subsettings so tests can inject their own values.

Example:
    >>> from edubalance.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.balancing.ideal_utilization
    85.0
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Institution database configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "edubalance"
    password: SecretStr = SecretStr("edubalance_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "edubalance"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class BalancingSettings(BaseSettings):
    """Enrollment balancing configuration.

    Attributes:
        ideal_utilization: Utilization percentage that scores 100.
        default_target_utilization: Target used when callers pass none.
        candidate_multiplier: How many candidates to fetch per student needed.
        minutes_per_operation: Fixed completion estimate per operation.
        history_limit: Maximum operations returned by history queries.
    """

    model_config = SettingsConfigDict(
        env_prefix="BALANCING_",
        extra="ignore",
    )

    ideal_utilization: float = 85.0
    default_target_utilization: float = Field(default=85.0, gt=0, le=100)
    candidate_multiplier: int = Field(default=2, ge=1)
    minutes_per_operation: int = 5
    history_limit: int = 50


class ConflictDetectionSettings(BaseSettings):
    """Conflict detection configuration.

    Attributes:
        suspicious_window_hours: Trailing window scanned for enrollment bursts.
        suspicious_enrollment_threshold: Events a student may have in the
            window before being flagged (flagged when strictly greater).
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFLICTS_",
        extra="ignore",
    )

    suspicious_window_hours: int = Field(default=24, gt=0)
    suspicious_enrollment_threshold: int = Field(default=10, ge=0)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Database settings.
        balancing: Balancing heuristics.
        conflicts: Conflict detection thresholds.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    balancing: BalancingSettings = Field(default_factory=BalancingSettings)
    conflicts: ConflictDetectionSettings = Field(default_factory=ConflictDetectionSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == "edubalance_password":
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DB_PASSWORD environment variable."
                )
            if self.debug:
                raise ValueError("Debug mode must be disabled in production.")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
