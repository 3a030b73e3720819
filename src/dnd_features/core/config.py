"""Configuration management for dnd-features.

This module provides centralized configuration using pydantic-settings,
supporting environment variables, .env files, and runtime overrides.

Example:
    >>> from dnd_features.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.cache.ttl_seconds
    300.0

Environment Variables:
    DND_FEATURES_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DND_FEATURES_JSON_LOGS: Emit JSON log lines instead of console output
    DND_FEATURES_CACHE_TTL_SECONDS: Lifetime of a cached definition entry
    DND_FEATURES_CACHE_PRELOAD_BATCH_SIZE: Concurrent loads per preload batch
    DND_FEATURES_MIGRATION_PERSIST_MAX_ATTEMPTS: Save attempts per migrated character
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_features.core.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CLEANUP_INTERVAL_SECONDS,
    DEFAULT_PRELOAD_BATCH_SIZE,
)
from dnd_features.core.exceptions import ConfigurationError


class CacheSettings(BaseSettings):
    """Configuration for the feature definition cache.

    Attributes:
        ttl_seconds: How long a cached definition entry stays readable.
        cleanup_interval_seconds: Period of the background expiry sweep.
        preload_batch_size: Maximum concurrent loader calls per preload batch.
        preload_batch_delay_seconds: Pause between preload batches.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_FEATURES_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ttl_seconds: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        gt=0,
        description="Lifetime of a cached definition entry",
    )
    cleanup_interval_seconds: float = Field(
        default=DEFAULT_CLEANUP_INTERVAL_SECONDS,
        gt=0,
        description="Period of the background expiry sweep",
    )
    preload_batch_size: int = Field(
        default=DEFAULT_PRELOAD_BATCH_SIZE,
        ge=1,
        le=20,
        description="Concurrent loader calls per preload batch",
    )
    preload_batch_delay_seconds: float = Field(
        default=0.1,
        ge=0,
        description="Pause between preload batches",
    )

    @model_validator(mode="after")
    def validate_batch_delay(self) -> "CacheSettings":
        """Ensure the batch pause cannot outlive cached entries.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If preload_batch_delay_seconds >= ttl_seconds.
        """
        if self.preload_batch_delay_seconds >= self.ttl_seconds:
            raise ConfigurationError(
                f"preload_batch_delay_seconds ({self.preload_batch_delay_seconds}) "
                f"must be less than ttl_seconds ({self.ttl_seconds})",
                config_key="preload_batch_delay_seconds",
            )
        return self


class MigrationSettings(BaseSettings):
    """Configuration for batch migration to the unified usage map.

    Attributes:
        persist_max_attempts: Attempts to save one migrated character.
        persist_retry_multiplier: Exponential backoff multiplier in seconds.
        persist_retry_max_wait: Upper bound on a single backoff wait.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_FEATURES_MIGRATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    persist_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Save attempts per migrated character",
    )
    persist_retry_multiplier: float = Field(
        default=1.0,
        ge=0,
        description="Backoff multiplier between save attempts",
    )
    persist_retry_max_wait: float = Field(
        default=10.0,
        ge=0,
        le=300,
        description="Maximum wait between save attempts",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name, attached to every log line.
        log_level: Application logging level.
        json_logs: Render logs as JSON.
        cache: Feature definition cache settings.
        migration: Migration batch settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_FEATURES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D Feature Usage Tracker",
        description="Application name",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    cache: CacheSettings = Field(default_factory=CacheSettings)
    migration: MigrationSettings = Field(default_factory=MigrationSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "CacheSettings",
    "MigrationSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
