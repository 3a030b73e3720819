"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndFeaturesError: Base exception for all package errors.
        ConfigurationError: Configuration-related errors.
        MissingIdentifierError: Empty feature or class identifiers.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up log rendering from the settings.
        get_logger: Get a module logger.
        bind_context: Attach context to subsequent log lines.
"""

from __future__ import annotations

from dnd_features.core.config import (
    CacheSettings,
    MigrationSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_features.core.exceptions import (
    CacheError,
    ConfigurationError,
    DndFeaturesError,
    FeatureError,
    FeatureLoaderError,
    ImmutableFieldError,
    MigrationError,
    MissingIdentifierError,
)
from dnd_features.core.logging import (
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)


__all__ = [
    # Base exception
    "DndFeaturesError",
    # Configuration exceptions
    "ConfigurationError",
    # Feature exceptions
    "FeatureError",
    "MissingIdentifierError",
    "ImmutableFieldError",
    # Cache exceptions
    "CacheError",
    "FeatureLoaderError",
    # Migration exceptions
    "MigrationError",
    # Configuration
    "Settings",
    "CacheSettings",
    "MigrationSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
]
