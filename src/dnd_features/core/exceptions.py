"""Custom exception hierarchy for dnd-features.

All exceptions inherit from DndFeaturesError so callers can handle every
failure of this package at one boundary while still seeing domain context.

Most operations in this package never raise for data-shape reasons: a bad
formula evaluates to 0, a bad patch is ignored, a bad legacy field is
reported. The exceptions below are reserved for configuration problems and
programmer errors that must fail before any state changes.

Example:
    >>> from dnd_features.core.exceptions import MissingIdentifierError
    >>> raise MissingIdentifierError("feature_id is required")
"""

from __future__ import annotations

from typing import Any


class DndFeaturesError(Exception):
    """Base exception for all dnd-features errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DndFeaturesError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


# =============================================================================
# Feature Usage Exceptions
# =============================================================================


class FeatureError(DndFeaturesError):
    """Base exception for feature usage errors.

    Raised only for programmer errors, before any usage map is modified.
    """

    def __init__(
        self,
        message: str,
        *,
        feature_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize feature error with feature context.

        Args:
            message: Human-readable error description.
            feature_id: Identifier of the feature involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if feature_id:
            combined_details["feature_id"] = feature_id
        super().__init__(message, details=combined_details)


class MissingIdentifierError(FeatureError):
    """Raised when a required identifier (feature id, class id) is empty."""


class ImmutableFieldError(FeatureError):
    """Raised when a patch tries to change a usage record's feature type."""

    def __init__(
        self,
        message: str,
        *,
        feature_id: str | None = None,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize immutable field error.

        Args:
            message: Human-readable error description.
            feature_id: Identifier of the feature involved.
            field_name: The field that cannot be changed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        super().__init__(message, feature_id=feature_id, details=combined_details)


# =============================================================================
# Definition Cache Exceptions
# =============================================================================


class CacheError(DndFeaturesError):
    """Base exception for feature definition cache errors."""


class FeatureLoaderError(CacheError):
    """Raised when the cache needs a loader but none is configured."""

    def __init__(
        self,
        message: str,
        *,
        class_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize loader error with class context.

        Args:
            message: Human-readable error description.
            class_id: Class definition id being loaded.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if class_id:
            combined_details["class_id"] = class_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Migration Exceptions
# =============================================================================


class MigrationError(DndFeaturesError):
    """Raised when a legacy field cannot be mapped into the unified usage map.

    Migration code catches this per field and per character; it is never
    propagated out of a batch.
    """

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        feature_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize migration error with character context.

        Args:
            message: Human-readable error description.
            character_id: Identifier of the character being migrated.
            feature_id: Target unified feature id.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        if feature_id:
            combined_details["feature_id"] = feature_id
        super().__init__(message, details=combined_details)


__all__ = [
    # Base exception
    "DndFeaturesError",
    # Configuration exceptions
    "ConfigurationError",
    # Feature usage exceptions
    "FeatureError",
    "MissingIdentifierError",
    "ImmutableFieldError",
    # Cache exceptions
    "CacheError",
    "FeatureLoaderError",
    # Migration exceptions
    "MigrationError",
]
