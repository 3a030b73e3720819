"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestDndFeaturesError:
    """Tests for the base DndFeaturesError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = DndFeaturesError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = DndFeaturesError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(DndFeaturesError("Test", details={"x": 1}))
        assert "DndFeaturesError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestFeatureExceptions:
    """Tests for feature usage exceptions."""

    def test_missing_identifier_is_feature_error(self) -> None:
        """Test MissingIdentifierError carries the feature id context."""
        exc = MissingIdentifierError("feature_id is required")
        assert isinstance(exc, FeatureError)
        assert exc.details == {}

    def test_immutable_field_details(self) -> None:
        """Test ImmutableFieldError with feature and field context."""
        exc = ImmutableFieldError(
            "Feature type cannot change",
            feature_id="ki-points",
            field_name="featureType",
        )
        assert exc.details["feature_id"] == "ki-points"
        assert exc.details["field_name"] == "featureType"


class TestOtherExceptions:
    """Tests for configuration, cache and migration exceptions."""

    def test_configuration_error_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Bad value", config_key="ttl_seconds")
        assert exc.details["config_key"] == "ttl_seconds"

    def test_loader_error_is_cache_error(self) -> None:
        """Test FeatureLoaderError with class id."""
        exc = FeatureLoaderError("No loader", class_id="bard-id")
        assert isinstance(exc, CacheError)
        assert exc.details["class_id"] == "bard-id"

    def test_migration_error_context(self) -> None:
        """Test MigrationError with character and feature ids."""
        exc = MigrationError("Bad field", character_id="c-1", feature_id="lay-on-hands")
        assert exc.details == {"character_id": "c-1", "feature_id": "lay-on-hands"}


@pytest.mark.parametrize(
    "exc_class",
    [
        ConfigurationError,
        FeatureError,
        MissingIdentifierError,
        ImmutableFieldError,
        CacheError,
        FeatureLoaderError,
        MigrationError,
    ],
)
def test_all_exceptions_inherit_from_base(exc_class: type[DndFeaturesError]) -> None:
    """Test every package exception can be caught at the base class."""
    with pytest.raises(DndFeaturesError):
        raise exc_class("boom")
