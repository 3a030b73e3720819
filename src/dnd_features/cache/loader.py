"""Contract of the external feature definition loader.

The loader is owned by the caller (a database or HTTP client). Failures
are reported in the result's ``error`` field instead of being raised;
the cache passes such results through unchanged.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class ClassFeaturesResult(BaseModel):
    """Feature definitions for one class, level and subclass."""

    model_config = ConfigDict(frozen=True)

    features: list[Any] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ClassDataResult(BaseModel):
    """Class record looked up by name; ``class_data['id']`` is the class id."""

    model_config = ConfigDict(frozen=True)

    class_data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def class_id(self) -> str | None:
        if self.error is not None or not self.class_data:
            return None
        class_id = self.class_data.get("id")
        return str(class_id) if class_id else None


@runtime_checkable
class FeatureLoader(Protocol):
    """Async source of class feature definitions."""

    async def load_class_features(
        self,
        class_id: str,
        level: int,
        subclass: str | None = None,
    ) -> ClassFeaturesResult:
        """Load the features a class grants up to a level."""
        ...

    async def load_class_data(
        self,
        class_name: str,
        subclass: str | None = None,
    ) -> ClassDataResult:
        """Resolve a class name to its canonical class record."""
        ...


__all__ = [
    "ClassFeaturesResult",
    "ClassDataResult",
    "FeatureLoader",
]
