"""Usage record models for the unified feature usage map.

Every tracked feature on a character is one record in a single map keyed
by feature id. The record's variant is selected by ``featureType``; an
unknown type is kept as ``LegacyUsage`` with all of its keys.

Records are frozen. The usage store builds new records instead of
mutating existing ones.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    model_validator,
)
from pydantic.alias_generators import to_camel

from dnd_features.models.enums import FeatureType
from dnd_features.models.features import FeatureConfig, feature_type_tag, inject_feature_type


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Selected Options
# =============================================================================


class SelectedOption(BaseModel):
    """One chosen entry of an options list feature.

    Extra flags (prerequisite, level, ...) are kept as extra fields.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    needs_attunement: bool = False

    @model_validator(mode="before")
    @classmethod
    def from_plain_id(cls, data: Any) -> Any:
        """Accept a bare id string as an option."""
        if isinstance(data, str):
            return {"id": data, "title": data}
        return data


# =============================================================================
# Usage Records
# =============================================================================


class UsageRecordBase(BaseModel):
    """Fields shared by every usage record.

    Attributes:
        feature_name: Display name of the feature.
        feature_type: Resource shape; immutable once the record exists.
        config: Definition config the record was created from.
        class_name: Owning class, selects the level used by formulas.
        legacy_source: Raw legacy payload this record was migrated from.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    feature_name: str = ""
    feature_type: str
    config: FeatureConfig | None = None
    class_name: str | None = None
    notes: str = ""
    is_feat_feature: bool = False
    enabled_at_level: int | None = None
    last_updated: str = Field(default_factory=utc_now_iso)
    legacy_source: Any = None

    @model_validator(mode="before")
    @classmethod
    def tag_config(cls, data: Any) -> Any:
        """Give an untagged stored config the record's feature type."""
        return inject_feature_type(data)

    @property
    def kind(self) -> FeatureType:
        """Feature type of this record."""
        return FeatureType(feature_type_tag(self))


class SlotsUsage(UsageRecordBase):
    """Usage of a slots feature."""

    feature_type: Literal["slots"] = "slots"
    current_uses: int = 0
    max_uses: int = 0
    last_reset: str | None = None


class PointsPoolUsage(UsageRecordBase):
    """Usage of a points pool feature."""

    feature_type: Literal["points_pool"] = "points_pool"
    current_points: int = 0
    max_points: int = 0
    last_reset: str | None = None


class OptionsListUsage(UsageRecordBase):
    """Usage of an options list feature."""

    feature_type: Literal["options_list"] = "options_list"
    selected_options: list[SelectedOption] = Field(default_factory=list)
    max_selections: int = 0


class SpecialUXUsage(UsageRecordBase):
    """Usage of a special UX feature; ``custom_state`` is never validated."""

    feature_type: Literal["special_ux"] = "special_ux"
    custom_state: dict[str, Any] = Field(default_factory=dict)


class AvailabilityToggleUsage(UsageRecordBase):
    """Usage of an availability toggle feature."""

    feature_type: Literal["availability_toggle"] = "availability_toggle"
    is_available: bool = True
    last_reset: str | None = None


class LegacyUsage(UsageRecordBase):
    """Record of an unknown feature type, kept verbatim."""

    feature_type: str = FeatureType.LEGACY.value


UsageRecord = Annotated[
    Union[
        Annotated[SlotsUsage, Tag("slots")],
        Annotated[PointsPoolUsage, Tag("points_pool")],
        Annotated[OptionsListUsage, Tag("options_list")],
        Annotated[SpecialUXUsage, Tag("special_ux")],
        Annotated[AvailabilityToggleUsage, Tag("availability_toggle")],
        Annotated[LegacyUsage, Tag("legacy")],
    ],
    Discriminator(feature_type_tag),
]

UsageMap = dict[str, UsageRecord]

_RECORD_ADAPTER: TypeAdapter[Any] = TypeAdapter(UsageRecord)
_MAP_ADAPTER: TypeAdapter[Any] = TypeAdapter(UsageMap)

RECORD_TYPES: dict[FeatureType, type[UsageRecordBase]] = {
    FeatureType.SLOTS: SlotsUsage,
    FeatureType.POINTS_POOL: PointsPoolUsage,
    FeatureType.OPTIONS_LIST: OptionsListUsage,
    FeatureType.SPECIAL_UX: SpecialUXUsage,
    FeatureType.AVAILABILITY_TOGGLE: AvailabilityToggleUsage,
    FeatureType.LEGACY: LegacyUsage,
}


def parse_usage_record(data: Any) -> UsageRecordBase:
    """Validate one stored record into its variant.

    Raises:
        pydantic.ValidationError: If the record does not fit its variant.
    """
    return _RECORD_ADAPTER.validate_python(data)


def parse_usage_map(data: Any) -> dict[str, UsageRecordBase]:
    """Validate a stored usage map (feature id -> record)."""
    return _MAP_ADAPTER.validate_python(data or {})


def dump_usage_record(record: UsageRecordBase) -> dict[str, Any]:
    """Serialize a record to its camelCase storage form."""
    return record.model_dump(mode="json", by_alias=True)


def dump_usage_map(usage_map: dict[str, UsageRecordBase]) -> dict[str, Any]:
    """Serialize a usage map to its camelCase storage form."""
    return {feature_id: dump_usage_record(record) for feature_id, record in usage_map.items()}


__all__ = [
    "utc_now_iso",
    "SelectedOption",
    "UsageRecordBase",
    "SlotsUsage",
    "PointsPoolUsage",
    "OptionsListUsage",
    "SpecialUXUsage",
    "AvailabilityToggleUsage",
    "LegacyUsage",
    "UsageRecord",
    "UsageMap",
    "RECORD_TYPES",
    "parse_usage_record",
    "parse_usage_map",
    "dump_usage_record",
    "dump_usage_map",
]
