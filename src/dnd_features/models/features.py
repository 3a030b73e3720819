"""Feature definition models.

A FeatureDefinition describes one trackable class feature: its identity,
when it becomes available, and a ``config`` whose variant is selected by
the feature type. Feature types this package does not know are kept as a
``LegacyConfig`` carrying every key verbatim, so definitions written by
newer or older producers still load.

Definitions arrive as camelCase JSON from the external loader. The feature
type may sit on the definition itself or inside its config; both layouts
are accepted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, model_validator
from pydantic.alias_generators import to_camel

from dnd_features.models.enums import FeatureType, ReplenishOn

if TYPE_CHECKING:
    from dnd_features.models.character import CharacterSnapshot


# A formula is kept exactly as stored (int, token string, level list or
# breakpoint table) and only interpreted by the formula evaluator.
Formula = Any

_TRACKED_TAGS = frozenset(member.value for member in FeatureType.tracked())


def feature_type_tag(value: Any) -> str:
    """Pick the union tag for a config or usage record.

    Unknown or missing feature types map to the legacy variant.
    """
    if isinstance(value, dict):
        raw = value.get("featureType", value.get("feature_type"))
    else:
        raw = getattr(value, "feature_type", None)
    tag = str(raw) if raw is not None else ""
    return tag if tag in _TRACKED_TAGS else FeatureType.LEGACY.value


# =============================================================================
# Config Variants
# =============================================================================


class FeatureConfigBase(BaseModel):
    """Common behaviour of every config variant."""

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    feature_type: str

    @property
    def kind(self) -> FeatureType:
        """Feature type this config belongs to."""
        if self.feature_type in _TRACKED_TAGS:
            return FeatureType(self.feature_type)
        return FeatureType.LEGACY

    @property
    def limit_formula(self) -> Formula | None:
        """Formula that derives the resource cap, if the variant has one."""
        return None

    @property
    def replenish_timing(self) -> ReplenishOn | None:
        """When the resource is restored, if the variant declares it."""
        return None


class SlotConfig(FeatureConfigBase):
    """Fixed number of uses, optionally with a per-level die."""

    feature_type: Literal["slots"] = "slots"
    uses_formula: Formula = 0
    die_type: list[str] | None = Field(
        default=None,
        description="Die per level, e.g. ['d6', 'd6', 'd6', 'd6', 'd8', ...]",
    )
    replenish_on: ReplenishOn = ReplenishOn.LONG_REST
    display_style: str = "circles"

    @property
    def limit_formula(self) -> Formula:
        return self.uses_formula

    @property
    def replenish_timing(self) -> ReplenishOn:
        return self.replenish_on


class PointsPoolConfig(FeatureConfigBase):
    """Pool of points spent in variable amounts."""

    feature_type: Literal["points_pool"] = "points_pool"
    total_formula: Formula = 0
    can_spend_partial: bool = True
    replenish_on: ReplenishOn = ReplenishOn.LONG_REST
    display_style: str = "slider"
    min_spend: int = Field(default=1, ge=0)
    max_spend: int | None = Field(default=None, ge=0)

    @property
    def limit_formula(self) -> Formula:
        return self.total_formula

    @property
    def replenish_timing(self) -> ReplenishOn:
        return self.replenish_on


class OptionsListConfig(FeatureConfigBase):
    """Capped list of chosen options."""

    feature_type: Literal["options_list"] = "options_list"
    max_selections_formula: Formula = 0
    options_source: str = "custom"
    database_table: str | None = None
    allow_duplicates: bool = False
    display_style: str = "grid"
    can_swap_on_level_up: bool = False

    @property
    def limit_formula(self) -> Formula:
        return self.max_selections_formula


class SpecialUXConfig(FeatureConfigBase):
    """Feature with its own component and free-form state."""

    feature_type: Literal["special_ux"] = "special_ux"
    component_id: str = ""
    custom_config: dict[str, Any] = Field(default_factory=dict)


class AvailabilityToggleConfig(FeatureConfigBase):
    """Available / used switch."""

    feature_type: Literal["availability_toggle"] = "availability_toggle"
    default_available: bool = True
    replenish_on: ReplenishOn = ReplenishOn.LONG_REST
    display_style: str = "toggle"
    available_text: str = "Available"
    used_text: str = "Used"

    @property
    def replenish_timing(self) -> ReplenishOn:
        return self.replenish_on


class LegacyConfig(FeatureConfigBase):
    """Config of an unknown feature type, every key kept as-is."""

    feature_type: str = FeatureType.LEGACY.value


FeatureConfig = Annotated[
    Union[
        Annotated[SlotConfig, Tag("slots")],
        Annotated[PointsPoolConfig, Tag("points_pool")],
        Annotated[OptionsListConfig, Tag("options_list")],
        Annotated[SpecialUXConfig, Tag("special_ux")],
        Annotated[AvailabilityToggleConfig, Tag("availability_toggle")],
        Annotated[LegacyConfig, Tag("legacy")],
    ],
    Discriminator(feature_type_tag),
]


def inject_feature_type(data: Any) -> Any:
    """Copy a top-level featureType into a config dict that lacks one."""
    if not isinstance(data, dict):
        return data
    feature_type = data.get("featureType", data.get("feature_type"))
    config = data.get("config")
    if (
        feature_type is not None
        and isinstance(config, dict)
        and "featureType" not in config
        and "feature_type" not in config
    ):
        data = {**data, "config": {**config, "featureType": str(feature_type)}}
    return data


# =============================================================================
# Feature Definition
# =============================================================================


class FeatureDefinition(BaseModel):
    """A trackable class feature definition.

    Attributes:
        id: Stable feature identifier, e.g. 'bardic-inspiration'.
        version: Definition schema version.
        title: Display name.
        enabled_at_level: Minimum class level at which the feature applies.
        enabled_by_subclass: Subclass required for the feature, if any.
        class_name: Owning class; selects the class level used by formulas.
        config: Type-specific configuration.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(min_length=1)
    version: int = 1
    title: str = ""
    subtitle: str | None = None
    custom_description: str | None = None
    enabled_at_level: int = Field(default=1, ge=1, le=20)
    enabled_by_subclass: str | None = None
    class_name: str | None = None
    is_feat_feature: bool = False
    config: FeatureConfig

    @model_validator(mode="before")
    @classmethod
    def lift_feature_type(cls, data: Any) -> Any:
        """Move a definition-level featureType into the config."""
        data = inject_feature_type(data)
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in ("featureType", "feature_type")}
        return data

    @property
    def feature_type(self) -> FeatureType:
        """Feature type, read from the config variant."""
        return self.config.kind

    def relevant_level(self, character: CharacterSnapshot) -> int:
        """Class level when the character has the owning class, else total level."""
        if self.class_name and character.has_class(self.class_name):
            return character.class_level(self.class_name)
        return character.total_level

    def is_enabled_for(self, character: CharacterSnapshot) -> bool:
        """Check the class, level and subclass gate against a character.

        A character without any class information is gated on total level.
        """
        if self.class_name and character.all_classes() and not character.has_class(self.class_name):
            return False
        if self.relevant_level(character) < self.enabled_at_level:
            return False
        if self.enabled_by_subclass:
            subclass = character.subclass_for(self.class_name) if self.class_name else None
            if subclass is None:
                subclass = character.subclass_for()
            return (subclass or "").strip().lower() == self.enabled_by_subclass.strip().lower()
        return True


# =============================================================================
# Definition Validation
# =============================================================================


class DefinitionCheck(BaseModel):
    """Result of checking a definition for authoring mistakes."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def _is_blank(formula: Formula) -> bool:
    return formula is None or (isinstance(formula, str) and not formula.strip())


def validate_feature_definition(definition: FeatureDefinition) -> DefinitionCheck:
    """Report missing formulas, component ids and unknown types.

    Example:
        >>> check = validate_feature_definition(get_feature_template("ki-points"))
        >>> check.is_valid
        True
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not definition.title.strip():
        errors.append("Title is required")

    config = definition.config
    if isinstance(config, SlotConfig) and _is_blank(config.uses_formula):
        errors.append("Uses formula is required for slots features")
    elif isinstance(config, PointsPoolConfig) and _is_blank(config.total_formula):
        errors.append("Total formula is required for points pool features")
    elif isinstance(config, OptionsListConfig) and _is_blank(config.max_selections_formula):
        errors.append("Max selections formula is required for options list features")
    elif isinstance(config, SpecialUXConfig) and not config.component_id.strip():
        errors.append("Component ID is required for special UX features")
    elif isinstance(config, LegacyConfig):
        warnings.append(f"Unknown feature type '{config.feature_type}' is stored as legacy")

    return DefinitionCheck(is_valid=not errors, errors=errors, warnings=warnings)


__all__ = [
    "Formula",
    "feature_type_tag",
    "inject_feature_type",
    "FeatureConfigBase",
    "SlotConfig",
    "PointsPoolConfig",
    "OptionsListConfig",
    "SpecialUXConfig",
    "AvailabilityToggleConfig",
    "LegacyConfig",
    "FeatureConfig",
    "FeatureDefinition",
    "DefinitionCheck",
    "validate_feature_definition",
]
