"""Character snapshot consumed by the feature usage core.

The snapshot is a read model supplied by the caller. It carries the
attributes formulas depend on, the unified feature usage map, and the
legacy per-feature fields that migration folds into that map.

Legacy fields are typed loosely on purpose: a malformed legacy value must
never prevent the character from loading. Migration validates each one
separately.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from dnd_features.core.constants import (
    DEFAULT_ABILITY_SCORE,
    LEGACY_SCHEMA_VERSION,
    MAX_ABILITY_SCORE,
    MIN_ABILITY_SCORE,
)
from dnd_features.models.enums import Ability
from dnd_features.models.progression import calculate_modifier, get_proficiency_bonus
from dnd_features.models.usage import UsageMap


# =============================================================================
# Type Definitions
# =============================================================================


AbilityScore = Annotated[
    int,
    Field(ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, description="D&D ability score (1-30)"),
]
Level = Annotated[int, Field(ge=1, le=20, description="Character level (1-20)")]


class CharacterClass(BaseModel):
    """A class and level pair on a multiclass character."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    name: str = Field(description="Class name, e.g. 'Bard'")
    level: Level = Field(default=1)
    subclass: str | None = Field(default=None)
    class_id: str | None = Field(default=None, description="Canonical class definition id")


class CharacterSnapshot(BaseModel):
    """Immutable view of a character for feature usage operations.

    Single-class characters may only fill the legacy ``class_name`` /
    ``level`` fields; multiclass characters fill ``classes``. All derived
    values prefer ``classes`` when present.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(default="", description="Character identifier")
    name: str = Field(default="", description="Character name")

    strength: AbilityScore = DEFAULT_ABILITY_SCORE
    dexterity: AbilityScore = DEFAULT_ABILITY_SCORE
    constitution: AbilityScore = DEFAULT_ABILITY_SCORE
    intelligence: AbilityScore = DEFAULT_ABILITY_SCORE
    wisdom: AbilityScore = DEFAULT_ABILITY_SCORE
    charisma: AbilityScore = DEFAULT_ABILITY_SCORE

    # Legacy single-class fields
    class_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("class_name", "className", "class"),
    )
    subclass: str | None = None
    class_id: str | None = None
    level: Level | None = None

    classes: list[CharacterClass] = Field(default_factory=list)
    proficiency_bonus: int | None = Field(
        default=None,
        ge=0,
        description="Explicit override of the level-derived proficiency bonus",
    )

    feature_usage: UsageMap = Field(
        default_factory=dict,
        validation_alias=AliasChoices(
            "feature_usage", "featureUsage", "classFeatureSkillsUsage"
        ),
    )
    schema_version: int = Field(default=LEGACY_SCHEMA_VERSION, ge=1)

    # Legacy per-feature storage, validated by migration
    spell_data: Any = None
    infusions: Any = None
    infusion_notes: Any = None
    eldritch_cannon: Any = None
    bardic_inspiration_used: Any = None

    @model_validator(mode="after")
    def refresh_stored_limits(self) -> CharacterSnapshot:
        """Recompute stored caps from each record's config and clamp into them.

        Stored ``maxUses`` / ``maxPoints`` / ``maxSelections`` are never
        trusted.
        """
        if not self.feature_usage:
            return self
        # Deferred: the usage store depends on this module
        from dnd_features.engine.usage_store import refresh_feature_maxima

        refreshed = refresh_feature_maxima(self)
        if any(refreshed[fid] is not record for fid, record in self.feature_usage.items()):
            object.__setattr__(self, "feature_usage", refreshed)
        return self

    @computed_field(description="Total character level")
    @property
    def total_level(self) -> int:
        if self.classes:
            return max(1, sum(c.level for c in self.classes))
        return self.level or 1

    def _matching_classes(self, class_name: str) -> list[CharacterClass]:
        wanted = class_name.strip().lower()
        if self.classes:
            return [c for c in self.classes if c.name.strip().lower() == wanted]
        if self.class_name and self.class_name.strip().lower() == wanted:
            return [
                CharacterClass(
                    name=self.class_name,
                    level=self.level or 1,
                    subclass=self.subclass,
                    class_id=self.class_id,
                )
            ]
        return []

    def has_class(self, class_name: str) -> bool:
        """Check whether the character has levels in a class."""
        return bool(self._matching_classes(class_name))

    def class_level(self, class_name: str) -> int:
        """Get levels in one class (0 if the character lacks it)."""
        return sum(c.level for c in self._matching_classes(class_name))

    def subclass_for(self, class_name: str | None = None) -> str | None:
        """Get the subclass of a class, or of the primary class if none is given."""
        if class_name is None:
            if self.classes:
                return self.classes[0].subclass
            return self.subclass
        for character_class in self._matching_classes(class_name):
            if character_class.subclass:
                return character_class.subclass
        return None

    def all_classes(self) -> list[CharacterClass]:
        """Get the character's classes, folding legacy fields into one entry."""
        if self.classes:
            return list(self.classes)
        if self.class_name:
            return self._matching_classes(self.class_name)
        return []

    def proficiency_bonus_for(self, level: int) -> int:
        """Get the proficiency bonus at a level.

        An explicit ``proficiency_bonus`` overrides the table for the
        character's own total level.
        """
        if self.proficiency_bonus is not None and level == self.total_level:
            return self.proficiency_bonus
        return get_proficiency_bonus(level)

    def ability_score(self, ability: Ability) -> int:
        """Get the raw score for an ability."""
        return getattr(self, ability.value)

    def ability_modifier(self, ability: Ability) -> int:
        """Get the (possibly negative) modifier for an ability."""
        return calculate_modifier(self.ability_score(ability))


__all__ = [
    "AbilityScore",
    "Level",
    "CharacterClass",
    "CharacterSnapshot",
]
