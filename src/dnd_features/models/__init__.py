"""Data models for character feature usage tracking.

Exports:
    Enums: Ability, FeatureType, ReplenishOn, RestType, PreloadPriority,
        MigrationStatus.
    Character: CharacterClass, CharacterSnapshot.
    Definitions: FeatureDefinition and its config variants.
    Usage: UsageRecord variants, UsageMap, SelectedOption.
    Templates: built-in definitions for common class features.
"""

from __future__ import annotations

from dnd_features.models.character import CharacterClass, CharacterSnapshot
from dnd_features.models.enums import (
    Ability,
    FeatureType,
    MigrationStatus,
    PreloadPriority,
    ReplenishOn,
    RestType,
)
from dnd_features.models.features import (
    AvailabilityToggleConfig,
    DefinitionCheck,
    FeatureConfig,
    FeatureDefinition,
    Formula,
    LegacyConfig,
    OptionsListConfig,
    PointsPoolConfig,
    SlotConfig,
    SpecialUXConfig,
    validate_feature_definition,
)
from dnd_features.models.progression import calculate_modifier, get_proficiency_bonus
from dnd_features.models.templates import (
    FEATURE_TEMPLATES,
    get_all_feature_templates,
    get_feature_template,
    get_feature_templates_by_type,
)
from dnd_features.models.usage import (
    AvailabilityToggleUsage,
    LegacyUsage,
    OptionsListUsage,
    PointsPoolUsage,
    SelectedOption,
    SlotsUsage,
    SpecialUXUsage,
    UsageMap,
    UsageRecord,
    UsageRecordBase,
    dump_usage_map,
    parse_usage_map,
    parse_usage_record,
)


__all__ = [
    # Enums
    "Ability",
    "FeatureType",
    "ReplenishOn",
    "RestType",
    "PreloadPriority",
    "MigrationStatus",
    # Character
    "CharacterClass",
    "CharacterSnapshot",
    # Definitions
    "Formula",
    "FeatureConfig",
    "SlotConfig",
    "PointsPoolConfig",
    "OptionsListConfig",
    "SpecialUXConfig",
    "AvailabilityToggleConfig",
    "LegacyConfig",
    "FeatureDefinition",
    "DefinitionCheck",
    "validate_feature_definition",
    # Usage
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
    "parse_usage_record",
    "parse_usage_map",
    "dump_usage_map",
    # Progression
    "get_proficiency_bonus",
    "calculate_modifier",
    # Templates
    "FEATURE_TEMPLATES",
    "get_feature_template",
    "get_all_feature_templates",
    "get_feature_templates_by_type",
]
