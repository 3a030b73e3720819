"""dnd-features - Unified class feature tracking for D&D 5E characters.

Every limited-use class feature (Bardic Inspiration, Ki, Lay on Hands,
Eldritch Invocations, ...) is described by a data-driven definition and
tracked in a single per-character usage map instead of one bespoke field
per feature.

Example:
    >>> from dnd_features import CharacterSnapshot, get_feature_template, update_feature_usage
    >>>
    >>> bard = CharacterSnapshot(name="Lyra", class_name="Bard", level=5, charisma=16)
    >>> definition = get_feature_template("bardic-inspiration")
    >>> usage = update_feature_usage(bard, "bardic-inspiration", {"currentUses": 2}, definition)
    >>> usage["bardic-inspiration"].max_uses
    3

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for characters, definitions and usage records.
    engine: Formula evaluation, the usage store, and rest handling.
    cache: TTL cache and priority preload queue for feature definitions.
    migration: Legacy field migration and schema version upgrades.
"""

from __future__ import annotations

# Core
from dnd_features.core.config import Settings, get_settings
from dnd_features.core.exceptions import DndFeaturesError
from dnd_features.core.logging import configure_logging, get_logger

# Models
from dnd_features.models import (
    CharacterClass,
    CharacterSnapshot,
    FeatureDefinition,
    FeatureType,
    PreloadPriority,
    RestType,
    UsageMap,
    UsageRecord,
    get_feature_template,
)

# Engine
from dnd_features.engine import (
    FormulaEvaluator,
    evaluate,
    get_feature_usage,
    initialize_feature_usage,
    reset_all_feature_usage,
    update_feature_usage,
)

# Cache
from dnd_features.cache import FeatureDefinitionCache, FeatureLoader

# Migration
from dnd_features.migration import (
    MigrationBatch,
    migrate_character_to_unified_usage,
    needs_migration,
)


__version__ = "0.1.0"

__all__ = [
    # Core
    "Settings",
    "get_settings",
    "DndFeaturesError",
    "configure_logging",
    "get_logger",
    # Models
    "CharacterClass",
    "CharacterSnapshot",
    "FeatureDefinition",
    "FeatureType",
    "PreloadPriority",
    "RestType",
    "UsageMap",
    "UsageRecord",
    "get_feature_template",
    # Engine
    "FormulaEvaluator",
    "evaluate",
    "get_feature_usage",
    "initialize_feature_usage",
    "update_feature_usage",
    "reset_all_feature_usage",
    # Cache
    "FeatureDefinitionCache",
    "FeatureLoader",
    # Migration
    "MigrationBatch",
    "migrate_character_to_unified_usage",
    "needs_migration",
    "__version__",
]
