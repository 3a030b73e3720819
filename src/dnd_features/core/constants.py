"""Constants for dnd-features.

D&D 5E rules constants, cache defaults and the unified usage schema version.
"""

from __future__ import annotations

# =============================================================================
# D&D 5E Rules Constants
# =============================================================================

MIN_CHARACTER_LEVEL = 1
"""Minimum character level."""

MAX_CHARACTER_LEVEL = 20
"""Maximum character level in D&D 5E."""

MIN_ABILITY_SCORE = 1
"""Minimum ability score."""

MAX_ABILITY_SCORE = 30
"""Maximum ability score (monsters and epic boons)."""

DEFAULT_ABILITY_SCORE = 10
"""Ability score used when a character carries none."""

DEFAULT_PROFICIENCY_BONUS = 2
"""Proficiency bonus for levels 1-4."""

# Proficiency bonus thresholds (PHB p.15): minimum level -> bonus
PROFICIENCY_BONUS_BY_LEVEL: dict[int, int] = {
    1: 2,
    5: 3,
    9: 4,
    13: 5,
    17: 6,
}

# =============================================================================
# Definition Cache
# =============================================================================

DEFAULT_CACHE_TTL_SECONDS = 300.0
"""Lifetime of a cached feature definition entry (5 minutes)."""

DEFAULT_CLEANUP_INTERVAL_SECONDS = 600.0
"""Period of the background expiry sweep (10 minutes)."""

DEFAULT_PRELOAD_BATCH_SIZE = 3
"""Concurrent loader calls per preload batch."""

NULL_SUBCLASS_KEY = "null"
"""Cache key segment used when no subclass is given."""

# =============================================================================
# Unified Usage Schema
# =============================================================================

LEGACY_SCHEMA_VERSION = 1
"""Characters that only carry per-feature legacy fields."""

CURRENT_SCHEMA_VERSION = 3
"""Characters whose legacy fields are all mirrored in the unified map."""


__all__ = [
    "MIN_CHARACTER_LEVEL",
    "MAX_CHARACTER_LEVEL",
    "MIN_ABILITY_SCORE",
    "MAX_ABILITY_SCORE",
    "DEFAULT_ABILITY_SCORE",
    "DEFAULT_PROFICIENCY_BONUS",
    "PROFICIENCY_BONUS_BY_LEVEL",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_CLEANUP_INTERVAL_SECONDS",
    "DEFAULT_PRELOAD_BATCH_SIZE",
    "NULL_SUBCLASS_KEY",
    "LEGACY_SCHEMA_VERSION",
    "CURRENT_SCHEMA_VERSION",
]
