"""D&D 5E level progression data used by feature formulas.

Proficiency bonus by level, ability modifiers, and the per-level tables
that the built-in feature templates reference.
"""

from __future__ import annotations

from dnd_features.core.constants import (
    DEFAULT_PROFICIENCY_BONUS,
    MAX_CHARACTER_LEVEL,
    PROFICIENCY_BONUS_BY_LEVEL,
)

# =============================================================================
# Proficiency Bonus by Level (PHB p.15)
# =============================================================================


def get_proficiency_bonus(level: int) -> int:
    """Get proficiency bonus for a given level."""
    bonus = DEFAULT_PROFICIENCY_BONUS
    for threshold, value in sorted(PROFICIENCY_BONUS_BY_LEVEL.items()):
        if level >= threshold:
            bonus = value
    return bonus


def calculate_modifier(score: int) -> int:
    """Calculate ability modifier from score (may be negative)."""
    return (score - 10) // 2


def clamp_level(level: int) -> int:
    """Clamp a level into 1-20."""
    return max(1, min(MAX_CHARACTER_LEVEL, level))


# =============================================================================
# Per-level Tables
# =============================================================================

# Warlock invocations known, indexed by warlock level - 1
WARLOCK_INVOCATIONS_KNOWN: list[int] = [
    0, 2, 2, 2, 3, 3, 4, 4, 5, 5, 5, 5, 6, 6, 7, 7, 7, 7, 8, 8,
]

# Artificer infusions known, indexed by artificer level - 1
ARTIFICER_INFUSIONS_KNOWN: list[int] = [
    0, 0, 4, 4, 4, 4, 6, 6, 6, 6, 8, 8, 8, 8, 10, 10, 10, 10, 12, 12,
]

# Lay on Hands pool (5 x paladin level), indexed by paladin level - 1
LAY_ON_HANDS_POOL: list[int] = [5 * level for level in range(1, MAX_CHARACTER_LEVEL + 1)]

# Ki points / sorcery points equal class level from 2nd level
CLASS_LEVEL_POOL: list[int] = [0] + list(range(2, MAX_CHARACTER_LEVEL + 1))

# Channel Divinity uses: minimum class level -> uses
CHANNEL_DIVINITY_USES: dict[int, int] = {2: 1, 6: 2, 18: 3}

# Metamagic options known: minimum sorcerer level -> options
METAMAGIC_KNOWN: dict[int, int] = {3: 2, 10: 3, 17: 4}


def create_die_progression(*steps: tuple[str, int]) -> list[str]:
    """Build a 20-entry die progression from (die, first level) steps.

    Example:
        >>> create_die_progression(("d6", 1), ("d8", 5))[4]
        'd8'
    """
    progression = ["d6"] * MAX_CHARACTER_LEVEL
    for die, first_level in steps:
        for index in range(first_level - 1, MAX_CHARACTER_LEVEL):
            progression[index] = die
    return progression


BARDIC_INSPIRATION_DIE = create_die_progression(("d6", 1), ("d8", 5), ("d10", 10), ("d12", 15))
SONG_OF_REST_DIE = create_die_progression(("d6", 1), ("d8", 9), ("d10", 13), ("d12", 17))


__all__ = [
    "get_proficiency_bonus",
    "calculate_modifier",
    "clamp_level",
    "WARLOCK_INVOCATIONS_KNOWN",
    "ARTIFICER_INFUSIONS_KNOWN",
    "LAY_ON_HANDS_POOL",
    "CLASS_LEVEL_POOL",
    "CHANNEL_DIVINITY_USES",
    "METAMAGIC_KNOWN",
    "create_die_progression",
    "BARDIC_INSPIRATION_DIE",
    "SONG_OF_REST_DIE",
]
