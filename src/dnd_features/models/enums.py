"""Enumeration types for dnd-features.

Ability scores, feature resource shapes, rest types and the small status
vocabularies used by the definition cache and the migration workflow.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """D&D 5E ability scores.

    Values are the full lowercase names used as character field names.
    """

    STR = "strength"
    DEX = "dexterity"
    CON = "constitution"
    INT = "intelligence"
    WIS = "wisdom"
    CHA = "charisma"

    @property
    def full_name(self) -> str:
        """Get the full name of the ability.

        Returns:
            Full ability name (e.g., 'Strength' for STR).
        """
        return self.value.capitalize()

    @property
    def abbreviation(self) -> str:
        """Get the three-letter abbreviation.

        Returns:
            Three-letter abbreviation (e.g., 'STR').
        """
        return self.name

    @classmethod
    def from_code(cls, code: str) -> Ability | None:
        """Resolve a three-letter code or full name, case-insensitively.

        Args:
            code: 'cha', 'CHA', 'charisma', 'Charisma', ...

        Returns:
            The matching Ability, or None if the code is not an ability.
        """
        normalized = code.strip().lower()
        for ability in cls:
            if normalized in (ability.value, ability.name.lower()):
                return ability
        return None


class FeatureType(StrEnum):
    """Resource shape of a tracked class feature.

    LEGACY covers feature types this package does not understand; such
    records and definitions are carried as opaque key-value bags.
    """

    SLOTS = "slots"
    """Fixed number of uses (Bardic Inspiration, Channel Divinity)."""

    POINTS_POOL = "points_pool"
    """Pool spent in variable amounts (Lay on Hands, Ki Points)."""

    OPTIONS_LIST = "options_list"
    """Pick-list with a capped number of selections (Invocations, Infusions)."""

    SPECIAL_UX = "special_ux"
    """Free-form state owned by the feature's own UI (Eldritch Cannon)."""

    AVAILABILITY_TOGGLE = "availability_toggle"
    """Available / used switch (Song of Rest, Genie's Wrath)."""

    LEGACY = "legacy"
    """Unknown or retired feature type."""

    @classmethod
    def tracked(cls) -> frozenset[FeatureType]:
        """Feature types with a typed usage shape."""
        return frozenset(member for member in cls if member is not cls.LEGACY)


class ReplenishOn(StrEnum):
    """When a feature's resource is restored."""

    SHORT_REST = "short_rest"
    LONG_REST = "long_rest"
    DAWN = "dawn"
    MANUAL = "manual"


class RestType(StrEnum):
    """Types of rest (and dawn) that can restore feature resources."""

    SHORT_REST = "short_rest"
    LONG_REST = "long_rest"
    DAWN = "dawn"

    @property
    def restores(self) -> frozenset[ReplenishOn]:
        """Replenish timings restored by this rest.

        Returns:
            The ReplenishOn values whose features reset on this rest.
        """
        mapping = {
            RestType.SHORT_REST: frozenset({ReplenishOn.SHORT_REST}),
            RestType.LONG_REST: frozenset(
                {ReplenishOn.SHORT_REST, ReplenishOn.LONG_REST, ReplenishOn.DAWN}
            ),
            RestType.DAWN: frozenset({ReplenishOn.DAWN}),
        }
        return mapping[self]


class PreloadPriority(StrEnum):
    """Priority of a definition cache preload request."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric rank, higher drains first."""
        return {PreloadPriority.HIGH: 3, PreloadPriority.MEDIUM: 2, PreloadPriority.LOW: 1}[self]


class MigrationStatus(StrEnum):
    """Per-character progress state in a batch migration."""

    PENDING = "pending"
    MIGRATING = "migrating"
    COMPLETED = "completed"
    ERROR = "error"


__all__ = [
    "Ability",
    "FeatureType",
    "ReplenishOn",
    "RestType",
    "PreloadPriority",
    "MigrationStatus",
]
