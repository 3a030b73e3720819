"""Spend, restore and rest operations on feature usage.

Convenience mutations for the common resource shapes. Every change goes
through update_feature_usage, so the cap is recomputed and the current
value clamped exactly as for any other patch.
"""

from __future__ import annotations

from dnd_features.core.logging import get_logger
from dnd_features.engine.usage_store import (
    UsageMap,
    compute_limit,
    update_feature_custom_state,
    update_feature_usage,
    with_feature_usage,
)
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.enums import ReplenishOn, RestType
from dnd_features.models.features import FeatureDefinition
from dnd_features.models.usage import (
    AvailabilityToggleUsage,
    PointsPoolUsage,
    SlotsUsage,
    SpecialUXUsage,
    UsageRecordBase,
    utc_now_iso,
)


logger = get_logger(__name__)

# Timings assumed for records that carry no config
_DEFAULT_RESET_TIMINGS = frozenset({ReplenishOn.LONG_REST, ReplenishOn.DAWN})


def _working_record(
    character: CharacterSnapshot,
    feature_id: str,
    definition: FeatureDefinition | None,
) -> tuple[CharacterSnapshot, UsageRecordBase | None]:
    """Get a record, seeding it from the definition when missing."""
    record = character.feature_usage.get(feature_id)
    if record is None and definition is not None:
        character = with_feature_usage(
            character, update_feature_usage(character, feature_id, {}, definition)
        )
        record = character.feature_usage.get(feature_id)
    return character, record


# =============================================================================
# Slots
# =============================================================================


def use_feature_slot(
    character: CharacterSnapshot,
    feature_id: str,
    amount: int = 1,
    definition: FeatureDefinition | None = None,
) -> UsageMap:
    """Spend uses of a slots feature, never below 0."""
    character, record = _working_record(character, feature_id, definition)
    if not isinstance(record, SlotsUsage):
        return dict(character.feature_usage)
    return update_feature_usage(
        character, feature_id, {"current_uses": max(0, record.current_uses - amount)}
    )


def restore_feature_slot(
    character: CharacterSnapshot,
    feature_id: str,
    amount: int = 1,
    definition: FeatureDefinition | None = None,
) -> UsageMap:
    """Restore uses of a slots feature, never above its cap."""
    character, record = _working_record(character, feature_id, definition)
    if not isinstance(record, SlotsUsage):
        return dict(character.feature_usage)
    return update_feature_usage(
        character,
        feature_id,
        {"current_uses": min(record.max_uses, record.current_uses + amount)},
    )


# =============================================================================
# Points Pools
# =============================================================================


def spend_feature_points(character: CharacterSnapshot, feature_id: str, amount: int) -> UsageMap:
    """Spend points from a pool, never below 0."""
    record = character.feature_usage.get(feature_id)
    if not isinstance(record, PointsPoolUsage):
        return dict(character.feature_usage)
    return update_feature_usage(
        character, feature_id, {"current_points": max(0, record.current_points - amount)}
    )


def restore_feature_points(character: CharacterSnapshot, feature_id: str, amount: int) -> UsageMap:
    """Restore points to a pool, never above its cap."""
    record = character.feature_usage.get(feature_id)
    if not isinstance(record, PointsPoolUsage):
        return dict(character.feature_usage)
    return update_feature_usage(
        character,
        feature_id,
        {"current_points": min(record.max_points, record.current_points + amount)},
    )


# =============================================================================
# Toggles and Notes
# =============================================================================


def toggle_feature_availability(character: CharacterSnapshot, feature_id: str) -> UsageMap:
    """Flip an availability toggle.

    Special UX features keep their flag in ``custom_state['available']``.
    """
    record = character.feature_usage.get(feature_id)
    if isinstance(record, AvailabilityToggleUsage):
        return update_feature_usage(character, feature_id, {"is_available": not record.is_available})
    if isinstance(record, SpecialUXUsage):
        return update_feature_custom_state(
            character,
            feature_id,
            {
                "available": not record.custom_state.get("available", False),
                "lastUpdated": utc_now_iso(),
            },
        )
    return dict(character.feature_usage)


def update_feature_notes(character: CharacterSnapshot, feature_id: str, notes: str) -> UsageMap:
    """Replace a feature's notes."""
    return update_feature_usage(character, feature_id, {"notes": notes})


# =============================================================================
# Rests
# =============================================================================


def resets_on(record: UsageRecordBase, rest_type: RestType) -> bool:
    """Check whether a record's resource is restored by a rest."""
    rest_type = RestType(rest_type)
    timing = record.config.replenish_timing if record.config is not None else None
    timings = frozenset({timing}) if timing is not None else _DEFAULT_RESET_TIMINGS
    return bool(timings & rest_type.restores)


def reset_feature_usage(character: CharacterSnapshot, feature_id: str, rest_type: RestType) -> UsageMap:
    """Restore one feature if the rest replenishes it.

    Slots and pools refill, toggles become available. Option lists never
    reset and special UX state is kept as-is.
    """
    record = character.feature_usage.get(feature_id)
    if record is None:
        return dict(character.feature_usage)

    patch: dict[str, object] = {}
    if resets_on(record, rest_type):
        if isinstance(record, SlotsUsage):
            patch = {
                "current_uses": compute_limit(record, character, record.max_uses),
                "last_reset": utc_now_iso(),
            }
        elif isinstance(record, PointsPoolUsage):
            patch = {
                "current_points": compute_limit(record, character, record.max_points),
                "last_reset": utc_now_iso(),
            }
        elif isinstance(record, AvailabilityToggleUsage):
            patch = {"is_available": True, "last_reset": utc_now_iso()}

    if not patch:
        return dict(character.feature_usage)
    return update_feature_usage(character, feature_id, patch)


def get_features_for_reset(character: CharacterSnapshot, rest_type: RestType) -> list[str]:
    """Ids of the features a rest would restore."""
    return [
        feature_id
        for feature_id, record in character.feature_usage.items()
        if isinstance(record, (SlotsUsage, PointsPoolUsage, AvailabilityToggleUsage))
        and resets_on(record, rest_type)
    ]


def reset_all_feature_usage(character: CharacterSnapshot, rest_type: RestType) -> UsageMap:
    """Apply a rest to every feature of a character."""
    rest_type = RestType(rest_type)
    restored = get_features_for_reset(character, rest_type)
    for feature_id in restored:
        character = with_feature_usage(
            character, reset_feature_usage(character, feature_id, rest_type)
        )
    logger.info("Rest applied", rest_type=rest_type.value, restored=restored)
    return dict(character.feature_usage)


__all__ = [
    "use_feature_slot",
    "restore_feature_slot",
    "spend_feature_points",
    "restore_feature_points",
    "toggle_feature_availability",
    "update_feature_notes",
    "resets_on",
    "reset_feature_usage",
    "get_features_for_reset",
    "reset_all_feature_usage",
]
