"""Unified feature usage store.

Pure, synchronous operations over a character's usage map. Every operation
returns a new map and never mutates its input; callers replace the stored
map with the result as a whole value.

Each mutation funnels through the same "recompute max, then clamp" step,
so a level-up or ability change can never leave a stale cap or an
out-of-range current value behind.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from dnd_features.core.exceptions import ImmutableFieldError, MissingIdentifierError
from dnd_features.core.logging import get_logger
from dnd_features.engine.formula import evaluate
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.features import (
    AvailabilityToggleConfig,
    FeatureDefinition,
    LegacyConfig,
    OptionsListConfig,
    PointsPoolConfig,
    SlotConfig,
    SpecialUXConfig,
)
from dnd_features.models.usage import (
    RECORD_TYPES,
    AvailabilityToggleUsage,
    LegacyUsage,
    OptionsListUsage,
    PointsPoolUsage,
    SelectedOption,
    SlotsUsage,
    SpecialUXUsage,
    UsageRecordBase,
    parse_usage_record,
    utc_now_iso,
)


logger = get_logger(__name__)

UsageMap = dict[str, UsageRecordBase]


def _build_field_names() -> dict[str, str]:
    names: dict[str, str] = {}
    for record_type in RECORD_TYPES.values():
        for name, field in record_type.model_fields.items():
            names[name] = name
            if field.alias:
                names[field.alias] = name
    return names


# Patch key (field name or camelCase alias) -> field name
_FIELD_NAMES = _build_field_names()


def _require_id(feature_id: str) -> None:
    if not feature_id or not feature_id.strip():
        raise MissingIdentifierError("feature_id is required")


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


def _normalize_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
    return {_FIELD_NAMES.get(key, key): value for key, value in patch.items()}


# =============================================================================
# Limits
# =============================================================================


def compute_limit(record: UsageRecordBase, character: CharacterSnapshot, stored: int) -> int:
    """Cap of a record, recomputed from its retained config.

    Records without a config (or whose config has no limit formula) keep
    their stored cap, floored at 0.
    """
    config = record.config
    if config is None or config.limit_formula is None:
        return max(0, stored)
    return evaluate(config.limit_formula, character, record.class_name)


def apply_limits(record: UsageRecordBase, character: CharacterSnapshot) -> UsageRecordBase:
    """Recompute the record's cap and clamp its current value into it.

    Returns the same record object when nothing changes.
    """
    if isinstance(record, SlotsUsage):
        max_uses = compute_limit(record, character, record.max_uses)
        current_uses = _clamp(record.current_uses, max_uses)
        if (max_uses, current_uses) == (record.max_uses, record.current_uses):
            return record
        return record.model_copy(update={"max_uses": max_uses, "current_uses": current_uses})

    if isinstance(record, PointsPoolUsage):
        max_points = compute_limit(record, character, record.max_points)
        current_points = _clamp(record.current_points, max_points)
        if (max_points, current_points) == (record.max_points, record.current_points):
            return record
        return record.model_copy(
            update={"max_points": max_points, "current_points": current_points}
        )

    if isinstance(record, OptionsListUsage):
        max_selections = compute_limit(record, character, record.max_selections)
        selected = record.selected_options[:max_selections]
        if max_selections == record.max_selections and len(selected) == len(record.selected_options):
            return record
        if len(selected) < len(record.selected_options):
            logger.info(
                "Options truncated to new limit",
                feature_name=record.feature_name,
                dropped=len(record.selected_options) - len(selected),
            )
        return record.model_copy(
            update={"max_selections": max_selections, "selected_options": selected}
        )

    return record


# =============================================================================
# Read
# =============================================================================


def get_feature_usage(usage_map: Mapping[str, UsageRecordBase], feature_id: str) -> UsageRecordBase | None:
    """Get the usage record for a feature, or None."""
    return usage_map.get(feature_id)


# =============================================================================
# Create
# =============================================================================


def create_usage_record(character: CharacterSnapshot, definition: FeatureDefinition) -> UsageRecordBase:
    """Seed a usage record from a definition's formulas.

    Limited resources start full, option lists empty, custom state empty,
    and toggles at their configured default.
    """
    config = definition.config
    common: dict[str, Any] = {
        "feature_name": definition.title or definition.id,
        "config": config,
        "class_name": definition.class_name,
        "is_feat_feature": definition.is_feat_feature,
        "enabled_at_level": definition.enabled_at_level,
        "last_updated": utc_now_iso(),
    }
    limit = 0
    if config.limit_formula is not None:
        limit = evaluate(config.limit_formula, character, definition.class_name)

    if isinstance(config, SlotConfig):
        return SlotsUsage(current_uses=limit, max_uses=limit, **common)
    if isinstance(config, PointsPoolConfig):
        return PointsPoolUsage(current_points=limit, max_points=limit, **common)
    if isinstance(config, OptionsListConfig):
        return OptionsListUsage(selected_options=[], max_selections=limit, **common)
    if isinstance(config, SpecialUXConfig):
        return SpecialUXUsage(custom_state={}, **common)
    if isinstance(config, AvailabilityToggleConfig):
        return AvailabilityToggleUsage(is_available=config.default_available, **common)
    if isinstance(config, LegacyConfig):
        return LegacyUsage(feature_type=config.feature_type, **common)
    raise TypeError(f"Unhandled feature config: {type(config).__name__}")


def add_single_feature(
    character: CharacterSnapshot,
    feature_id: str,
    definition: FeatureDefinition,
) -> UsageMap:
    """Seed one feature's record; the unchanged map if it already exists.

    Raises:
        MissingIdentifierError: If feature_id is empty.
    """
    _require_id(feature_id)
    usage_map = dict(character.feature_usage)
    if feature_id in usage_map:
        return usage_map

    usage_map[feature_id] = create_usage_record(character, definition)
    logger.debug("Feature usage seeded", feature_id=feature_id, feature_type=definition.feature_type)
    return usage_map


def initialize_feature_usage(
    character: CharacterSnapshot,
    definitions: Iterable[FeatureDefinition],
) -> UsageMap:
    """Seed records for every definition enabled for the character.

    Existing records are left alone.
    """
    working = character
    for definition in definitions:
        if definition.id in working.feature_usage or not definition.is_enabled_for(character):
            continue
        working = with_feature_usage(
            working, add_single_feature(working, definition.id, definition)
        )
    return dict(working.feature_usage)


# =============================================================================
# Update
# =============================================================================


def update_feature_usage(
    character: CharacterSnapshot,
    feature_id: str,
    patch: Mapping[str, Any],
    definition: FeatureDefinition | None = None,
) -> UsageMap:
    """Shallow-merge a patch into a feature's record.

    The record is created from ``definition`` first when missing; with no
    definition, a missing record makes this a no-op. After merging, the cap
    is recomputed from the retained config and the current value clamped.

    Args:
        character: Character owning the usage map.
        feature_id: Feature to update.
        patch: Fields to merge, by field name or camelCase alias.
        definition: Definition used to create a missing record.

    Returns:
        New usage map. An invalid patch is logged and the map returned
        unchanged.

    Raises:
        MissingIdentifierError: If feature_id is empty.
        ImmutableFieldError: If the patch changes the feature type.
    """
    _require_id(feature_id)
    usage_map = dict(character.feature_usage)
    normalized = _normalize_patch(patch)

    record = usage_map.get(feature_id)
    if record is None:
        if definition is None:
            logger.debug("No usage record to update", feature_id=feature_id)
            return usage_map
        record = create_usage_record(character, definition)

    requested_type = normalized.pop("feature_type", None)
    if requested_type is not None and str(requested_type) != record.feature_type:
        raise ImmutableFieldError(
            "Feature type cannot change after creation",
            feature_id=feature_id,
            field_name="featureType",
            details={"current": record.feature_type, "requested": str(requested_type)},
        )

    merged = {**record.model_dump(), **normalized, "last_updated": utc_now_iso()}
    try:
        updated = parse_usage_record(merged)
    except PydanticValidationError as exc:
        logger.warning(
            "Ignoring invalid usage patch",
            feature_id=feature_id,
            error_count=exc.error_count(),
            fields=sorted(normalized),
        )
        return dict(character.feature_usage)

    usage_map[feature_id] = apply_limits(updated, character)
    return usage_map


def update_feature_custom_state(
    character: CharacterSnapshot,
    feature_id: str,
    patch: Mapping[str, Any],
    definition: FeatureDefinition | None = None,
) -> UsageMap:
    """Shallow-merge into a special UX record's custom state.

    The state is owned by the feature's own component and is not
    validated or clamped.

    Raises:
        MissingIdentifierError: If feature_id is empty.
    """
    _require_id(feature_id)
    usage_map = dict(character.feature_usage)

    record = usage_map.get(feature_id)
    if record is None and definition is not None:
        record = create_usage_record(character, definition)
    if not isinstance(record, SpecialUXUsage):
        logger.debug("No special UX record for custom state", feature_id=feature_id)
        return usage_map

    usage_map[feature_id] = record.model_copy(
        update={
            "custom_state": {**record.custom_state, **patch},
            "last_updated": utc_now_iso(),
        }
    )
    return usage_map


# =============================================================================
# Options
# =============================================================================


def add_feature_option(
    usage_map: Mapping[str, UsageRecordBase],
    feature_id: str,
    option: SelectedOption | Mapping[str, Any] | str,
    character: CharacterSnapshot | None = None,
) -> UsageMap:
    """Append a selected option.

    Silently refuses once ``max_selections`` is reached, or when the option
    is already selected and the feature does not allow duplicates. When a
    character is given, the cap is recomputed from the record's config
    before the check.

    Raises:
        MissingIdentifierError: If feature_id is empty.
    """
    _require_id(feature_id)
    result = dict(usage_map)
    record = result.get(feature_id)
    if not isinstance(record, OptionsListUsage):
        return result
    if character is not None:
        record = apply_limits(record, character)
        result[feature_id] = record

    try:
        selected = option if isinstance(option, SelectedOption) else SelectedOption.model_validate(option)
    except PydanticValidationError:
        logger.warning("Ignoring invalid option", feature_id=feature_id)
        return result

    if len(record.selected_options) >= record.max_selections:
        logger.debug("Option limit reached", feature_id=feature_id, limit=record.max_selections)
        return result

    allow_duplicates = isinstance(record.config, OptionsListConfig) and record.config.allow_duplicates
    if not allow_duplicates and any(o.id == selected.id for o in record.selected_options):
        return result

    result[feature_id] = record.model_copy(
        update={
            "selected_options": [*record.selected_options, selected],
            "last_updated": utc_now_iso(),
        }
    )
    return result


def remove_feature_option(
    usage_map: Mapping[str, UsageRecordBase],
    feature_id: str,
    option_id_or_index: str | int,
) -> UsageMap:
    """Remove a selected option by id, or by position when given an int.

    Raises:
        MissingIdentifierError: If feature_id is empty.
    """
    _require_id(feature_id)
    result = dict(usage_map)
    record = result.get(feature_id)
    if not isinstance(record, OptionsListUsage):
        return result

    options = record.selected_options
    if isinstance(option_id_or_index, int) and not isinstance(option_id_or_index, bool):
        if not 0 <= option_id_or_index < len(options):
            return result
        remaining = [o for i, o in enumerate(options) if i != option_id_or_index]
    else:
        remaining = [o for o in options if o.id != option_id_or_index]

    if len(remaining) == len(options):
        return result
    result[feature_id] = record.model_copy(
        update={"selected_options": remaining, "last_updated": utc_now_iso()}
    )
    return result


# =============================================================================
# Whole-map Operations
# =============================================================================


def refresh_feature_maxima(character: CharacterSnapshot) -> UsageMap:
    """Recompute caps and clamp every record, e.g. after a level-up."""
    return {
        feature_id: apply_limits(record, character)
        for feature_id, record in character.feature_usage.items()
    }


def cleanup_feature_usage(
    usage_map: Mapping[str, UsageRecordBase],
    available_feature_ids: Iterable[str],
) -> UsageMap:
    """Drop records of features the character no longer has."""
    available = set(available_feature_ids)
    result = {fid: record for fid, record in usage_map.items() if fid in available}
    removed = len(usage_map) - len(result)
    if removed:
        logger.info("Removed unavailable feature usage", removed=removed)
    return result


def with_feature_usage(
    character: CharacterSnapshot,
    usage_map: Mapping[str, UsageRecordBase],
) -> CharacterSnapshot:
    """Return a new snapshot carrying the given usage map."""
    return character.model_copy(update={"feature_usage": dict(usage_map)})


__all__ = [
    "UsageMap",
    "compute_limit",
    "apply_limits",
    "get_feature_usage",
    "create_usage_record",
    "add_single_feature",
    "initialize_feature_usage",
    "update_feature_usage",
    "update_feature_custom_state",
    "add_feature_option",
    "remove_feature_option",
    "refresh_feature_maxima",
    "cleanup_feature_usage",
    "with_feature_usage",
]
