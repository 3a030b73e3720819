"""Formula evaluation and the unified feature usage store."""

from __future__ import annotations

from dnd_features.engine.formula import FormulaEvaluator, die_for_level, evaluate, relevant_level
from dnd_features.engine.rest import (
    get_features_for_reset,
    reset_all_feature_usage,
    reset_feature_usage,
    restore_feature_points,
    restore_feature_slot,
    spend_feature_points,
    toggle_feature_availability,
    update_feature_notes,
    use_feature_slot,
)
from dnd_features.engine.usage_store import (
    add_feature_option,
    add_single_feature,
    cleanup_feature_usage,
    create_usage_record,
    get_feature_usage,
    initialize_feature_usage,
    refresh_feature_maxima,
    remove_feature_option,
    update_feature_custom_state,
    update_feature_usage,
    with_feature_usage,
)


__all__ = [
    # Formulas
    "FormulaEvaluator",
    "evaluate",
    "relevant_level",
    "die_for_level",
    # Usage store
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
    # Rests
    "use_feature_slot",
    "restore_feature_slot",
    "spend_feature_points",
    "restore_feature_points",
    "toggle_feature_availability",
    "update_feature_notes",
    "reset_feature_usage",
    "reset_all_feature_usage",
    "get_features_for_reset",
]
