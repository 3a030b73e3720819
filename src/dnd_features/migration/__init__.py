"""Migration of legacy per-feature character fields to the unified usage map."""

from __future__ import annotations

from dnd_features.migration.batch import BatchItem, BatchMigrationReport, MigrationBatch
from dnd_features.migration.engine import (
    MigrationResult,
    MigrationSummary,
    get_migration_summary,
    migrate_character_to_unified_usage,
    migrate_character_with_report,
    needs_migration,
)
from dnd_features.migration.legacy import (
    LEGACY_FIELDS,
    UPGRADE_STEPS,
    LegacyField,
    upgrade_character,
    upgrade_v1_to_v2,
    upgrade_v2_to_v3,
)


__all__ = [
    # Inspection and migration
    "needs_migration",
    "get_migration_summary",
    "migrate_character_to_unified_usage",
    "migrate_character_with_report",
    "MigrationSummary",
    "MigrationResult",
    # Schema versions
    "LegacyField",
    "LEGACY_FIELDS",
    "UPGRADE_STEPS",
    "upgrade_v1_to_v2",
    "upgrade_v2_to_v3",
    "upgrade_character",
    # Batch
    "MigrationBatch",
    "BatchItem",
    "BatchMigrationReport",
]
