"""Migration of legacy feature fields into the unified usage map.

Inspection (needs_migration, get_migration_summary) never changes the
character. Migration is additive: it only adds records for feature ids the
usage map lacks, leaves legacy fields untouched, and is idempotent.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from dnd_features.core.logging import get_logger
from dnd_features.migration.legacy import (
    UPGRADE_STEPS,
    FieldOutcome,
    present_legacy_fields,
    run_upgrade_step,
)
from dnd_features.models.character import CharacterSnapshot


logger = get_logger(__name__)


class MigrationSummary(BaseModel):
    """What a migration would add, by display name."""

    model_config = ConfigDict(frozen=True)

    features_to_migrate: list[str] = Field(default_factory=list)
    total_features: int = 0


class MigrationResult(BaseModel):
    """Outcome of migrating one character.

    Attributes:
        character: The migrated character.
        migrated: Feature ids that gained a record.
        skipped: Feature ids whose record already existed.
        failed: Feature id -> error for legacy fields that could not be mapped.
    """

    model_config = ConfigDict(frozen=True)

    character: CharacterSnapshot
    migrated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def needs_migration(character: CharacterSnapshot) -> bool:
    """Check for a legacy field whose feature has no unified record yet."""
    return any(
        field.feature_id not in character.feature_usage
        for field in present_legacy_fields(character)
    )


def get_migration_summary(character: CharacterSnapshot) -> MigrationSummary:
    """List the features a migration would add."""
    names = [
        field.display_name
        for field in present_legacy_fields(character)
        if field.feature_id not in character.feature_usage
    ]
    return MigrationSummary(features_to_migrate=names, total_features=len(names))


def migrate_character_with_report(character: CharacterSnapshot) -> MigrationResult:
    """Run every upgrade step and report each legacy field's outcome.

    All steps run regardless of the stored schema version, so legacy data
    on a character stamped with a newer version is still picked up.
    """
    outcomes: list[FieldOutcome] = []
    for version in sorted(UPGRADE_STEPS):
        character, step_outcomes = run_upgrade_step(character, version)
        outcomes.extend(step_outcomes)

    result = MigrationResult(
        character=character,
        migrated=[o.feature_id for o in outcomes if o.status == "migrated"],
        skipped=[o.feature_id for o in outcomes if o.status == "skipped"],
        failed={o.feature_id: o.error or "unknown error" for o in outcomes if o.status == "failed"},
    )
    if result.migrated or result.failed:
        logger.info(
            "Character migrated to unified usage",
            character_id=character.id,
            migrated=result.migrated,
            failed=sorted(result.failed),
            schema_version=character.schema_version,
        )
    return result


def migrate_character_to_unified_usage(character: CharacterSnapshot) -> CharacterSnapshot:
    """Fold every legacy field into the usage map.

    Example:
        >>> migrated = migrate_character_to_unified_usage(character)
        >>> needs_migration(migrated)
        False
        >>> migrated.schema_version
        3
    """
    return migrate_character_with_report(character).character


__all__ = [
    "MigrationSummary",
    "MigrationResult",
    "needs_migration",
    "get_migration_summary",
    "migrate_character_with_report",
    "migrate_character_to_unified_usage",
]
