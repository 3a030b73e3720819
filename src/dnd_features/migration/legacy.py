"""Legacy per-feature character fields and the schema upgrades that fold them.

Older character records tracked each class feature in its own field. The
character schema is versioned:

    1. legacy fields only
    2. spell-data trackers mirrored in the unified usage map
    3. top-level collections (infusions, eldritch cannon) mirrored

Each upgrade step is a pure function from one version to the next. A step
only adds records for feature ids missing from the usage map; legacy
fields are never modified, so steps can be re-run safely.

Every migrated record keeps the raw legacy payload in ``legacy_source``.
Live values are clamped into the record's limits, so the raw
payload is the lossless copy.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dnd_features.core.constants import CURRENT_SCHEMA_VERSION, LEGACY_SCHEMA_VERSION
from dnd_features.core.exceptions import MigrationError
from dnd_features.core.logging import get_logger
from dnd_features.engine.usage_store import create_usage_record, with_feature_usage
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.templates import get_feature_template
from dnd_features.models.usage import (
    AvailabilityToggleUsage,
    OptionsListUsage,
    PointsPoolUsage,
    SelectedOption,
    SlotsUsage,
    SpecialUXUsage,
    UsageRecordBase,
)


logger = get_logger(__name__)

_R = TypeVar("_R", bound=UsageRecordBase)


# =============================================================================
# Legacy Shapes
# =============================================================================


class _LegacyShape(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)


class LegacySlot(_LegacyShape):
    """``{usesPerRest, currentUses}`` style tracker; currentUses is remaining uses."""

    uses_per_rest: int | None = None
    uses_per_long_rest: int | None = None
    current_uses: int | None = None
    die_type: str | None = None


class LegacyHealingPool(_LegacyShape):
    """Lay on Hands tracker."""

    total_hit_points: int | None = None
    current_hit_points: int | None = None
    used: int | None = None


class LegacyToggle(_LegacyShape):
    """Song of Rest / Genie's Wrath tracker."""

    available: bool | None = None
    current_uses: int | None = None


class LegacyOption(_LegacyShape):
    """Invocation or infusion entry."""

    id: str | None = None
    name: str | None = None
    title: str | None = None
    description: str = ""
    needs_attunement: bool = False


# =============================================================================
# Field Registry
# =============================================================================


@dataclass(frozen=True)
class LegacyField:
    """A recognized legacy field and how it maps to a unified record.

    Attributes:
        feature_id: Target unified feature id.
        schema_version: Schema version whose upgrade step migrates it.
        extract: Returns the raw legacy payload, or None when absent.
        build: Builds the unified record from the payload.
    """

    feature_id: str
    schema_version: int
    extract: Callable[[CharacterSnapshot], Any]
    build: Callable[[CharacterSnapshot, Any], UsageRecordBase]

    @property
    def display_name(self) -> str:
        template = get_feature_template(self.feature_id)
        return template.title if template else self.feature_id


@dataclass(frozen=True)
class FieldOutcome:
    """Result of migrating one legacy field."""

    feature_id: str
    status: Literal["migrated", "skipped", "failed"]
    error: str | None = None


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict)) and not value:
        return False
    return True


def _spell_data(key: str) -> Callable[[CharacterSnapshot], Any]:
    def extract(character: CharacterSnapshot) -> Any:
        spell_data = character.spell_data
        if not isinstance(spell_data, dict):
            return None
        value = spell_data.get(key)
        return value if _is_present(value) else None

    return extract


def _top_level(attribute: str) -> Callable[[CharacterSnapshot], Any]:
    def extract(character: CharacterSnapshot) -> Any:
        value = getattr(character, attribute)
        return value if _is_present(value) else None

    return extract


def _extract_bardic_inspiration(character: CharacterSnapshot) -> Any:
    payload: dict[str, Any] = {}
    slot = _spell_data("bardicInspirationSlot")(character)
    if slot is not None:
        payload["bardicInspirationSlot"] = slot
    if character.bardic_inspiration_used is not None:
        payload["bardicInspirationUsed"] = character.bardic_inspiration_used
    return payload or None


def _extract_infusions(character: CharacterSnapshot) -> Any:
    payload: dict[str, Any] = {}
    if _is_present(character.infusions):
        payload["infusions"] = character.infusions
    if _is_present(character.infusion_notes):
        payload["infusionNotes"] = character.infusion_notes
    return payload or None


# =============================================================================
# Record Builders
# =============================================================================


def _seed(character: CharacterSnapshot, feature_id: str, record_type: type[_R]) -> _R:
    template = get_feature_template(feature_id)
    if template is None:
        raise MigrationError(
            "No built-in definition for legacy feature",
            character_id=character.id,
            feature_id=feature_id,
        )
    record = create_usage_record(character, template)
    if not isinstance(record, record_type):
        raise MigrationError(
            f"Built-in definition is not a {record_type.__name__}",
            character_id=character.id,
            feature_id=feature_id,
        )
    return record


def _slots(
    character: CharacterSnapshot,
    feature_id: str,
    raw: Any,
    remaining: int | None,
) -> SlotsUsage:
    record = _seed(character, feature_id, SlotsUsage)
    current = record.max_uses if remaining is None else max(0, min(remaining, record.max_uses))
    return record.model_copy(update={"current_uses": current, "legacy_source": copy.deepcopy(raw)})


def _slot_builder(feature_id: str) -> Callable[[CharacterSnapshot, Any], UsageRecordBase]:
    def build(character: CharacterSnapshot, raw: Any) -> UsageRecordBase:
        slot = LegacySlot.model_validate(raw)
        return _slots(character, feature_id, raw, slot.current_uses)

    return build


def _build_bardic_inspiration(character: CharacterSnapshot, raw: dict[str, Any]) -> UsageRecordBase:
    remaining: int | None = None
    if "bardicInspirationSlot" in raw:
        remaining = LegacySlot.model_validate(raw["bardicInspirationSlot"]).current_uses
    if remaining is None and "bardicInspirationUsed" in raw:
        used = raw["bardicInspirationUsed"]
        if isinstance(used, bool) or not isinstance(used, int):
            raise MigrationError(
                f"bardicInspirationUsed must be an integer, got {used!r}",
                character_id=character.id,
                feature_id="bardic-inspiration",
            )
        seeded = _seed(character, "bardic-inspiration", SlotsUsage)
        remaining = seeded.max_uses - used
    return _slots(character, "bardic-inspiration", raw, remaining)


def _build_lay_on_hands(character: CharacterSnapshot, raw: Any) -> UsageRecordBase:
    pool = LegacyHealingPool.model_validate(raw)
    record = _seed(character, "lay-on-hands", PointsPoolUsage)
    current = pool.current_hit_points
    if current is None and pool.used is not None:
        current = record.max_points - pool.used
    if current is None:
        current = record.max_points
    return record.model_copy(
        update={
            "current_points": max(0, min(current, record.max_points)),
            "legacy_source": copy.deepcopy(raw),
        }
    )


def _build_song_of_rest(character: CharacterSnapshot, raw: Any) -> UsageRecordBase:
    toggle = LegacyToggle.model_validate(raw)
    record = _seed(character, "song-of-rest", AvailabilityToggleUsage)
    available = record.is_available if toggle.available is None else toggle.available
    return record.model_copy(update={"is_available": available, "legacy_source": copy.deepcopy(raw)})


def _build_genies_wrath(character: CharacterSnapshot, raw: Any) -> UsageRecordBase:
    toggle = LegacyToggle.model_validate(raw)
    record = _seed(character, "genies-wrath", AvailabilityToggleUsage)
    available = record.is_available if toggle.current_uses is None else toggle.current_uses > 0
    return record.model_copy(update={"is_available": available, "legacy_source": copy.deepcopy(raw)})


_SLUG = re.compile(r"[^a-z0-9]+")


def _to_selected_options(entries: Any, prefix: str) -> list[SelectedOption]:
    if not isinstance(entries, list):
        raise MigrationError(f"Expected a list of options, got {type(entries).__name__}")

    options: list[SelectedOption] = []
    used_ids: set[str] = set()
    for index, entry in enumerate(entries):
        legacy = LegacyOption.model_validate({"name": entry} if isinstance(entry, str) else entry)
        title = legacy.title or legacy.name or f"Untitled {prefix}"
        option_id = legacy.id or _SLUG.sub("-", title.lower()).strip("-") or f"{prefix}-{index}"
        candidate, suffix = option_id, 2
        while candidate in used_ids:
            candidate, suffix = f"{option_id}-{suffix}", suffix + 1
        used_ids.add(candidate)

        extras = dict(legacy.model_extra or {})
        options.append(
            SelectedOption(
                id=candidate,
                title=title,
                description=legacy.description,
                needs_attunement=legacy.needs_attunement,
                **extras,
            )
        )
    return options


def _options(
    character: CharacterSnapshot,
    feature_id: str,
    raw: Any,
    options: list[SelectedOption],
    notes: str | None = None,
) -> OptionsListUsage:
    record = _seed(character, feature_id, OptionsListUsage)
    update: dict[str, Any] = {
        "selected_options": options[: record.max_selections],
        "legacy_source": copy.deepcopy(raw),
    }
    if notes:
        update["notes"] = notes
    if len(options) > record.max_selections:
        logger.info(
            "Legacy options exceed current limit",
            feature_id=feature_id,
            legacy_count=len(options),
            limit=record.max_selections,
        )
    return record.model_copy(update=update)


def _build_invocations(character: CharacterSnapshot, raw: Any) -> UsageRecordBase:
    return _options(
        character, "eldritch-invocations", raw, _to_selected_options(raw, "invocation")
    )


def _build_infusions(character: CharacterSnapshot, raw: dict[str, Any]) -> UsageRecordBase:
    notes = raw.get("infusionNotes")
    if notes is not None and not isinstance(notes, str):
        raise MigrationError(
            f"infusionNotes must be text, got {type(notes).__name__}",
            character_id=character.id,
            feature_id="artificer-infusions",
        )
    options = _to_selected_options(raw.get("infusions", []), "infusion")
    return _options(character, "artificer-infusions", raw, options, notes)


def _build_eldritch_cannon(character: CharacterSnapshot, raw: Any) -> UsageRecordBase:
    if not isinstance(raw, dict):
        raise MigrationError(
            f"eldritchCannon must be an object, got {type(raw).__name__}",
            character_id=character.id,
            feature_id="eldritch-cannon",
        )
    record = _seed(character, "eldritch-cannon", SpecialUXUsage)
    return record.model_copy(
        update={"custom_state": copy.deepcopy(raw), "legacy_source": copy.deepcopy(raw)}
    )


LEGACY_FIELDS: tuple[LegacyField, ...] = (
    # Version 2: spell-data trackers
    LegacyField("bardic-inspiration", 2, _extract_bardic_inspiration, _build_bardic_inspiration),
    LegacyField("flash-of-genius", 2, _spell_data("flashOfGeniusSlot"), _slot_builder("flash-of-genius")),
    LegacyField("divine-sense", 2, _spell_data("divineSenseSlot"), _slot_builder("divine-sense")),
    LegacyField("channel-divinity", 2, _spell_data("channelDivinitySlot"), _slot_builder("channel-divinity")),
    LegacyField("cleansing-touch", 2, _spell_data("cleansingTouchSlot"), _slot_builder("cleansing-touch")),
    LegacyField("elemental-gift", 2, _spell_data("elementalGift"), _slot_builder("elemental-gift")),
    LegacyField("lay-on-hands", 2, _spell_data("layOnHands"), _build_lay_on_hands),
    LegacyField("song-of-rest", 2, _spell_data("songOfRest"), _build_song_of_rest),
    LegacyField("genies-wrath", 2, _spell_data("genieWrath"), _build_genies_wrath),
    LegacyField("eldritch-invocations", 2, _spell_data("eldritchInvocations"), _build_invocations),
    # Version 3: top-level collections
    LegacyField("artificer-infusions", 3, _extract_infusions, _build_infusions),
    LegacyField("eldritch-cannon", 3, _top_level("eldritch_cannon"), _build_eldritch_cannon),
)


def present_legacy_fields(character: CharacterSnapshot) -> list[LegacyField]:
    """Legacy fields the character actually carries."""
    return [field for field in LEGACY_FIELDS if field.extract(character) is not None]


# =============================================================================
# Schema Upgrades
# =============================================================================


def migrate_fields(
    character: CharacterSnapshot,
    fields: Iterable[LegacyField],
) -> tuple[CharacterSnapshot, list[FieldOutcome]]:
    """Fold legacy fields into the usage map, one isolated field at a time.

    Fields whose feature id already has a record are skipped. A field that
    cannot be mapped is logged and reported; the others still migrate.
    """
    usage_map = dict(character.feature_usage)
    outcomes: list[FieldOutcome] = []

    for field in fields:
        raw = field.extract(character)
        if raw is None:
            continue
        if field.feature_id in usage_map:
            outcomes.append(FieldOutcome(field.feature_id, "skipped"))
            continue
        try:
            usage_map[field.feature_id] = field.build(character, raw)
        except (MigrationError, ValueError, TypeError) as exc:
            logger.warning(
                "Legacy field migration failed",
                character_id=character.id,
                feature_id=field.feature_id,
                error=str(exc),
            )
            outcomes.append(FieldOutcome(field.feature_id, "failed", str(exc)))
            continue
        outcomes.append(FieldOutcome(field.feature_id, "migrated"))

    return with_feature_usage(character, usage_map), outcomes


def run_upgrade_step(
    character: CharacterSnapshot,
    version: int,
) -> tuple[CharacterSnapshot, list[FieldOutcome]]:
    """Apply the step that produces ``version``.

    The schema version is stamped only when the character was at the
    previous version and no field of the step failed.
    """
    fields = [field for field in LEGACY_FIELDS if field.schema_version == version]
    upgraded, outcomes = migrate_fields(character, fields)
    failed = any(outcome.status == "failed" for outcome in outcomes)
    if not failed and upgraded.schema_version == version - 1:
        upgraded = upgraded.model_copy(update={"schema_version": version})
    return upgraded, outcomes


def upgrade_v1_to_v2(character: CharacterSnapshot) -> CharacterSnapshot:
    """Mirror the spell-data trackers in the usage map."""
    return run_upgrade_step(character, 2)[0]


def upgrade_v2_to_v3(character: CharacterSnapshot) -> CharacterSnapshot:
    """Mirror the infusion and eldritch cannon collections in the usage map."""
    return run_upgrade_step(character, 3)[0]


UPGRADE_STEPS: dict[int, Callable[[CharacterSnapshot], CharacterSnapshot]] = {
    2: upgrade_v1_to_v2,
    3: upgrade_v2_to_v3,
}


def upgrade_character(
    character: CharacterSnapshot,
    target_version: int = CURRENT_SCHEMA_VERSION,
) -> CharacterSnapshot:
    """Apply every upgrade step between the character's version and the target.

    Raises:
        MigrationError: If the target version is unknown.
    """
    if not LEGACY_SCHEMA_VERSION <= target_version <= CURRENT_SCHEMA_VERSION:
        raise MigrationError(
            f"Unknown schema version {target_version}",
            character_id=character.id,
        )
    for version in range(character.schema_version + 1, target_version + 1):
        character = UPGRADE_STEPS[version](character)
    return character


__all__ = [
    "LegacySlot",
    "LegacyHealingPool",
    "LegacyToggle",
    "LegacyOption",
    "LegacyField",
    "FieldOutcome",
    "LEGACY_FIELDS",
    "present_legacy_fields",
    "migrate_fields",
    "run_upgrade_step",
    "upgrade_v1_to_v2",
    "upgrade_v2_to_v3",
    "UPGRADE_STEPS",
    "upgrade_character",
]
