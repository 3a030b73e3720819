"""Integration tests for the feature usage lifecycle.

Covers loading definitions through the cache, seeding a character's usage
map, playing through rests and level-ups, and migrating legacy records.
"""

from __future__ import annotations

from typing import Any

import pytest

from dnd_features import (
    CharacterClass,
    CharacterSnapshot,
    FeatureDefinition,
    FeatureDefinitionCache,
    MigrationBatch,
    RestType,
    initialize_feature_usage,
    needs_migration,
    reset_all_feature_usage,
)
from dnd_features.cache.loader import ClassDataResult, ClassFeaturesResult
from dnd_features.core.config import CacheSettings
from dnd_features.engine.rest import spend_feature_points, use_feature_slot
from dnd_features.engine.usage_store import (
    add_feature_option,
    refresh_feature_maxima,
    with_feature_usage,
)
from dnd_features.models.enums import MigrationStatus
from dnd_features.models.usage import dump_usage_map, parse_usage_map


class DefinitionStore:
    """Loader serving camelCase definitions the way a database would."""

    definitions: dict[str, list[dict[str, Any]]] = {
        "paladin-id": [
            {
                "id": "lay-on-hands",
                "title": "Lay on Hands",
                "className": "Paladin",
                "enabledAtLevel": 1,
                "featureType": "points_pool",
                "config": {"totalFormula": [5, 10, 15, 20, 25, 30], "replenishOn": "long_rest"},
            },
            {
                "id": "channel-divinity",
                "title": "Channel Divinity",
                "className": "Paladin",
                "enabledAtLevel": 3,
                "config": {
                    "featureType": "slots",
                    "usesFormula": {"3": 1, "6": 2},
                    "replenishOn": "short_rest",
                },
            },
            {
                "id": "aura-of-courage",
                "title": "Aura of Courage",
                "className": "Paladin",
                "enabledAtLevel": 10,
                "config": {"featureType": "aura", "radius": 10},
            },
        ],
        "warlock-id": [
            {
                "id": "eldritch-invocations",
                "title": "Eldritch Invocations",
                "className": "Warlock",
                "enabledAtLevel": 2,
                "config": {
                    "featureType": "options_list",
                    "maxSelectionsFormula": [0, 2, 2, 2, 3],
                },
            },
        ],
    }

    async def load_class_features(
        self, class_id: str, level: int, subclass: str | None = None
    ) -> ClassFeaturesResult:
        if class_id not in self.definitions:
            return ClassFeaturesResult(error=f"No features for {class_id}")
        return ClassFeaturesResult(features=self.definitions[class_id])

    async def load_class_data(self, class_name: str, subclass: str | None = None) -> ClassDataResult:
        return ClassDataResult(class_data={"id": f"{class_name.lower()}-id"})


@pytest.fixture
def paladin_warlock() -> CharacterSnapshot:
    """Paladin 5 / Warlock 2 with Charisma 16."""
    return CharacterSnapshot(
        id="char-pw",
        name="Aldric",
        charisma=16,
        classes=[
            {"name": "Paladin", "level": 5},
            {"name": "Warlock", "level": 2},
        ],
    )


class TestFeatureLifecycle:
    """End-to-end usage tracking for a multiclass character."""

    @pytest.mark.asyncio
    async def test_load_seed_play_and_level_up(self, paladin_warlock: CharacterSnapshot) -> None:
        """Test definitions flow from the loader into a playable usage map."""
        settings = CacheSettings(preload_batch_delay_seconds=0)
        async with FeatureDefinitionCache(DefinitionStore(), settings=settings) as cache:
            stored = await cache.preload_for_characters([paladin_warlock])
            assert stored == 2

            raw: list[Any] = []
            for character_class in paladin_warlock.all_classes():
                result = await cache.load(f"{character_class.name.lower()}-id", character_class.level)
                assert result.ok
                raw.extend(result.features)

        definitions = [FeatureDefinition.model_validate(item) for item in raw]
        character = with_feature_usage(
            paladin_warlock, initialize_feature_usage(paladin_warlock, definitions)
        )

        usage = character.feature_usage
        assert set(usage) == {"lay-on-hands", "channel-divinity", "eldritch-invocations"}
        assert usage["lay-on-hands"].max_points == 25
        assert usage["channel-divinity"].max_uses == 1
        assert usage["eldritch-invocations"].max_selections == 2

        # Play: spend resources and pick invocations
        character = with_feature_usage(character, spend_feature_points(character, "lay-on-hands", 10))
        character = with_feature_usage(character, use_feature_slot(character, "channel-divinity"))
        picks = character.feature_usage
        for option in ("agonizing-blast", "devils-sight", "repelling-blast"):
            picks = add_feature_option(picks, "eldritch-invocations", option)
        character = with_feature_usage(character, picks)

        assert len(character.feature_usage["eldritch-invocations"].selected_options) == 2

        # Short rest restores Channel Divinity only
        character = with_feature_usage(character, reset_all_feature_usage(character, RestType.SHORT_REST))
        assert character.feature_usage["channel-divinity"].current_uses == 1
        assert character.feature_usage["lay-on-hands"].current_points == 15

        # Level up to Paladin 6: pool and uses grow, current values kept
        leveled = character.model_copy(
            update={
                "classes": [
                    CharacterClass(name="Paladin", level=6),
                    CharacterClass(name="Warlock", level=2),
                ]
            }
        )
        refreshed = refresh_feature_maxima(leveled)

        assert refreshed["lay-on-hands"].max_points == 30
        assert refreshed["lay-on-hands"].current_points == 15
        assert refreshed["channel-divinity"].max_uses == 2

        # Long rest refills everything refillable
        after_rest = reset_all_feature_usage(with_feature_usage(leveled, refreshed), RestType.LONG_REST)
        assert after_rest["lay-on-hands"].current_points == 30
        assert after_rest["channel-divinity"].current_uses == 2

        # The stored form round-trips
        stored_map = parse_usage_map(dump_usage_map(after_rest))
        assert stored_map["eldritch-invocations"].selected_options[0].id == "agonizing-blast"

    @pytest.mark.asyncio
    async def test_legacy_roster_migration(self, legacy_character_data: dict[str, Any]) -> None:
        """Test a roster with legacy characters is migrated and saved."""
        roster = [
            CharacterSnapshot.model_validate(legacy_character_data),
            CharacterSnapshot(id="char-new", class_name="Fighter", level=3),
        ]
        database: dict[str, dict[str, Any]] = {}

        async def persist(character: CharacterSnapshot) -> None:
            database[character.id] = character.model_dump(mode="json", by_alias=True)

        report = await MigrationBatch().run(roster, persist=persist)

        assert report.statuses == {"char-legacy": MigrationStatus.COMPLETED}
        reloaded = CharacterSnapshot.model_validate(database["char-legacy"])
        assert reloaded.schema_version == 3
        assert needs_migration(reloaded) is False
        assert (
            reloaded.feature_usage["eldritch-cannon"].custom_state
            == legacy_character_data["eldritchCannon"]
        )
