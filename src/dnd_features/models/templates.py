"""Built-in feature definitions.

Templates for the common class features that older character records
tracked in dedicated fields. Migration seeds unified records from these,
and callers may use them when the external loader has no definition.
"""

from __future__ import annotations

from dnd_features.models.enums import FeatureType, ReplenishOn
from dnd_features.models.features import (
    AvailabilityToggleConfig,
    FeatureDefinition,
    OptionsListConfig,
    PointsPoolConfig,
    SlotConfig,
    SpecialUXConfig,
)
from dnd_features.models.progression import (
    ARTIFICER_INFUSIONS_KNOWN,
    BARDIC_INSPIRATION_DIE,
    CHANNEL_DIVINITY_USES,
    CLASS_LEVEL_POOL,
    LAY_ON_HANDS_POOL,
    METAMAGIC_KNOWN,
    SONG_OF_REST_DIE,
    WARLOCK_INVOCATIONS_KNOWN,
)


FEATURE_TEMPLATES: dict[str, FeatureDefinition] = {
    template.id: template
    for template in (
        # Bard
        FeatureDefinition(
            id="bardic-inspiration",
            title="Bardic Inspiration",
            subtitle="Inspire others through stirring words or music",
            class_name="Bard",
            enabled_at_level=1,
            config=SlotConfig(
                uses_formula="charisma_modifier",
                die_type=BARDIC_INSPIRATION_DIE,
                replenish_on=ReplenishOn.LONG_REST,
                display_style="circles",
            ),
        ),
        FeatureDefinition(
            id="song-of-rest",
            title="Song of Rest",
            subtitle="Soothing music during a short rest",
            class_name="Bard",
            enabled_at_level=2,
            config=AvailabilityToggleConfig(
                default_available=True,
                replenish_on=ReplenishOn.SHORT_REST,
                display_style="toggle",
                healing_die=SONG_OF_REST_DIE,
            ),
        ),
        # Artificer
        FeatureDefinition(
            id="flash-of-genius",
            title="Flash of Genius",
            subtitle="Add your Intelligence modifier to a check or save",
            class_name="Artificer",
            enabled_at_level=7,
            config=SlotConfig(
                uses_formula="intelligence_modifier",
                replenish_on=ReplenishOn.LONG_REST,
                display_style="checkboxes",
            ),
        ),
        FeatureDefinition(
            id="artificer-infusions",
            title="Infuse Item",
            subtitle="Infusions known",
            class_name="Artificer",
            enabled_at_level=2,
            config=OptionsListConfig(
                max_selections_formula=ARTIFICER_INFUSIONS_KNOWN,
                options_source="database",
                database_table="artificer_infusions",
                allow_duplicates=False,
                display_style="grid",
                can_swap_on_level_up=True,
            ),
        ),
        FeatureDefinition(
            id="eldritch-cannon",
            title="Eldritch Cannon",
            subtitle="Create a magical cannon",
            class_name="Artificer",
            enabled_at_level=3,
            enabled_by_subclass="Artillerist",
            config=SpecialUXConfig(
                component_id="eldritch-cannon",
                custom_config={
                    "sizes": ["Small", "Tiny"],
                    "types": ["Flamethrower", "Force Ballista", "Protector"],
                },
            ),
        ),
        # Paladin
        FeatureDefinition(
            id="divine-sense",
            title="Divine Sense",
            subtitle="Detect celestials, fiends and undead",
            class_name="Paladin",
            enabled_at_level=1,
            config=SlotConfig(
                uses_formula="charisma_modifier",
                replenish_on=ReplenishOn.LONG_REST,
                display_style="circles",
            ),
        ),
        FeatureDefinition(
            id="lay-on-hands",
            title="Lay on Hands",
            subtitle="Pool of healing power",
            class_name="Paladin",
            enabled_at_level=1,
            config=PointsPoolConfig(
                total_formula=LAY_ON_HANDS_POOL,
                can_spend_partial=True,
                replenish_on=ReplenishOn.LONG_REST,
                display_style="slider",
                min_spend=1,
            ),
        ),
        FeatureDefinition(
            id="cleansing-touch",
            title="Cleansing Touch",
            subtitle="End one spell on yourself or a willing creature",
            class_name="Paladin",
            enabled_at_level=14,
            config=SlotConfig(
                uses_formula="charisma_modifier",
                replenish_on=ReplenishOn.LONG_REST,
                display_style="circles",
            ),
        ),
        # Cleric
        FeatureDefinition(
            id="channel-divinity",
            title="Channel Divinity",
            subtitle="Channel divine energy",
            class_name="Cleric",
            enabled_at_level=2,
            config=SlotConfig(
                uses_formula=CHANNEL_DIVINITY_USES,
                replenish_on=ReplenishOn.SHORT_REST,
                display_style="circles",
            ),
        ),
        # Monk
        FeatureDefinition(
            id="ki-points",
            title="Ki Points",
            subtitle="Harness the mystic energy of ki",
            class_name="Monk",
            enabled_at_level=2,
            config=PointsPoolConfig(
                total_formula="level",
                can_spend_partial=True,
                replenish_on=ReplenishOn.SHORT_REST,
                display_style="increment_decrement",
                min_spend=1,
            ),
        ),
        # Sorcerer
        FeatureDefinition(
            id="sorcery-points",
            title="Sorcery Points",
            subtitle="Font of Magic",
            class_name="Sorcerer",
            enabled_at_level=2,
            config=PointsPoolConfig(
                total_formula=CLASS_LEVEL_POOL,
                can_spend_partial=True,
                replenish_on=ReplenishOn.LONG_REST,
                display_style="slider",
                min_spend=1,
            ),
        ),
        FeatureDefinition(
            id="metamagic",
            title="Metamagic",
            subtitle="Twist your spells to suit your needs",
            class_name="Sorcerer",
            enabled_at_level=3,
            config=OptionsListConfig(
                max_selections_formula=METAMAGIC_KNOWN,
                options_source="database",
                database_table="metamagic_options",
                allow_duplicates=False,
                display_style="list",
                can_swap_on_level_up=True,
            ),
        ),
        # Warlock
        FeatureDefinition(
            id="eldritch-invocations",
            title="Eldritch Invocations",
            subtitle="Fragments of forbidden knowledge",
            class_name="Warlock",
            enabled_at_level=2,
            config=OptionsListConfig(
                max_selections_formula=WARLOCK_INVOCATIONS_KNOWN,
                options_source="database",
                database_table="eldritch_invocations",
                allow_duplicates=False,
                display_style="grid",
                can_swap_on_level_up=True,
            ),
        ),
        FeatureDefinition(
            id="genies-wrath",
            title="Genie's Wrath",
            subtitle="Extra damage once per turn",
            class_name="Warlock",
            enabled_at_level=1,
            enabled_by_subclass="The Genie",
            config=AvailabilityToggleConfig(
                default_available=True,
                replenish_on=ReplenishOn.MANUAL,
                display_style="badge",
            ),
        ),
        FeatureDefinition(
            id="elemental-gift",
            title="Elemental Gift",
            subtitle="Flying speed of 30 feet",
            class_name="Warlock",
            enabled_at_level=6,
            enabled_by_subclass="The Genie",
            config=SlotConfig(
                uses_formula="proficiency_bonus",
                replenish_on=ReplenishOn.LONG_REST,
                display_style="circles",
            ),
        ),
    )
}


def get_feature_template(template_id: str) -> FeatureDefinition | None:
    """Get a built-in definition by feature id."""
    return FEATURE_TEMPLATES.get(template_id)


def get_all_feature_templates() -> list[FeatureDefinition]:
    """Get every built-in definition."""
    return list(FEATURE_TEMPLATES.values())


def get_feature_templates_by_type(feature_type: FeatureType | str) -> list[FeatureDefinition]:
    """Get built-in definitions of one feature type."""
    return [t for t in FEATURE_TEMPLATES.values() if t.feature_type == feature_type]


__all__ = [
    "FEATURE_TEMPLATES",
    "get_feature_template",
    "get_all_feature_templates",
    "get_feature_templates_by_type",
]
