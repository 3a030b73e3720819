"""Tests for usage record models and the stored usage map format."""

from __future__ import annotations

from dnd_features.models.enums import FeatureType
from dnd_features.models.features import LegacyConfig, SlotConfig
from dnd_features.models.usage import (
    AvailabilityToggleUsage,
    LegacyUsage,
    OptionsListUsage,
    SelectedOption,
    SlotsUsage,
    SpecialUXUsage,
    dump_usage_map,
    parse_usage_map,
    parse_usage_record,
)


class TestParseUsageRecord:
    """Tests for selecting the record variant."""

    def test_slots_record(self) -> None:
        """Test a stored slots record with its config."""
        record = parse_usage_record(
            {
                "featureName": "Bardic Inspiration",
                "featureType": "slots",
                "currentUses": 2,
                "maxUses": 3,
                "config": {"usesFormula": "charisma_modifier", "replenishOn": "long_rest"},
            }
        )

        assert isinstance(record, SlotsUsage)
        assert record.kind == FeatureType.SLOTS
        assert isinstance(record.config, SlotConfig)
        assert record.config.uses_formula == "charisma_modifier"

    def test_untagged_config_takes_record_type(self) -> None:
        """Test a config without featureType inherits the record's."""
        record = parse_usage_record(
            {"featureType": "slots", "config": {"usesFormula": 2}}
        )

        assert isinstance(record.config, SlotConfig)

    def test_unknown_type_is_legacy(self) -> None:
        """Test unknown records are carried verbatim."""
        record = parse_usage_record(
            {"featureType": "wild_shape_forms", "forms": ["wolf"], "config": {"cr": 1}}
        )

        assert isinstance(record, LegacyUsage)
        assert record.kind == FeatureType.LEGACY
        assert record.feature_type == "wild_shape_forms"
        assert record.model_extra == {"forms": ["wolf"]}
        assert isinstance(record.config, LegacyConfig)

    def test_special_ux_state_not_validated(self) -> None:
        """Test arbitrary custom state is accepted."""
        record = parse_usage_record(
            {"featureType": "special_ux", "customState": {"anything": [1, {"deep": None}]}}
        )

        assert isinstance(record, SpecialUXUsage)
        assert record.custom_state == {"anything": [1, {"deep": None}]}

    def test_toggle_defaults_available(self) -> None:
        """Test a bare toggle starts available."""
        record = parse_usage_record({"featureType": "availability_toggle"})

        assert isinstance(record, AvailabilityToggleUsage)
        assert record.is_available is True


class TestSelectedOption:
    """Tests for options list entries."""

    def test_plain_string_becomes_option(self) -> None:
        """Test a bare id string is accepted."""
        option = SelectedOption.model_validate("agonizing-blast")

        assert option.id == "agonizing-blast"
        assert option.title == "agonizing-blast"

    def test_extra_flags_kept(self) -> None:
        """Test unknown option keys survive."""
        option = SelectedOption.model_validate({"id": "x", "prerequisite": "5th level"})

        assert option.model_extra == {"prerequisite": "5th level"}


class TestUsageMapFormat:
    """Tests for the stored camelCase map."""

    def test_dump_uses_camel_case(self) -> None:
        """Test dumped records use camelCase keys and plain values."""
        usage = {
            "invocations": OptionsListUsage(
                feature_name="Eldritch Invocations",
                max_selections=2,
                selected_options=[SelectedOption(id="devils-sight", needs_attunement=False)],
            )
        }

        dumped = dump_usage_map(usage)

        record = dumped["invocations"]
        assert record["featureType"] == "options_list"
        assert record["maxSelections"] == 2
        assert record["selectedOptions"][0]["needsAttunement"] is False
        assert "lastUpdated" in record

    def test_dumped_map_parses_back(self) -> None:
        """Test a dumped map is readable as stored data."""
        usage = {
            "ki-points": parse_usage_record(
                {"featureType": "points_pool", "currentPoints": 3, "maxPoints": 5}
            ),
            "mystery": parse_usage_record({"featureType": "future_type", "payload": {"a": 1}}),
        }

        restored = parse_usage_map(dump_usage_map(usage))

        assert restored["ki-points"].current_points == 3
        assert restored["mystery"].model_extra == {"payload": {"a": 1}}

    def test_empty_map(self) -> None:
        """Test None parses as an empty map."""
        assert parse_usage_map(None) == {}
