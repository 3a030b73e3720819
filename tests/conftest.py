"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the dnd-features test suite.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from dnd_features.cache.loader import ClassDataResult, ClassFeaturesResult
from dnd_features.models.character import CharacterSnapshot


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dnd_features.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_FEATURES_LOG_LEVEL": "DEBUG",
        "DND_FEATURES_JSON_LOGS": "true",
        "DND_FEATURES_CACHE_TTL_SECONDS": "120",
        "DND_FEATURES_MIGRATION_PERSIST_MAX_ATTEMPTS": "5",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Character Fixtures
# =============================================================================


@pytest.fixture
def bard() -> CharacterSnapshot:
    """Level 5 bard with 16 Charisma (+3, proficiency +3)."""
    return CharacterSnapshot(
        id="char-bard",
        name="Lyra",
        class_name="Bard",
        level=5,
        charisma=16,
        strength=8,
    )


@pytest.fixture
def multiclass_character() -> CharacterSnapshot:
    """Paladin 6 / Warlock 3 (The Genie), total level 9."""
    return CharacterSnapshot(
        id="char-multi",
        name="Seraphine",
        charisma=18,
        classes=[
            {"name": "Paladin", "level": 6, "subclass": "Oath of Devotion", "classId": "paladin-id"},
            {"name": "Warlock", "level": 3, "subclass": "The Genie"},
        ],
    )


@pytest.fixture
def legacy_character_data() -> dict[str, Any]:
    """Stored camelCase record of a character that predates the usage map."""
    return {
        "id": "char-legacy",
        "name": "Tinker",
        "class": "Artificer",
        "subclass": "Artillerist",
        "level": 5,
        "intelligence": 18,
        "eldritchCannon": {
            "size": "Small",
            "type": "Force Ballista",
            "hitPoints": 25,
            "active": True,
            "position": {"x": 3, "y": 4},
        },
        "infusions": [
            {"name": "Enhanced Defense", "description": "+1 AC"},
            {"name": "Bag of Holding", "needsAttunement": False},
        ],
        "infusionNotes": "Armor goes to the fighter",
        "spellData": {
            "flashOfGeniusSlot": {"usesPerRest": 4, "currentUses": 1},
        },
    }


@pytest.fixture
def legacy_character(legacy_character_data: dict[str, Any]) -> CharacterSnapshot:
    """Legacy artificer snapshot."""
    return CharacterSnapshot.model_validate(legacy_character_data)


# =============================================================================
# Cache Fixtures
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLoader:
    """In-memory feature loader recording every call."""

    def __init__(
        self,
        features: dict[str, list[Any]] | None = None,
        class_ids: dict[str, str] | None = None,
    ) -> None:
        self.features = features or {}
        self.class_ids = class_ids or {}
        self.errors: dict[str, str] = {}
        self.raises: dict[str, Exception] = {}
        self.feature_calls: list[tuple[str, int, str | None]] = []
        self.class_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def load_class_features(
        self,
        class_id: str,
        level: int,
        subclass: str | None = None,
    ) -> ClassFeaturesResult:
        self.feature_calls.append((class_id, level, subclass))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if class_id in self.raises:
                raise self.raises[class_id]
            if class_id in self.errors:
                return ClassFeaturesResult(error=self.errors[class_id])
            return ClassFeaturesResult(features=self.features.get(class_id, [f"{class_id}-{level}"]))
        finally:
            self.in_flight -= 1

    async def load_class_data(
        self,
        class_name: str,
        subclass: str | None = None,
    ) -> ClassDataResult:
        self.class_calls.append(class_name)
        class_id = self.class_ids.get(class_name)
        if class_id is None:
            return ClassDataResult(error=f"Unknown class {class_name}")
        return ClassDataResult(class_data={"id": class_id, "name": class_name})


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def fake_loader() -> FakeLoader:
    """Loader knowing the Bard and Warlock classes."""
    return FakeLoader(class_ids={"Bard": "bard-id", "Warlock": "warlock-id", "Paladin": "paladin-id"})


@pytest.fixture
def recorded_sleeps() -> list[float]:
    """Delays passed to the cache's batch pause."""
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps: list[float]) -> Any:
    """Sleep coroutine that records its delay and yields once."""

    async def sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)
        await asyncio.sleep(0)

    return sleep
