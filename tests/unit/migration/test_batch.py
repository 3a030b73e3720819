"""Tests for batch migration with per-character status."""

from __future__ import annotations

from typing import Any

import pytest
import structlog

from dnd_features.core.config import MigrationSettings
from dnd_features.migration.batch import MigrationBatch
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.enums import MigrationStatus


@pytest.fixture
def fast_retry() -> MigrationSettings:
    """Three save attempts without backoff waits."""
    return MigrationSettings(persist_max_attempts=3, persist_retry_multiplier=0, persist_retry_max_wait=0)


@pytest.fixture
def characters(legacy_character_data: dict[str, Any], bard: CharacterSnapshot) -> list[CharacterSnapshot]:
    """Two legacy characters and one that needs nothing."""
    second = {**legacy_character_data, "id": "char-legacy-2", "name": "Gadget"}
    return [
        CharacterSnapshot.model_validate(legacy_character_data),
        bard,
        CharacterSnapshot.model_validate(second),
    ]


class TestMigrationBatch:
    """Tests for MigrationBatch.run."""

    @pytest.mark.asyncio
    async def test_status_transitions(
        self, characters: list[CharacterSnapshot], fast_retry: MigrationSettings
    ) -> None:
        """Test each candidate moves pending -> migrating -> completed."""
        events: list[tuple[str, MigrationStatus]] = []
        saved: list[CharacterSnapshot] = []

        async def persist(character: CharacterSnapshot) -> None:
            saved.append(character)

        batch = MigrationBatch(settings=fast_retry, on_status=lambda cid, s: events.append((cid, s)))
        report = await batch.run(characters, persist=persist)

        assert report.completed_count == 2
        assert report.failed_count == 0
        assert report.statuses == {
            "char-legacy": MigrationStatus.COMPLETED,
            "char-legacy-2": MigrationStatus.COMPLETED,
        }
        assert [s for cid, s in events if cid == "char-legacy"] == [
            MigrationStatus.PENDING,
            MigrationStatus.MIGRATING,
            MigrationStatus.COMPLETED,
        ]
        assert [c.id for c in saved] == ["char-legacy", "char-legacy-2"]
        assert all("eldritch-cannon" in c.feature_usage for c in saved)

    @pytest.mark.asyncio
    async def test_persist_failure_isolated(
        self, characters: list[CharacterSnapshot], fast_retry: MigrationSettings
    ) -> None:
        """Test a save that keeps failing marks only that character."""

        async def persist(character: CharacterSnapshot) -> None:
            if character.id == "char-legacy":
                raise RuntimeError("row locked")

        report = await MigrationBatch(settings=fast_retry).run(characters, persist=persist)

        assert report.statuses["char-legacy"] == MigrationStatus.ERROR
        assert report.errors["char-legacy"] == "row locked"
        assert report.statuses["char-legacy-2"] == MigrationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_transient_errors_retried(
        self, characters: list[CharacterSnapshot], fast_retry: MigrationSettings
    ) -> None:
        """Test connection errors are retried until the save succeeds."""
        attempts: dict[str, int] = {}

        async def persist(character: CharacterSnapshot) -> None:
            attempts[character.id] = attempts.get(character.id, 0) + 1
            if attempts[character.id] < 3:
                raise ConnectionError("reset by peer")

        report = await MigrationBatch(settings=fast_retry).run(characters, persist=persist)

        assert report.completed_count == 2
        assert attempts == {"char-legacy": 3, "char-legacy-2": 3}

    @pytest.mark.asyncio
    async def test_retries_exhausted(
        self, characters: list[CharacterSnapshot], fast_retry: MigrationSettings
    ) -> None:
        """Test a persistent connection error ends in error after max attempts."""
        attempts: list[str] = []

        async def persist(character: CharacterSnapshot) -> None:
            attempts.append(character.id)
            raise TimeoutError("timed out")

        report = await MigrationBatch(settings=fast_retry).run(characters, persist=persist)

        assert report.failed_count == 2
        assert len(attempts) == 6

    @pytest.mark.asyncio
    async def test_partial_field_failure_is_error(
        self, legacy_character_data: dict[str, Any], fast_retry: MigrationSettings
    ) -> None:
        """Test a character with a bad field is saved but marked error."""
        legacy_character_data["eldritchCannon"] = "broken"
        saved: list[CharacterSnapshot] = []

        async def persist(character: CharacterSnapshot) -> None:
            saved.append(character)

        report = await MigrationBatch(settings=fast_retry).run(
            [CharacterSnapshot.model_validate(legacy_character_data)], persist=persist
        )

        item = report.items[0]
        assert item.status == MigrationStatus.ERROR
        assert item.error is not None and item.error.startswith("eldritch-cannon:")
        assert "artificer-infusions" in item.migrated
        assert len(saved) == 1

    @pytest.mark.asyncio
    async def test_without_persist(self, characters: list[CharacterSnapshot]) -> None:
        """Test a dry run still migrates and reports."""
        report = await MigrationBatch().run(characters)

        assert report.completed_count == 2
        assert report.items[0].character is not None

    @pytest.mark.asyncio
    async def test_missing_ids_get_positions(self, legacy_character_data: dict[str, Any]) -> None:
        """Test characters without ids are tracked by position."""
        anonymous = {**legacy_character_data, "id": ""}
        characters = [CharacterSnapshot.model_validate(anonymous)] * 2

        report = await MigrationBatch().run(characters)

        assert [item.character_id for item in report.items] == ["character-0", "character-1"]

    @pytest.mark.asyncio
    async def test_nothing_to_migrate(self, bard: CharacterSnapshot) -> None:
        """Test characters without legacy fields are not part of the batch."""
        batch = MigrationBatch()

        report = await batch.run([bard])

        assert report.items == []
        assert batch.statuses == {}

    @pytest.mark.asyncio
    async def test_character_id_bound_while_migrating(
        self, characters: list[CharacterSnapshot], fast_retry: MigrationSettings
    ) -> None:
        """Test log context carries the current character id and is unbound afterwards."""
        seen: dict[str, Any] = {}

        def on_status(character_id: str, status: MigrationStatus) -> None:
            if status == MigrationStatus.MIGRATING:
                seen[character_id] = structlog.contextvars.get_contextvars().get("character_id")

        structlog.contextvars.bind_contextvars(request_id="r-1")
        try:
            await MigrationBatch(settings=fast_retry, on_status=on_status).run(characters)

            context = structlog.contextvars.get_contextvars()
        finally:
            structlog.contextvars.clear_contextvars()

        assert seen == {"char-legacy": "char-legacy", "char-legacy-2": "char-legacy-2"}
        assert context == {"request_id": "r-1"}
