"""Batch migration with per-character status.

Drives a UI-facing migration workflow: every character needing migration
moves through ``pending -> migrating -> completed | error``. One
character's failure is recorded and never aborts the rest of the batch.
Saving a migrated character is retried on transient connection errors.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from pydantic import BaseModel, Field, computed_field
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dnd_features.core.config import MigrationSettings, get_settings
from dnd_features.core.logging import bind_context, get_logger, unbind_context
from dnd_features.migration.engine import migrate_character_with_report, needs_migration
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.enums import MigrationStatus


logger = get_logger(__name__)

PersistCallback = Callable[[CharacterSnapshot], Awaitable[Any]]
StatusCallback = Callable[[str, MigrationStatus], None]


class BatchItem(BaseModel):
    """Progress of one character in a batch."""

    character_id: str
    name: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    migrated: list[str] = Field(default_factory=list)
    error: str | None = None
    character: CharacterSnapshot | None = None


class BatchMigrationReport(BaseModel):
    """Final state of a batch migration."""

    items: list[BatchItem] = Field(default_factory=list)

    @property
    def statuses(self) -> dict[str, MigrationStatus]:
        return {item.character_id: item.status for item in self.items}

    @property
    def errors(self) -> dict[str, str]:
        return {item.character_id: item.error for item in self.items if item.error}

    @computed_field(description="Characters migrated without errors")
    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.status == MigrationStatus.COMPLETED)

    @computed_field(description="Characters that ended in error")
    @property
    def failed_count(self) -> int:
        return sum(1 for item in self.items if item.status == MigrationStatus.ERROR)


class MigrationBatch:
    """Migrates a set of characters and tracks each one's status.

    Example:
        >>> batch = MigrationBatch()
        >>> report = await batch.run(characters, persist=save_character)
        >>> report.failed_count
        0
    """

    def __init__(
        self,
        *,
        settings: MigrationSettings | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        """Initialize the batch.

        Args:
            settings: Retry settings for persisting; defaults to app settings.
            on_status: Called with (character id, status) on every transition.
        """
        self.settings = settings or get_settings().migration
        self._on_status = on_status
        self._items: list[BatchItem] = []

    @property
    def statuses(self) -> dict[str, MigrationStatus]:
        """Current status of every character in the batch."""
        return {item.character_id: item.status for item in self._items}

    def _transition(self, item: BatchItem, status: MigrationStatus) -> None:
        item.status = status
        logger.debug("Migration status changed", character_id=item.character_id, status=status.value)
        if self._on_status is not None:
            self._on_status(item.character_id, status)

    async def _persist(self, persist: PersistCallback, character: CharacterSnapshot) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((ConnectionError, TimeoutError)),
            stop=stop_after_attempt(self.settings.persist_max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.persist_retry_multiplier,
                max=self.settings.persist_retry_max_wait,
            ),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await persist(character)

    async def _migrate_one(
        self,
        character: CharacterSnapshot,
        item: BatchItem,
        persist: PersistCallback | None,
    ) -> None:
        self._transition(item, MigrationStatus.MIGRATING)
        try:
            result = migrate_character_with_report(character)
            if persist is not None:
                await self._persist(persist, result.character)
        except Exception as exc:
            logger.error("Character migration failed", error=str(exc))
            item.error = str(exc)
            self._transition(item, MigrationStatus.ERROR)
            return

        item.character = result.character
        item.migrated = result.migrated
        if result.failed:
            item.error = "; ".join(
                f"{feature_id}: {error}" for feature_id, error in sorted(result.failed.items())
            )
            self._transition(item, MigrationStatus.ERROR)
        else:
            self._transition(item, MigrationStatus.COMPLETED)

    async def run(
        self,
        characters: Iterable[CharacterSnapshot],
        persist: PersistCallback | None = None,
    ) -> BatchMigrationReport:
        """Migrate every character that needs it.

        Characters with some failed legacy fields are still persisted with
        the fields that did migrate, and end in ``error``.

        Args:
            characters: Characters to consider.
            persist: Async callback saving one migrated character.

        Returns:
            Report with each character's final status.
        """
        candidates = [c for c in characters if needs_migration(c)]
        self._items = []
        for index, character in enumerate(candidates):
            item = BatchItem(character_id=character.id or f"character-{index}", name=character.name)
            self._items.append(item)
            self._transition(item, MigrationStatus.PENDING)

        logger.info("Batch migration started", characters=len(candidates))

        for character, item in zip(candidates, self._items):
            bind_context(character_id=item.character_id)
            try:
                await self._migrate_one(character, item, persist)
            finally:
                unbind_context("character_id")

        report = BatchMigrationReport(items=list(self._items))
        logger.info(
            "Batch migration finished",
            completed=report.completed_count,
            failed=report.failed_count,
        )
        return report


__all__ = [
    "PersistCallback",
    "BatchItem",
    "BatchMigrationReport",
    "MigrationBatch",
]
