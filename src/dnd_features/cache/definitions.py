"""TTL cache and priority preload queue for class feature definitions.

Definitions are keyed by class id, level and subclass. Entries expire
after ``ttl_seconds``; an expired entry is purged when read and by a
periodic background sweep.

The cache is an explicit object with an explicit lifecycle. Create one
per session and close it when the session ends, so a new session never
serves a previous session's definitions:

    >>> async with FeatureDefinitionCache(loader) as cache:
    ...     result = await cache.load("bard-id", 5)
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dnd_features.cache.loader import ClassDataResult, ClassFeaturesResult, FeatureLoader
from dnd_features.core.config import CacheSettings, get_settings
from dnd_features.core.constants import NULL_SUBCLASS_KEY
from dnd_features.core.exceptions import FeatureLoaderError, MissingIdentifierError
from dnd_features.core.logging import get_logger
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.enums import PreloadPriority


logger = get_logger(__name__)


def cache_key(class_id: str, level: int, subclass: str | None = None) -> str:
    """Build the cache key for a class, level and subclass.

    Example:
        >>> cache_key("bard-id", 5)
        'bard-id-5-null'
    """
    return f"{class_id}-{level}-{subclass or NULL_SUBCLASS_KEY}"


def coerce_features_result(result: Any) -> ClassFeaturesResult:
    """Read a loader result, turning a malformed one into an error result.

    Plain ``{"features": [...], "error": ...}`` mappings are accepted.
    """
    if isinstance(result, ClassFeaturesResult):
        return result
    try:
        return ClassFeaturesResult.model_validate(result)
    except ValidationError:
        return ClassFeaturesResult(error=f"Malformed loader result: {type(result).__name__}")


class CacheEntry(BaseModel):
    """Cached definitions with the time they were stored."""

    model_config = ConfigDict(frozen=True)

    features: list[Any] = Field(default_factory=list)
    class_id: str
    level: int
    subclass: str | None = None
    timestamp: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Check if this entry has outlived its TTL."""
        return now - self.timestamp >= ttl_seconds


class PreloadRequest(BaseModel):
    """A queued request to warm the cache."""

    model_config = ConfigDict(frozen=True)

    class_id: str
    level: int
    subclass: str | None = None
    priority: PreloadPriority = PreloadPriority.MEDIUM

    @property
    def key(self) -> str:
        return cache_key(self.class_id, self.level, self.subclass)


class CacheStatsEntry(BaseModel):
    key: str
    timestamp: float
    feature_count: int


class CacheStats(BaseModel):
    """Snapshot of the cache contents for debugging."""

    size: int
    keys: list[str]
    entries: list[CacheStatsEntry]
    queued: int
    preloading: bool


class FeatureDefinitionCache:
    """Class feature definition cache with a priority preload queue.

    Attributes:
        settings: TTL, sweep interval and preload batch settings.

    Example:
        >>> cache = FeatureDefinitionCache(loader)
        >>> cache.preload("bard-id", 5, priority="high")
        >>> await cache.process_preload_queue()
        >>> cache.get("bard-id", 5)
    """

    def __init__(
        self,
        loader: FeatureLoader | None = None,
        *,
        settings: CacheSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize an empty cache.

        Args:
            loader: External definition loader used on misses and preloads.
            settings: Cache settings; defaults to the application settings.
            clock: Monotonic clock in seconds.
            sleep: Coroutine used for the pause between preload batches.
        """
        self.settings = settings or get_settings().cache
        self._loader = loader
        self._clock = clock
        self._sleep = sleep
        self._entries: dict[str, CacheEntry] = {}
        self._queue: list[PreloadRequest] = []
        self._preloading = False
        self._sweep_task: asyncio.Task[None] | None = None

        logger.debug(
            "FeatureDefinitionCache initialized",
            ttl_seconds=self.settings.ttl_seconds,
            batch_size=self.settings.preload_batch_size,
        )

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    @staticmethod
    def key(class_id: str, level: int, subclass: str | None = None) -> str:
        """Build the cache key for a class, level and subclass."""
        return cache_key(class_id, level, subclass)

    def get(self, class_id: str, level: int, subclass: str | None = None) -> list[Any] | None:
        """Get cached features, or None on a miss or an expired entry.

        An expired entry is removed as a side effect of the read.
        """
        key = cache_key(class_id, level, subclass)
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss", key=key)
            return None
        if entry.is_expired(self._clock(), self.settings.ttl_seconds):
            del self._entries[key]
            logger.debug("Cache entry expired", key=key)
            return None
        logger.debug("Cache hit", key=key)
        return list(entry.features)

    def set(
        self,
        class_id: str,
        level: int,
        features: list[Any],
        subclass: str | None = None,
    ) -> None:
        """Store features at the current time, replacing any existing entry.

        Raises:
            MissingIdentifierError: If class_id is empty.
        """
        if not class_id:
            raise MissingIdentifierError("class_id is required")
        key = cache_key(class_id, level, subclass)
        self._entries[key] = CacheEntry(
            features=list(features),
            class_id=class_id,
            level=level,
            subclass=subclass,
            timestamp=self._clock(),
        )
        logger.debug("Cache entry stored", key=key, feature_count=len(features))

    def cleanup(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.is_expired(now, self.settings.ttl_seconds)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Expired cache entries removed", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def get_stats(self) -> CacheStats:
        """Describe the cache contents."""
        return CacheStats(
            size=len(self._entries),
            keys=list(self._entries),
            entries=[
                CacheStatsEntry(
                    key=key,
                    timestamp=entry.timestamp,
                    feature_count=len(entry.features),
                )
                for key, entry in self._entries.items()
            ],
            queued=len(self._queue),
            preloading=self._preloading,
        )

    def __len__(self) -> int:
        return len(self._entries)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _require_loader(self, class_id: str | None = None) -> FeatureLoader:
        if self._loader is None:
            raise FeatureLoaderError("No feature loader configured", class_id=class_id)
        return self._loader

    async def load(
        self,
        class_id: str,
        level: int,
        subclass: str | None = None,
    ) -> ClassFeaturesResult:
        """Get features from the cache, fetching them on a miss.

        A loader error is returned unchanged and not cached; an exception
        raised by the loader becomes an error result. There is no retry.

        Raises:
            MissingIdentifierError: If class_id is empty.
            FeatureLoaderError: If the cache has no loader on a miss.
        """
        if not class_id:
            raise MissingIdentifierError("class_id is required")

        cached = self.get(class_id, level, subclass)
        if cached is not None:
            return ClassFeaturesResult(features=cached)

        loader = self._require_loader(class_id)
        try:
            result = coerce_features_result(
                await loader.load_class_features(class_id, level, subclass)
            )
        except Exception as exc:
            logger.warning(
                "Feature loader raised",
                key=cache_key(class_id, level, subclass),
                error=str(exc),
            )
            return ClassFeaturesResult(error=str(exc))

        if result.error is not None:
            logger.info(
                "Feature loader returned error",
                key=cache_key(class_id, level, subclass),
                error=result.error,
            )
            return result

        self.set(class_id, level, result.features, subclass)
        return result

    # -------------------------------------------------------------------------
    # Preloading
    # -------------------------------------------------------------------------

    def preload(
        self,
        class_id: str,
        level: int,
        subclass: str | None = None,
        priority: PreloadPriority | str = PreloadPriority.MEDIUM,
    ) -> bool:
        """Queue a preload unless the key is cached or already queued.

        A repeated request with a higher priority raises the queued
        request's priority.

        Returns:
            True if a new request was queued.

        Raises:
            MissingIdentifierError: If class_id is empty.
        """
        if not class_id:
            raise MissingIdentifierError("class_id is required")
        priority = PreloadPriority(priority)
        request = PreloadRequest(class_id=class_id, level=level, subclass=subclass, priority=priority)

        if self.get(class_id, level, subclass) is not None:
            return False

        for index, queued in enumerate(self._queue):
            if queued.key == request.key:
                if priority.rank > queued.priority.rank:
                    self._queue[index] = request
                return False

        self._queue.append(request)
        return True

    @property
    def queued(self) -> list[PreloadRequest]:
        """Requests waiting for the next drain."""
        return list(self._queue)

    @property
    def is_preloading(self) -> bool:
        return self._preloading

    async def process_preload_queue(self) -> int:
        """Drain the preload queue once.

        Requests are loaded highest priority first, in concurrent batches
        of ``preload_batch_size`` with a pause between batches. A failing
        request is logged and does not affect the rest of its batch. A call
        made while a drain is running returns immediately; requests queued
        during a drain wait for the next one.

        Returns:
            Number of requests whose features were stored.

        Raises:
            FeatureLoaderError: If requests are queued and no loader is set.
        """
        if self._preloading or not self._queue:
            return 0
        loader = self._require_loader()

        self._preloading = True
        pending, self._queue = self._queue, []
        pending.sort(key=lambda request: request.priority.rank, reverse=True)
        batch_size = self.settings.preload_batch_size
        stored = 0
        done = 0

        logger.info("Preloading feature definitions", requests=len(pending))
        try:
            for start in range(0, len(pending), batch_size):
                batch = pending[start : start + batch_size]
                results = await asyncio.gather(
                    *(
                        loader.load_class_features(r.class_id, r.level, r.subclass)
                        for r in batch
                    ),
                    return_exceptions=True,
                )
                for request, result in zip(batch, results):
                    done += 1
                    if isinstance(result, BaseException):
                        logger.warning("Preload failed", key=request.key, error=str(result))
                        continue
                    result = coerce_features_result(result)
                    if result.error is not None:
                        logger.warning("Preload returned error", key=request.key, error=result.error)
                        continue
                    self.set(request.class_id, request.level, result.features, request.subclass)
                    stored += 1

                if start + batch_size < len(pending):
                    await self._sleep(self.settings.preload_batch_delay_seconds)
        finally:
            self._preloading = False
            if done < len(pending):
                # Interrupted drain: unprocessed requests wait for the next one
                for request in pending[done:]:
                    self.preload(request.class_id, request.level, request.subclass, request.priority)
                logger.warning("Preload interrupted", requeued=len(pending) - done)

        logger.info("Preload finished", requests=len(pending), stored=stored)
        return stored

    async def _resolve_class_id(self, class_name: str, subclass: str | None) -> str | None:
        loader = self._require_loader()
        try:
            result: ClassDataResult = await loader.load_class_data(class_name, subclass)
        except Exception as exc:
            logger.warning("Class lookup raised", class_name=class_name, error=str(exc))
            return None
        if result.class_id is None:
            logger.warning("Class lookup failed", class_name=class_name, error=result.error)
        return result.class_id

    async def preload_for_characters(self, characters: Iterable[CharacterSnapshot]) -> int:
        """Preload definitions for every class of every character.

        Classes without a known id are resolved through the loader by name.
        One request is queued per distinct class, subclass and level, at
        high priority, and the queue is then drained.

        Returns:
            Number of requests whose features were stored.
        """
        resolved: dict[tuple[str, str | None], str | None] = {}
        for character in characters:
            for character_class in character.all_classes():
                class_id = character_class.class_id
                if not class_id:
                    lookup = (character_class.name.strip().lower(), character_class.subclass)
                    if lookup not in resolved:
                        resolved[lookup] = await self._resolve_class_id(
                            character_class.name, character_class.subclass
                        )
                    class_id = resolved[lookup]
                if class_id:
                    self.preload(
                        class_id,
                        character_class.level,
                        character_class.subclass,
                        PreloadPriority.HIGH,
                    )
        return await self.process_preload_queue()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _sweep(self) -> None:
        while True:
            await asyncio.sleep(self.settings.cleanup_interval_seconds)
            self.cleanup()

    async def start(self) -> None:
        """Start the periodic expiry sweep."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep())
            logger.debug("Cache sweep started", interval=self.settings.cleanup_interval_seconds)

    async def close(self) -> None:
        """Stop the sweep and drop all entries and queued requests."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        self.clear()
        self._queue.clear()
        logger.debug("FeatureDefinitionCache closed")

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def __aenter__(self) -> FeatureDefinitionCache:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


__all__ = [
    "cache_key",
    "coerce_features_result",
    "CacheEntry",
    "PreloadRequest",
    "CacheStats",
    "CacheStatsEntry",
    "FeatureDefinitionCache",
]
