"""Feature definition cache and the loader contract it depends on."""

from __future__ import annotations

from dnd_features.cache.definitions import (
    CacheEntry,
    CacheStats,
    CacheStatsEntry,
    FeatureDefinitionCache,
    PreloadRequest,
    cache_key,
)
from dnd_features.cache.loader import ClassDataResult, ClassFeaturesResult, FeatureLoader


__all__ = [
    "FeatureDefinitionCache",
    "CacheEntry",
    "PreloadRequest",
    "CacheStats",
    "CacheStatsEntry",
    "cache_key",
    "FeatureLoader",
    "ClassFeaturesResult",
    "ClassDataResult",
]
