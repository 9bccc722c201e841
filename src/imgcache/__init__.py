"""imgcache — content-addressed image cache with deduplication and age-based eviction."""

from imgcache.cache.eviction import EvictionTrigger
from imgcache.cache.index import MetadataIndex
from imgcache.cache.store import ImageStore
from imgcache.config.hierarchy import load_settings
from imgcache.config.schema import CacheSettings
from imgcache.errors.exceptions import (
    ConfigError,
    ImageCacheError,
    InvalidInputError,
    StorageError,
)
from imgcache.types import CachedImage, CacheEntry, CleanupReport, StoreStats

__all__ = [
    "ImageStore",
    "MetadataIndex",
    "EvictionTrigger",
    "CacheSettings",
    "load_settings",
    "CacheEntry",
    "CachedImage",
    "CleanupReport",
    "StoreStats",
    "ImageCacheError",
    "InvalidInputError",
    "StorageError",
    "ConfigError",
]
