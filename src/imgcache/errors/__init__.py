"""Error handling — exception hierarchy for the image cache."""

from imgcache.errors.exceptions import (
    ConfigError,
    ImageCacheError,
    InvalidInputError,
    StorageError,
)

__all__ = [
    "ImageCacheError",
    "InvalidInputError",
    "StorageError",
    "ConfigError",
]
