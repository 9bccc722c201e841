"""Custom exception hierarchy for imgcache."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ImageCacheError(Exception):
    """Base exception for all imgcache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(ImageCacheError):
    """Invalid caller input — rejected before any I/O.

    Examples: missing payload, empty content type, malformed base64.
    """

    def __init__(self, message: str = "", field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class StorageError(ImageCacheError):
    """Disk I/O failure during write, rename, read or delete.

    Raised on the ingestion path so callers never believe content was
    cached when it was not.
    """

    def __init__(
        self,
        message: str = "",
        operation: str = "write",
        path: Path | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.path = path
        self.original = original


class ConfigError(ImageCacheError):
    """Configuration values failed validation."""

    def __init__(self, message: str = "", key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
