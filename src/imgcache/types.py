"""Shared Pydantic models for imgcache."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# ── Cache models ──


class CacheEntry(BaseModel):
    """Metadata for one committed image. Held only in the index."""

    model_config = ConfigDict(frozen=True)

    id: str
    content_type: str
    original_file_name: str | None = None
    location: Path
    created_at: datetime
    size_bytes: int = 0


class CachedImage(BaseModel):
    """Image content returned by a successful lookup."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    content_type: str


class CleanupReport(BaseModel):
    """Outcome of one cleanup cycle."""

    expired_removed: int = 0
    temp_files_removed: int = 0
    failures: int = 0
    aborted: bool = False
    error: str | None = None


class StoreStats(BaseModel):
    """Aggregate store statistics."""

    entries: int = 0
    size_bytes: int = 0
    content_types: dict[str, int] = Field(default_factory=dict)

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)
