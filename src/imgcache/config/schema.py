"""Pydantic model for resolved cache configuration."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from imgcache.config import defaults


class CacheSettings(BaseModel):
    """Validated settings consumed by the store, eviction loop and HTTP app."""

    cache_dir: Path = Path(defaults.DEFAULT_CACHE_DIR)
    chunk_size: int = Field(default=defaults.DEFAULT_CHUNK_SIZE, gt=0)
    ephemeral: bool = defaults.DEFAULT_EPHEMERAL

    max_age_hours: float = Field(default=defaults.DEFAULT_MAX_AGE_HOURS, gt=0)
    cleanup_interval_hours: float = Field(default=defaults.DEFAULT_CLEANUP_INTERVAL_HOURS, gt=0)
    retry_delay_minutes: float = Field(default=defaults.DEFAULT_RETRY_DELAY_MINUTES, gt=0)
    temp_grace_minutes: float = Field(default=defaults.DEFAULT_TEMP_GRACE_MINUTES, ge=0)
    cleanup_disabled: bool = defaults.DEFAULT_CLEANUP_DISABLED

    route_prefix: str = defaults.DEFAULT_ROUTE_PREFIX
    cache_control_max_age: int = Field(default=defaults.DEFAULT_CACHE_CONTROL_MAX_AGE, ge=0)

    log_level: str = defaults.DEFAULT_LOG_LEVEL

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _expand_user(cls, value: object) -> object:
        if isinstance(value, str | Path):
            return Path(value).expanduser()
        return value

    @field_validator("route_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = "/" + value.strip("/")
        return "" if value == "/" else value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def max_age(self) -> timedelta:
        return timedelta(hours=self.max_age_hours)

    @property
    def cleanup_interval(self) -> timedelta:
        return timedelta(hours=self.cleanup_interval_hours)

    @property
    def retry_delay(self) -> timedelta:
        return timedelta(minutes=self.retry_delay_minutes)

    @property
    def temp_grace(self) -> timedelta:
        return timedelta(minutes=self.temp_grace_minutes)
