"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Storage
DEFAULT_CACHE_DIR = str(Path.home() / ".imgcache" / "images")
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_EPHEMERAL = False

# Eviction
DEFAULT_MAX_AGE_HOURS = 7 * 24.0
DEFAULT_CLEANUP_INTERVAL_HOURS = 6.0
DEFAULT_RETRY_DELAY_MINUTES = 30.0
DEFAULT_TEMP_GRACE_MINUTES = 60.0
DEFAULT_CLEANUP_DISABLED = False

# HTTP
DEFAULT_ROUTE_PREFIX = "/api"
DEFAULT_CACHE_CONTROL_MAX_AGE = 86400

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "cache_dir": DEFAULT_CACHE_DIR,
        "chunk_size": DEFAULT_CHUNK_SIZE,
        "ephemeral": DEFAULT_EPHEMERAL,
        "max_age_hours": DEFAULT_MAX_AGE_HOURS,
        "cleanup_interval_hours": DEFAULT_CLEANUP_INTERVAL_HOURS,
        "retry_delay_minutes": DEFAULT_RETRY_DELAY_MINUTES,
        "temp_grace_minutes": DEFAULT_TEMP_GRACE_MINUTES,
        "cleanup_disabled": DEFAULT_CLEANUP_DISABLED,
        "route_prefix": DEFAULT_ROUTE_PREFIX,
        "cache_control_max_age": DEFAULT_CACHE_CONTROL_MAX_AGE,
        "log_level": DEFAULT_LOG_LEVEL,
    }
