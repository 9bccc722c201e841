"""Configuration — layered defaults, YAML files, environment and overrides."""

from imgcache.config.hierarchy import load_config_hierarchy, load_settings
from imgcache.config.schema import CacheSettings

__all__ = ["CacheSettings", "load_config_hierarchy", "load_settings"]
