"""Cache subsystem — content-addressed image store with an in-memory index."""

from imgcache.cache.eviction import EvictionTrigger
from imgcache.cache.hasher import HashingWriter, hash_bytes, hash_stream
from imgcache.cache.index import MetadataIndex
from imgcache.cache.layout import normalize_identifier, reference_for
from imgcache.cache.store import ImageStore

__all__ = [
    "ImageStore",
    "MetadataIndex",
    "EvictionTrigger",
    "HashingWriter",
    "hash_bytes",
    "hash_stream",
    "normalize_identifier",
    "reference_for",
]
