"""In-memory metadata index with striped locking."""

from __future__ import annotations

import threading
from collections.abc import Iterator

from imgcache.types import CacheEntry

_DEFAULT_STRIPES = 16


class MetadataIndex:
    """Maps image id -> CacheEntry.

    Each id hashes to one of N stripes; a stripe owns its own dict and
    lock, so writers of different ids rarely contend and there is no
    index-wide mutex.
    """

    def __init__(self, stripes: int = _DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._shards: list[dict[str, CacheEntry]] = [{} for _ in range(stripes)]

    def try_get(self, image_id: str) -> CacheEntry | None:
        shard, lock = self._stripe(image_id)
        with lock:
            return shard.get(image_id)

    def upsert(self, entry: CacheEntry) -> None:
        shard, lock = self._stripe(entry.id)
        with lock:
            shard[entry.id] = entry

    def add_if_absent(self, entry: CacheEntry) -> bool:
        """Insert only when no entry exists for the id. Returns True if added."""
        shard, lock = self._stripe(entry.id)
        with lock:
            if entry.id in shard:
                return False
            shard[entry.id] = entry
            return True

    def remove(self, image_id: str, expected: CacheEntry | None = None) -> CacheEntry | None:
        """Remove and return the entry for an id.

        With ``expected`` set, the removal only happens if the stored
        entry is still that exact object.
        """
        shard, lock = self._stripe(image_id)
        with lock:
            if expected is not None and shard.get(image_id) is not expected:
                return None
            return shard.pop(image_id, None)

    def scan(self) -> list[tuple[str, CacheEntry]]:
        """Point-in-time snapshot, taken one stripe at a time."""
        snapshot: list[tuple[str, CacheEntry]] = []
        for shard, lock in zip(self._shards, self._locks, strict=True):
            with lock:
                snapshot.extend(shard.items())
        return snapshot

    def clear(self) -> None:
        for shard, lock in zip(self._shards, self._locks, strict=True):
            with lock:
                shard.clear()

    def __contains__(self, image_id: object) -> bool:
        if not isinstance(image_id, str):
            return False
        return self.try_get(image_id) is not None

    def __len__(self) -> int:
        total = 0
        for shard, lock in zip(self._shards, self._locks, strict=True):
            with lock:
                total += len(shard)
        return total

    def __iter__(self) -> Iterator[str]:
        return iter([image_id for image_id, _ in self.scan()])

    def _stripe(self, image_id: str) -> tuple[dict[str, CacheEntry], threading.Lock]:
        idx = hash(image_id) % len(self._locks)
        return self._shards[idx], self._locks[idx]
