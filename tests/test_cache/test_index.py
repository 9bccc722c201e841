"""Tests for the striped metadata index."""

import threading
from datetime import UTC, datetime
from pathlib import Path

import pytest

from imgcache.cache.hasher import hash_bytes
from imgcache.cache.index import MetadataIndex
from imgcache.types import CacheEntry


def _entry(seed: str, **kwargs) -> CacheEntry:
    image_id = hash_bytes(seed.encode())
    defaults = {
        "content_type": "image/png",
        "location": Path(f"/tmp/{image_id}.png"),
        "created_at": datetime.now(UTC),
        "size_bytes": 10,
    }
    defaults.update(kwargs)
    return CacheEntry(id=image_id, **defaults)


class TestMetadataIndex:
    def test_upsert_and_get(self):
        index = MetadataIndex()
        entry = _entry("a")
        index.upsert(entry)
        assert index.try_get(entry.id) is entry

    def test_get_miss(self):
        assert MetadataIndex().try_get("missing") is None

    def test_upsert_replaces(self):
        index = MetadataIndex()
        first = _entry("a", content_type="image/png")
        second = _entry("a", content_type="image/gif")
        index.upsert(first)
        index.upsert(second)
        assert index.try_get(first.id).content_type == "image/gif"
        assert len(index) == 1

    def test_add_if_absent(self):
        index = MetadataIndex()
        first = _entry("a")
        assert index.add_if_absent(first) is True
        assert index.add_if_absent(_entry("a", size_bytes=99)) is False
        assert index.try_get(first.id) is first

    def test_remove(self):
        index = MetadataIndex()
        entry = _entry("a")
        index.upsert(entry)
        assert index.remove(entry.id) is entry
        assert index.remove(entry.id) is None
        assert entry.id not in index

    def test_remove_expected_mismatch_keeps_entry(self):
        index = MetadataIndex()
        current = _entry("a")
        index.upsert(current)
        stale = _entry("a", size_bytes=1)
        assert index.remove(current.id, expected=stale) is None
        assert index.try_get(current.id) is current

    def test_scan_and_len(self):
        index = MetadataIndex(stripes=4)
        entries = [_entry(str(i)) for i in range(20)]
        for e in entries:
            index.upsert(e)
        assert len(index) == 20
        assert {k for k, _ in index.scan()} == {e.id for e in entries}
        assert set(index) == {e.id for e in entries}

    def test_clear(self):
        index = MetadataIndex()
        index.upsert(_entry("a"))
        index.clear()
        assert len(index) == 0

    def test_invalid_stripes(self):
        with pytest.raises(ValueError):
            MetadataIndex(stripes=0)

    def test_concurrent_writers(self):
        index = MetadataIndex(stripes=8)
        entries = [_entry(str(i)) for i in range(400)]

        def write(chunk):
            for e in chunk:
                index.upsert(e)

        threads = [threading.Thread(target=write, args=(entries[i::8],)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(index) == 400

    def test_concurrent_add_same_id_single_winner(self):
        index = MetadataIndex()
        candidates = [_entry("same", size_bytes=i) for i in range(16)]
        wins = []
        barrier = threading.Barrier(len(candidates))

        def add(entry):
            barrier.wait()
            if index.add_if_absent(entry):
                wins.append(entry)

        threads = [threading.Thread(target=add, args=(c,)) for c in candidates]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(wins) == 1
        assert len(index) == 1
