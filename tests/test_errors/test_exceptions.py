"""Tests for custom exception hierarchy."""

from pathlib import Path

import pytest

from imgcache.errors.exceptions import (
    ConfigError,
    ImageCacheError,
    InvalidInputError,
    StorageError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_base(self):
        assert issubclass(InvalidInputError, ImageCacheError)
        assert issubclass(StorageError, ImageCacheError)
        assert issubclass(ConfigError, ImageCacheError)

    def test_all_inherit_from_exception(self):
        assert issubclass(ImageCacheError, Exception)


class TestInvalidInputError:
    def test_attributes(self):
        err = InvalidInputError("Content type is required", field="content_type")
        assert err.field == "content_type"
        assert err.message == "Content type is required"
        assert "Content type is required" in str(err)

    def test_defaults(self):
        assert InvalidInputError("x").field is None


class TestStorageError:
    def test_attributes(self):
        original = OSError("disk full")
        err = StorageError("write failed", operation="write", path=Path("/tmp/x"), original=original)
        assert err.operation == "write"
        assert err.path == Path("/tmp/x")
        assert err.original is original

    def test_defaults(self):
        err = StorageError("oops")
        assert err.operation == "write"
        assert err.path is None
        assert err.original is None

    def test_can_be_caught_as_base(self):
        with pytest.raises(ImageCacheError):
            raise StorageError("boom", operation="read")


class TestConfigError:
    def test_key(self):
        assert ConfigError("bad", key="chunk_size").key == "chunk_size"
