"""Tests for CLI commands."""

from datetime import UTC, datetime, timedelta

import pytest
from click.testing import CliRunner

from imgcache.cache.hasher import hash_bytes
from imgcache.cache.store import ImageStore
from imgcache.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def image_file(tmp_path, sample_image_bytes):
    path = tmp_path / "pixel.png"
    path.write_bytes(sample_image_bytes)
    return path


def _invoke(runner, cache_dir, *args):
    return runner.invoke(cli, ["--cache-dir", str(cache_dir), *args])


class TestCLIGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "imgcache" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0

    def test_commands_listed(self, runner):
        result = runner.invoke(cli, ["--help"])
        for name in ("put", "get", "delete", "cleanup", "stats", "serve"):
            assert name in result.output


class TestPutCommand:
    def test_put_prints_reference(self, runner, cache_dir, image_file, sample_image_bytes):
        result = _invoke(runner, cache_dir, "put", str(image_file))
        assert result.exit_code == 0
        assert f"/api/images/{hash_bytes(sample_image_bytes)}" in result.output
        assert (cache_dir / f"{hash_bytes(sample_image_bytes)}.png").exists()

    def test_put_guesses_type_from_extension(self, runner, cache_dir, tmp_path):
        jpg = tmp_path / "photo.jpeg"
        jpg.write_bytes(b"fake jpeg")
        result = _invoke(runner, cache_dir, "put", str(jpg))
        assert result.exit_code == 0
        assert (cache_dir / f"{hash_bytes(b'fake jpeg')}.jpg").exists()

    def test_put_explicit_content_type(self, runner, cache_dir, tmp_path):
        raw = tmp_path / "blob"
        raw.write_bytes(b"raw")
        result = _invoke(runner, cache_dir, "put", "--content-type", "image/webp", str(raw))
        assert result.exit_code == 0
        assert (cache_dir / f"{hash_bytes(b'raw')}.webp").exists()

    def test_put_many(self, runner, cache_dir, tmp_path):
        files = []
        for i in range(4):
            f = tmp_path / f"{i}.png"
            f.write_bytes(f"image {i}".encode())
            files.append(str(f))
        result = _invoke(runner, cache_dir, "put", "--workers", "2", *files)
        assert result.exit_code == 0
        assert len(list(cache_dir.iterdir())) == 4

    def test_put_missing_file(self, runner, cache_dir):
        result = _invoke(runner, cache_dir, "put", "nonexistent.png")
        assert result.exit_code != 0


class TestGetCommand:
    def test_get_to_file(self, runner, cache_dir, image_file, tmp_path, sample_image_bytes):
        _invoke(runner, cache_dir, "put", str(image_file))
        out = tmp_path / "out.png"
        result = _invoke(
            runner, cache_dir, "get", f"/api/images/{hash_bytes(sample_image_bytes)}", "-o", str(out)
        )
        assert result.exit_code == 0
        assert out.read_bytes() == sample_image_bytes
        assert "image/png" in result.output

    def test_get_to_stdout(self, runner, cache_dir, tmp_path):
        f = tmp_path / "t.gif"
        f.write_bytes(b"GIF89a-ish")
        _invoke(runner, cache_dir, "put", str(f))
        result = _invoke(runner, cache_dir, "get", hash_bytes(b"GIF89a-ish"))
        assert result.exit_code == 0
        assert result.stdout_bytes == b"GIF89a-ish"

    def test_get_not_found(self, runner, cache_dir):
        result = _invoke(runner, cache_dir, "get", hash_bytes(b"missing"))
        assert result.exit_code == 1


class TestDeleteCommand:
    def test_delete_existing(self, runner, cache_dir, image_file, sample_image_bytes):
        _invoke(runner, cache_dir, "put", str(image_file))
        result = _invoke(runner, cache_dir, "delete", hash_bytes(sample_image_bytes))
        assert result.exit_code == 0
        assert "Removed" in result.output
        assert list(cache_dir.iterdir()) == []

    def test_delete_missing_succeeds(self, runner, cache_dir):
        result = _invoke(runner, cache_dir, "delete", hash_bytes(b"missing"))
        assert result.exit_code == 0
        assert "Nothing to remove" in result.output


class TestCleanupCommand:
    def test_cleanup_report(self, runner, cache_dir):
        result = _invoke(runner, cache_dir, "cleanup")
        assert result.exit_code == 0
        assert "Cleanup Report" in result.output

    def test_cleanup_evicts_old_files(self, runner, cache_dir):
        import os

        store = ImageStore(cache_dir)
        store.close()
        path = cache_dir / f"{hash_bytes(b'old')}.png"
        path.write_bytes(b"old")
        old = (datetime.now(UTC) - timedelta(hours=5)).timestamp()
        os.utime(path, (old, old))

        result = _invoke(runner, cache_dir, "cleanup", "--max-age-hours", "1")

        assert result.exit_code == 0
        assert not path.exists()


class TestStatsCommand:
    def test_stats(self, runner, cache_dir, image_file):
        _invoke(runner, cache_dir, "put", str(image_file))
        result = _invoke(runner, cache_dir, "stats")
        assert result.exit_code == 0
        assert "Cache Statistics" in result.output
        assert "image/png" in result.output


class TestServeCommand:
    def test_help(self, runner):
        result = runner.invoke(cli, ["serve", "--help"])
        assert result.exit_code == 0
        assert "--port" in result.output
