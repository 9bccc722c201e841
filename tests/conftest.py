import pytest

from imgcache.cache.store import ImageStore


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    import base64
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "images"


@pytest.fixture
def store(cache_dir):
    """An ImageStore rooted in a fresh temporary directory."""
    s = ImageStore(cache_dir)
    yield s
    s.close()
