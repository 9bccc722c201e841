"""On-disk layout — file naming, extension tables and reference format."""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from urllib.parse import urlsplit

from imgcache.cache.hasher import DIGEST_LENGTH

TEMP_PREFIX = "tmp_"
GENERIC_EXTENSION = ".bin"
GENERIC_CONTENT_TYPE = "application/octet-stream"
DEFAULT_ROUTE_PREFIX = "/api"

_ID_RE = re.compile(rf"^[0-9a-f]{{{DIGEST_LENGTH}}}$")

_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
    "image/tiff": ".tiff",
}

# Used only when rebuilding the index, where no content type was supplied
_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}


def extension_for(content_type: str) -> str:
    """Map a MIME type to its canonical file extension."""
    return _EXTENSIONS.get(content_type.strip().lower(), GENERIC_EXTENSION)


def content_type_for(extension: str) -> str:
    """Map a file extension back to a MIME type."""
    return _CONTENT_TYPES.get(extension.lower(), GENERIC_CONTENT_TYPE)


def is_valid_id(value: str) -> bool:
    return bool(_ID_RE.match(value))


def is_temp_name(name: str) -> bool:
    return name.startswith(TEMP_PREFIX)


def committed_path(cache_dir: Path, image_id: str, content_type: str) -> Path:
    return cache_dir / f"{image_id}{extension_for(content_type)}"


def temp_path(cache_dir: Path, content_type: str) -> Path:
    """A fresh, uniquely named temp file path in the reserved namespace."""
    return cache_dir / f"{TEMP_PREFIX}{uuid.uuid4().hex}{extension_for(content_type)}"


def parse_committed_name(path: Path) -> str | None:
    """Return the id a committed file name encodes, or None.

    Temp files and names whose stem is not a digest are rejected.
    """
    if is_temp_name(path.name):
        return None
    stem = path.stem
    return stem if is_valid_id(stem) else None


def reference_for(image_id: str, prefix: str = DEFAULT_ROUTE_PREFIX) -> str:
    """Caller-facing reference, e.g. ``/api/images/<id>``."""
    return f"{prefix.rstrip('/')}/images/{image_id}"


def normalize_identifier(identifier: str) -> str | None:
    """Reduce a bare id, a reference or an absolute URL to a bare id.

    Returns None when nothing resembling a valid id can be extracted.
    """
    if not identifier:
        return None
    value = identifier.strip()
    if "/" in value:
        path = urlsplit(value).path
        segments = [s for s in path.split("/") if s]
        if len(segments) < 2 or segments[-2].lower() != "images":
            return None
        value = segments[-1]
    # Drop an extension if one was appended to the last segment
    value = value.split(".", 1)[0].lower()
    return value if is_valid_id(value) else None
