"""Content hashing — SHA-256 identifiers computed in a single pass."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

DEFAULT_CHUNK_SIZE = 64 * 1024
DIGEST_LENGTH = 64  # hex chars of a SHA-256 digest


def hash_bytes(data: bytes | bytearray | memoryview) -> str:
    """Hash a byte sequence to a lowercase hex id."""
    return hashlib.sha256(data).hexdigest()


def hash_stream(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Hash a readable binary stream incrementally."""
    digest = hashlib.sha256()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        digest.update(chunk)
    return digest.hexdigest()


class HashingWriter:
    """Writes chunks to a binary handle while updating a SHA-256 digest.

    The payload passes through once; nothing is buffered beyond the
    chunk being written.
    """

    def __init__(self, handle: BinaryIO) -> None:
        self._handle = handle
        self._digest = hashlib.sha256()
        self._bytes_written = 0

    def write(self, chunk: bytes) -> int:
        self._digest.update(chunk)
        written = self._handle.write(chunk)
        self._bytes_written += len(chunk)
        return written

    def copy_from(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Drain a readable stream into the handle. Returns bytes copied."""
        start = self._bytes_written
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            self.write(chunk)
        return self._bytes_written - start

    def hexdigest(self) -> str:
        return self._digest.hexdigest()

    @property
    def bytes_written(self) -> int:
        return self._bytes_written
