"""Content-addressed image store — dedup, atomic persist, retrieval, eviction."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections import Counter
from collections.abc import AsyncIterable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from imgcache.cache.hasher import DEFAULT_CHUNK_SIZE, HashingWriter
from imgcache.cache.index import MetadataIndex
from imgcache.cache.layout import (
    DEFAULT_ROUTE_PREFIX,
    committed_path,
    content_type_for,
    is_temp_name,
    normalize_identifier,
    parse_committed_name,
    reference_for,
    temp_path,
)
from imgcache.errors.exceptions import InvalidInputError, StorageError
from imgcache.types import CachedImage, CacheEntry, CleanupReport, StoreStats

if TYPE_CHECKING:
    from imgcache.config.schema import CacheSettings

logger = logging.getLogger(__name__)

ImageSource = bytes | bytearray | memoryview | BinaryIO | AsyncIterable[bytes]

_DEFAULT_TEMP_GRACE = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ImageStore:
    """Durable image cache keyed by the SHA-256 of the content.

    The index is the authority on what exists; the cache directory is the
    durable copy and is scanned to rebuild the index on construction.
    Blocking file I/O runs on worker threads via ``asyncio.to_thread``.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        temp_grace: timedelta = _DEFAULT_TEMP_GRACE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        ephemeral: bool = False,
        route_prefix: str = DEFAULT_ROUTE_PREFIX,
        index: MetadataIndex | None = None,
    ) -> None:
        self._cache_dir = Path(cache_dir).expanduser()
        self._temp_grace = temp_grace
        self._chunk_size = chunk_size
        self._ephemeral = ephemeral
        self._route_prefix = route_prefix
        self._index = index if index is not None else MetadataIndex()
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self.rebuild_index()

    @classmethod
    def from_config(cls, settings: CacheSettings) -> ImageStore:
        return cls(
            cache_dir=settings.cache_dir,
            temp_grace=settings.temp_grace,
            chunk_size=settings.chunk_size,
            ephemeral=settings.ephemeral,
            route_prefix=settings.route_prefix,
        )

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def index(self) -> MetadataIndex:
        return self._index

    @property
    def ephemeral(self) -> bool:
        return self._ephemeral

    def reference_for(self, image_id: str) -> str:
        return reference_for(image_id, self._route_prefix)

    # ── Ingestion ──

    async def put(
        self,
        source: ImageSource,
        content_type: str,
        file_name: str | None = None,
    ) -> str:
        """Cache image content and return its reference.

        Identical content always yields the same reference; only the first
        ingestion touches the final file or the index.
        """
        if source is None:
            raise InvalidInputError("Image payload is required", field="source")
        if not content_type or not content_type.strip():
            raise InvalidInputError("Content type is required", field="content_type")

        tmp = temp_path(self._cache_dir, content_type)
        try:
            image_id, size = await self._write_temp(source, tmp)
        except OSError as exc:
            # The temp file is left for the sweep
            logger.error("Error caching image to %s", tmp, exc_info=True)
            raise StorageError(
                f"Failed to write image: {exc}", operation="write", path=tmp, original=exc
            ) from exc

        try:
            await asyncio.to_thread(self._commit, tmp, image_id, content_type, file_name, size)
        except OSError as exc:
            logger.error("Error committing image %s", image_id, exc_info=True)
            raise StorageError(
                f"Failed to commit image {image_id}: {exc}",
                operation="rename",
                path=tmp,
                original=exc,
            ) from exc

        return self.reference_for(image_id)

    async def _write_temp(self, source: ImageSource, tmp: Path) -> tuple[str, int]:
        """Stream the payload into ``tmp``, hashing as it goes."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            buffer = memoryview(source).cast("B")
            return await asyncio.to_thread(self._write_buffer, tmp, buffer)
        if hasattr(source, "read"):
            return await asyncio.to_thread(self._write_stream, tmp, source)  # type: ignore[arg-type]
        if hasattr(source, "__aiter__"):
            handle = await asyncio.to_thread(open, tmp, "wb")
            try:
                writer = HashingWriter(handle)
                async for chunk in source:  # type: ignore[union-attr]
                    await asyncio.to_thread(writer.write, chunk)
            finally:
                handle.close()
            return writer.hexdigest(), writer.bytes_written
        raise InvalidInputError(
            f"Unsupported payload type: {type(source).__name__}", field="source"
        )

    def _write_buffer(self, tmp: Path, data: memoryview) -> tuple[str, int]:
        with open(tmp, "wb") as handle:
            writer = HashingWriter(handle)
            for offset in range(0, len(data), self._chunk_size):
                writer.write(data[offset : offset + self._chunk_size])
        return writer.hexdigest(), writer.bytes_written

    def _write_stream(self, tmp: Path, stream: BinaryIO) -> tuple[str, int]:
        with open(tmp, "wb") as handle:
            writer = HashingWriter(handle)
            writer.copy_from(stream, self._chunk_size)
        return writer.hexdigest(), writer.bytes_written

    def _commit(
        self,
        tmp: Path,
        image_id: str,
        content_type: str,
        file_name: str | None,
        size: int,
    ) -> None:
        """Rename the temp file into place and record the entry.

        Runs as a single worker-thread call so cancelling the caller can't
        separate the rename from the index insert.
        """
        if self._index.try_get(image_id) is not None:
            logger.debug("Image %s already cached, removing temporary file", image_id)
            self._discard(tmp)
            return

        final = committed_path(self._cache_dir, image_id, content_type)
        if final.exists():
            logger.debug("Image %s was cached by concurrent operation", image_id)
            self._discard(tmp)
        else:
            tmp.rename(final)

        entry = CacheEntry(
            id=image_id,
            content_type=content_type,
            original_file_name=file_name,
            location=final,
            created_at=_utcnow(),
            size_bytes=size,
        )
        if self._index.add_if_absent(entry):
            logger.info("Cached image %s (%d bytes)", image_id, size)
            return

        # Lost a race to an ingestion of the same bytes under another extension
        winner = self._index.try_get(image_id)
        if winner is not None and winner.location != final:
            logger.debug("Dropping duplicate file %s for image %s", final, image_id)
            self._discard(final)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove %s, leaving it for cleanup: %s", path, exc)

    # ── Retrieval / deletion ──

    async def get(self, identifier: str) -> CachedImage | None:
        """Look up by bare id or reference. Returns None on a miss."""
        image_id = normalize_identifier(identifier)
        if image_id is None:
            logger.debug("Identifier %r does not name an image", identifier)
            return None

        entry = self._index.try_get(image_id)
        if entry is None:
            logger.debug("Image %s not found in cache", image_id)
            return None

        try:
            data = await asyncio.to_thread(entry.location.read_bytes)
        except FileNotFoundError:
            logger.warning("Image file %s not found on disk", entry.location)
            self._index.remove(image_id, expected=entry)
            return None
        except OSError as exc:
            raise StorageError(
                f"Failed to read image {image_id}: {exc}",
                operation="read",
                path=entry.location,
                original=exc,
            ) from exc

        return CachedImage(data=data, content_type=entry.content_type)

    async def contains(self, identifier: str) -> bool:
        image_id = normalize_identifier(identifier)
        return image_id is not None and image_id in self._index

    async def delete(self, identifier: str) -> bool:
        """Forget an image and best-effort remove its file.

        Returns False if nothing was cached under the identifier.
        """
        image_id = normalize_identifier(identifier)
        if image_id is None:
            return False

        return await self._evict(image_id)

    async def _evict(self, image_id: str, expected: CacheEntry | None = None) -> bool:
        entry = self._index.remove(image_id, expected=expected)
        if entry is None:
            return False

        try:
            await asyncio.to_thread(entry.location.unlink, missing_ok=True)
        except OSError:
            # The entry stays gone; the orphaned file is never served
            logger.error("Error removing image file %s", entry.location, exc_info=True)

        logger.info("Removed cached image %s", image_id)
        return True

    # ── Eviction ──

    async def cleanup(
        self,
        max_age: timedelta,
        stop_event: asyncio.Event | None = None,
    ) -> CleanupReport:
        """Evict entries older than ``max_age`` and sweep stale temp files.

        Never raises for I/O failures; they are logged and counted in the
        returned report.
        """
        report = CleanupReport()
        cutoff = _utcnow() - max_age
        stale = [
            (image_id, entry)
            for image_id, entry in self._index.scan()
            if entry.created_at < cutoff
        ]

        for image_id, entry in stale:
            if stop_event is not None and stop_event.is_set():
                logger.info(
                    "Cleanup interrupted after %d of %d stale images",
                    report.expired_removed,
                    len(stale),
                )
                report.aborted = True
                return report
            try:
                # Conditional on the scanned entry so a re-put since the scan survives
                if await self._evict(image_id, expected=entry):
                    report.expired_removed += 1
            except Exception:
                report.failures += 1
                logger.exception("Error evicting image %s", image_id)

        try:
            removed, failed = await asyncio.to_thread(self._sweep_temp_files)
        except OSError as exc:
            logger.error("Error during temporary files cleanup: %s", exc)
            report.error = str(exc)
        else:
            report.temp_files_removed = removed
            report.failures += failed

        logger.info(
            "Cleaned up %d old cached images, %d temporary files",
            report.expired_removed,
            report.temp_files_removed,
        )
        return report

    def _sweep_temp_files(self) -> tuple[int, int]:
        """Delete temp files older than the grace window. Returns (removed, failed)."""
        threshold = (_utcnow() - self._temp_grace).timestamp()
        removed = 0
        failed = 0
        with os.scandir(self._cache_dir) as entries:
            for dirent in entries:
                if not is_temp_name(dirent.name) or not dirent.is_file():
                    continue
                try:
                    if dirent.stat().st_mtime >= threshold:
                        continue
                    os.unlink(dirent.path)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    failed += 1
                    logger.warning("Failed to delete temporary file %s: %s", dirent.path, exc)
                    continue
                removed += 1
                logger.debug("Cleaned up temporary file %s", dirent.path)
        return removed, failed

    # ── Index lifecycle ──

    def rebuild_index(self) -> int:
        """Repopulate the index from committed files on disk.

        Temp files and names that are not a digest are skipped. The file
        modification time stands in for the creation time.
        """
        self._index.clear()
        loaded = 0
        try:
            with os.scandir(self._cache_dir) as entries:
                for dirent in entries:
                    path = Path(dirent.path)
                    image_id = parse_committed_name(path)
                    if image_id is None:
                        continue
                    try:
                        if not dirent.is_file():
                            continue
                        stat = dirent.stat()
                    except OSError as exc:
                        # Vanished or unreadable since listing
                        logger.warning("Skipping %s during index rebuild: %s", path, exc)
                        continue
                    entry = CacheEntry(
                        id=image_id,
                        content_type=content_type_for(path.suffix),
                        location=path,
                        created_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                        size_bytes=stat.st_size,
                    )
                    if self._index.add_if_absent(entry):
                        loaded += 1
                    else:
                        logger.warning("Ignoring duplicate file %s for image %s", path, image_id)
        except OSError:
            logger.error("Error loading existing image metadata", exc_info=True)

        logger.info("Loaded %d existing cached images", loaded)
        return loaded

    def stats(self) -> StoreStats:
        entries = [entry for _, entry in self._index.scan()]
        return StoreStats(
            entries=len(entries),
            size_bytes=sum(e.size_bytes for e in entries),
            content_types=dict(Counter(e.content_type for e in entries)),
        )

    def close(self) -> None:
        """Release the index. Ephemeral stores also delete their directory."""
        self._index.clear()
        if not self._ephemeral:
            return
        try:
            shutil.rmtree(self._cache_dir)
            logger.info("Removed ephemeral cache directory %s", self._cache_dir)
        except FileNotFoundError:
            pass
        except OSError:
            logger.error("Error removing cache directory %s", self._cache_dir, exc_info=True)

    async def __aenter__(self) -> ImageStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
