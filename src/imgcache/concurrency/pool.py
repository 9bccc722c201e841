"""Bounded async pool for ingesting many images at once."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from imgcache.cache.store import ImageSource, ImageStore

logger = logging.getLogger(__name__)

IngestItem = tuple["ImageSource", str, "str | None"]


class IngestPool:
    """Dispatches concurrent ``ImageStore.put`` calls behind a semaphore.

    A failing item does not affect its neighbours; it yields None in the
    result list.
    """

    def __init__(self, store: ImageStore, max_workers: int = 5) -> None:
        self._store = store
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    async def ingest_batch(self, items: Sequence[IngestItem]) -> list[str | None]:
        """Ingest every item; returns references in input order."""
        semaphore = asyncio.Semaphore(self._max_workers)

        async def worker(item: IngestItem) -> str:
            source, content_type, file_name = item
            async with semaphore:
                return await self._store.put(source, content_type, file_name)

        results = await asyncio.gather(*(worker(i) for i in items), return_exceptions=True)

        final: list[str | None] = []
        for i, result in enumerate(results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                label = items[i][2] or f"item {i}"
                logger.error("Ingesting %s failed: %s", label, result)
                final.append(None)
            else:
                final.append(result)
        return final
