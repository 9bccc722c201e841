"""Periodic eviction loop driving ImageStore.cleanup."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta

from imgcache.cache.store import ImageStore
from imgcache.types import CleanupReport

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(hours=6)
DEFAULT_MAX_AGE = timedelta(days=7)
DEFAULT_RETRY_DELAY = timedelta(minutes=30)


class EvictionTrigger:
    """Runs cleanup on a fixed cadence until asked to stop.

    A failed cycle is logged and retried after ``retry_delay``; the loop
    itself only exits when the stop event is set.
    """

    def __init__(
        self,
        store: ImageStore,
        interval: timedelta = DEFAULT_INTERVAL,
        max_age: timedelta = DEFAULT_MAX_AGE,
        retry_delay: timedelta = DEFAULT_RETRY_DELAY,
    ) -> None:
        self._store = store
        self._interval = interval
        self._max_age = max_age
        self._retry_delay = retry_delay
        self._cycles = 0
        self._last_report: CleanupReport | None = None

    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def last_report(self) -> CleanupReport | None:
        return self._last_report

    async def run_once(self, stop_event: asyncio.Event | None = None) -> CleanupReport:
        report = await self._store.cleanup(self._max_age, stop_event=stop_event)
        self._cycles += 1
        self._last_report = report
        return report

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info(
            "Image cache cleanup every %s, keeping images for %s",
            self._interval,
            self._max_age,
        )
        while not stop_event.is_set():
            try:
                await self.run_once(stop_event)
                delay = self._interval
            except Exception:
                logger.exception("Error during image cache cleanup")
                delay = self._retry_delay
            await _wait(stop_event, delay)
        logger.info("Image cache cleanup stopped")


async def _wait(stop_event: asyncio.Event, delay: timedelta) -> None:
    """Sleep for ``delay`` or until the stop event fires, whichever is first."""
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(stop_event.wait(), timeout=delay.total_seconds())
