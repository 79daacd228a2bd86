from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from .const import DOMAIN
from .coordinator import FeedCoordinator

_LOGGER = logging.getLogger(__name__)


class PollScheduler:
    """One asyncio task per enabled feed, each ticking on its own interval.

    Ticks are fixed-rate: the first one fires one interval after start, and
    ticks missed while a slow cycle was running are dropped rather than queued.
    """

    def __init__(self, coordinators: Iterable[FeedCoordinator]) -> None:
        self.coordinators = list(coordinators)
        self._stop = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def run(self) -> None:
        """Poll until stop() is called. Returns once every feed task has ended."""
        active = [c for c in self.coordinators if c.enabled]
        if not active:
            _LOGGER.warning("No feeds enabled, nothing to poll")
            return

        self._stop.clear()
        self._tasks = [
            asyncio.create_task(self._async_poll(coordinator), name=f"{DOMAIN}-{coordinator.name}")
            for coordinator in active
        ]
        _LOGGER.info("Polling %s", ", ".join(c.name for c in active))

        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for coordinator, result in zip(active, results):
            if isinstance(result, Exception):
                _LOGGER.error("%s: poll loop ended with error: %r", coordinator.name, result)

        _LOGGER.info("Polling stopped")

    def stop(self) -> None:
        """Stop ticking and cancel any cycle in flight. Safe to call from a signal handler."""
        self._stop.set()
        for task in self._tasks:
            if not task.done():
                task.cancel()

    async def async_stop(self) -> None:
        self.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _async_poll(self, coordinator: FeedCoordinator) -> None:
        assert coordinator.update_interval is not None
        interval = coordinator.update_interval.total_seconds()

        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval

        while not self._stop.is_set():
            delay = next_tick - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                if self._stop.is_set():
                    break

            await coordinator.async_refresh()

            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // interval) + 1
                _LOGGER.debug("%s: cycle overran, dropping %d tick(s)", coordinator.name, skipped)
                next_tick += skipped * interval
