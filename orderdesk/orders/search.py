"""
Debounced search-as-you-type.

Every ``submit`` restarts the delay, so only the last query typed within the window
hits the API. Each fetch carries the generation it was issued for; when responses
come back out of order, anything older than the newest generation is dropped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from orderdesk.config import settings

logger = logging.getLogger("orderdesk.search")


class DebouncedSearch:
    def __init__(self, fetch: Callable[[str], Awaitable[list]], delay: float | None = None):
        self.fetch = fetch
        self.delay = settings.SEARCH_DEBOUNCE_MS / 1000 if delay is None else delay
        self.generation = 0
        self.applied_generation = 0
        self.query = ""
        self.results: list = []
        self.error: str | None = None
        self._task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        # Set whenever the newest generation has settled, with results or an error
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def pending(self) -> bool:
        waiting = self._task is not None and not self._task.done()
        return waiting or bool(self._in_flight)

    def submit(self, query: str) -> int:
        """Schedule a search for ``query`` and return its generation."""
        self.generation += 1
        generation = self.generation
        self.query = query

        if self._task is not None and not self._task.done():
            self._task.cancel()

        if not query.strip():
            self.results = []
            self.error = None
            self.applied_generation = generation
            self._task = None
            self._settled.set()
            return generation

        self.error = None
        self._settled.clear()
        self._task = asyncio.get_running_loop().create_task(self._run(query, generation))
        return generation

    async def _run(self, query: str, generation: int):
        await asyncio.sleep(self.delay)
        # Past the delay the request is in flight and is no longer cancelled by newer input
        task = asyncio.get_running_loop().create_task(self._fetch(query, generation))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _fetch(self, query: str, generation: int):
        try:
            results = await self.fetch(query)
        except Exception as e:
            logger.error(f"Search for '{query}' failed: {str(e)}")
            if generation == self.generation:
                self.error = str(e)
                self._settled.set()
            return

        if generation != self.generation:
            logger.debug(f"Dropping stale results for '{query}' (generation {generation} < {self.generation})")
            return

        self.results = list(results)
        self.error = None
        self.applied_generation = generation
        self._settled.set()

    async def wait(self, timeout: float | None = None) -> list:
        """Wait until the newest submitted query has produced results."""
        try:
            await asyncio.wait_for(self._settled.wait(), timeout)
        except asyncio.TimeoutError:
            raise asyncio.TimeoutError(f"Search for '{self.query}' did not finish in time") from None
        return self.results
