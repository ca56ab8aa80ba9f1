"""
Geocode Cache Service.

In-memory store of resolved places keyed by quantized coordinate, with
single-flight de-duplication: concurrent lookups for the same key share one
underlying fetch.

One instance lives for the application session (created in the lifespan);
tests build isolated instances.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from triptrace.app.schemas.geocoding import CoordinateKey, PlaceResult

logger = logging.getLogger(__name__)

Fetcher = Callable[[CoordinateKey], Awaitable[PlaceResult]]


class GeocodeCache:

    def __init__(self, cache_failures: bool = True):
        self.cache_failures = cache_failures
        self._entries: Dict[CoordinateKey, PlaceResult] = {}
        self._in_flight: Dict[CoordinateKey, "asyncio.Task[PlaceResult]"] = {}
        # Bumped on clear() so fetches started earlier don't repopulate the cache
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CoordinateKey) -> bool:
        return key in self._entries

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def get(self, key: CoordinateKey) -> Optional[PlaceResult]:
        return self._entries.get(key)

    async def resolve_or_fetch(self, key: CoordinateKey, fetcher: Fetcher) -> PlaceResult:
        """
        Return the cached place for `key`, joining an in-flight fetch or
        starting a new one when needed.

        Args:
            key: Quantized coordinate
            fetcher: Coroutine function resolving a key (called at most once
                per key while a fetch is pending)

        Returns:
            The cached or freshly fetched PlaceResult. Every caller waiting on
            the same fetch receives the same object.
        """
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(key, fetcher, self._generation))
            self._in_flight[key] = task
            logger.debug("Geocode fetch started for %s", key)
        else:
            logger.debug("Joining in-flight geocode fetch for %s", key)

        # A cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(task)

    async def _fetch(self, key: CoordinateKey, fetcher: Fetcher, generation: int) -> PlaceResult:
        try:
            result = await fetcher(key)
            if generation == self._generation and (self.cache_failures or not result.failed):
                self._entries[key] = result
            return result
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def clear(self):
        """
        Drop every cached entry.

        Pending fetches stay registered so new callers still join them; they
        resolve their waiters but no longer store their result.
        """
        self._entries.clear()
        self._generation += 1
        logger.info("Geocode cache cleared")
