"""Per-site cache of the latest extracted treatments."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..sentinel.models import TreatmentEvent

LOGGER = logging.getLogger(__name__)


class SiteCache:
    """
    Cache of treatment lists keyed by site id.

    Every read-modify-write on a key is serialized by a per-key lock, and
    invalidate_all takes every key lock, so an invalidation can never
    interleave with a put for the same site.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._entries: dict[str, list[TreatmentEvent]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

    def _lock_for(self, site_id: str) -> asyncio.Lock:
        lock = self._locks.get(site_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[site_id] = lock
        return lock

    async def get(self, site_id: str) -> list[TreatmentEvent] | None:
        """Return a copy of the cached treatments, or None on a miss."""
        async with self._lock_for(site_id):
            events = self._entries.get(site_id)
            return None if events is None else list(events)

    async def put(self, site_id: str, events: list[TreatmentEvent]) -> None:
        """Store treatments for a site, replacing any previous entry."""
        async with self._lock_for(site_id):
            self._entries[site_id] = list(events)
            LOGGER.debug("[%s] Cached %s treatment(s).", site_id, len(events))

    async def invalidate(self, site_id: str) -> None:
        """Drop the entry for a site."""
        async with self._lock_for(site_id):
            if self._entries.pop(site_id, None) is not None:
                LOGGER.debug("[%s] Cache entry invalidated.", site_id)

    async def invalidate_all(self) -> None:
        """Drop every entry."""
        async with self._global_lock:
            for site_id in list(self._entries):
                await self.invalidate(site_id)
        LOGGER.debug("Site cache cleared.")

    async def async_replace(
        self,
        site_id: str,
        loader: Callable[[], Awaitable[list[TreatmentEvent]]],
    ) -> list[TreatmentEvent]:
        """
        Invalidate, load and store a site's treatments under one lock.

        If the loader raises or is cancelled the entry stays absent; it is
        never left half-written.

        Args:
            site_id: Site to refresh
            loader: Coroutine factory producing the fresh treatments

        Returns:
            The stored treatments

        """
        async with self._lock_for(site_id):
            self._entries.pop(site_id, None)
            events = await loader()
            self._entries[site_id] = list(events)
            LOGGER.debug(
                "[%s] Cache refreshed with %s treatment(s).", site_id, len(events)
            )
            return list(events)

    def cached_sites(self) -> list[str]:
        """Return the site ids with a cached entry."""
        return list(self._entries)
