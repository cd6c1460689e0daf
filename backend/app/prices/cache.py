"""Time-bounded quote cache with stale fallback and single-flight refresh."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from .errors import AllSourcesExhausted
from .models import CacheEntry, Freshness, Quote, QuoteLookup
from .resolver import FallbackResolver

logger = logging.getLogger(__name__)


def _retrieve_exception(task: asyncio.Task) -> None:
    """Mark a failed refresh as observed, even when every reader was cancelled."""
    if not task.cancelled():
        task.exception()


class FreshnessCache:
    """Cache of the last resolved quote for one asset.

    Readers: the single-asset quote endpoint.
    Writer: only this class, after a successful resolution.

    Concurrent get() calls that find the entry expired share one in-flight
    resolution, so a burst of readers costs a single walk of the fallback
    chain.
    """

    def __init__(
        self,
        resolver: FallbackResolver,
        ttl: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._resolver = resolver
        self._ttl = ttl
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._inflight: asyncio.Task[Quote] | None = None

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def resolver(self) -> FallbackResolver:
        return self._resolver

    async def get(self, ttl: float | None = None) -> QuoteLookup:
        """Return the cached quote if younger than ``ttl``, else refresh it.

        Falls back to the old entry (tagged STALE) when every source fails,
        or to an empty NONE lookup when nothing was ever cached.
        """
        ttl = self._ttl if ttl is None else ttl
        entry = self._entry
        if entry is not None and self._clock() - entry.stored_at < ttl:
            return QuoteLookup(entry.quote, Freshness.FRESH)

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(_retrieve_exception)
        try:
            # Shielded so one cancelled reader does not abort the shared refresh
            quote = await asyncio.shield(self._inflight)
        except AllSourcesExhausted:
            if self._entry is not None:
                logger.warning(
                    "Serving stale quote from %.0fs ago", self._clock() - self._entry.stored_at
                )
                return QuoteLookup(self._entry.quote, Freshness.STALE)
            return QuoteLookup(None, Freshness.NONE)
        return QuoteLookup(quote, Freshness.FRESH)

    def peek(self) -> CacheEntry | None:
        """Current entry regardless of age. Never touches the network."""
        return self._entry

    def clear(self) -> None:
        """Forget the cached entry. An in-flight refresh still completes."""
        self._entry = None

    async def _refresh(self) -> Quote:
        try:
            quote = await self._resolver.resolve()
            self._entry = CacheEntry(quote=quote, stored_at=self._clock())
            return quote
        finally:
            self._inflight = None
