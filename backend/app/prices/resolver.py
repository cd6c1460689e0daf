"""First-success-wins resolution over an ordered list of sources."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .errors import AllSourcesExhausted
from .models import Quote
from .sources import SourceAdapter

logger = logging.getLogger(__name__)


class FallbackResolver:
    """Try each source in priority order until one returns a quote.

    Sources are called strictly one after another; once a source succeeds
    the rest are not contacted. Caching and staleness are the caller's job.
    """

    def __init__(self, sources: Sequence[SourceAdapter]) -> None:
        self._sources = list(sources)

    @property
    def sources(self) -> list[SourceAdapter]:
        return list(self._sources)

    async def resolve(self) -> Quote:
        for source in self._sources:
            quote = await source.fetch()
            if quote is not None:
                logger.debug("Quote resolved from %s", source.name)
                return quote

        names = ", ".join(s.name for s in self._sources) or "none configured"
        logger.warning("All price sources failed (%s)", names)
        raise AllSourcesExhausted(f"All price sources failed ({names})")
