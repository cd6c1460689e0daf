"""Factory for assembling the price feed."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from .batch import BatchLookup
from .cache import FreshnessCache
from .config import DEFAULT_SOURCE_ORDER, Settings
from .history import HistoryStore
from .multiplexer import SubscriptionMultiplexer
from .resolver import FallbackResolver
from .sources import (
    CoinbaseSource,
    CoinGeckoSource,
    HttpSource,
    JupiterTokenSource,
    KrakenSource,
    KuCoinSource,
    SourceAdapter,
)

logger = logging.getLogger(__name__)

SOURCE_TYPES: dict[str, type[HttpSource]] = {
    "kucoin": KuCoinSource,
    "kraken": KrakenSource,
    "coinbase": CoinbaseSource,
    "coingecko": CoinGeckoSource,
}


@dataclass
class PriceFeed:
    """The assembled component graph. One per application."""

    settings: Settings
    quotes: FreshnessCache
    batch: BatchLookup
    history: HistoryStore
    multiplexer: SubscriptionMultiplexer
    client: httpx.AsyncClient | None = None

    async def aclose(self) -> None:
        """Stop every poll task and close the HTTP client. Safe to call twice."""
        await self.multiplexer.aclose()
        if self.client is not None and not self.client.is_closed:
            await self.client.aclose()
        logger.info("Price feed closed")


def build_sources(
    names: Sequence[str],
    client: httpx.AsyncClient,
    coingecko_api_key: str = "",
) -> list[SourceAdapter]:
    """Instantiate adapters in the given priority order. Unknown names are skipped."""
    sources: list[SourceAdapter] = []
    for name in names:
        source_type = SOURCE_TYPES.get(name)
        if source_type is None:
            logger.warning("Unknown price source %r ignored", name)
            continue
        headers = None
        if source_type is CoinGeckoSource and coingecko_api_key:
            headers = {"x-cg-pro-api-key": coingecko_api_key}
        sources.append(source_type(client, headers=headers))

    if not sources:
        logger.warning("No valid price sources configured, using default order")
        return build_sources(DEFAULT_SOURCE_ORDER, client, coingecko_api_key)
    return sources


def create_price_feed(
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> PriceFeed:
    """Create the price feed for the configured mode.

    - PRICE_FEED_MODE=simulated → GBM simulator behind every upstream (no network)
    - Otherwise → live providers over a shared httpx.AsyncClient

    Nothing polls until the first subscription. Caller must await feed.aclose().
    """
    settings = settings or Settings.from_env()
    history = HistoryStore(
        capacity=settings.history_capacity, sample_interval=settings.history_sample
    )

    if settings.simulated:
        from .simulator import (
            PriceSimulator,
            SimulatedBatchLookup,
            SimulatedSource,
            SimulatedTokenSource,
        )

        sim = PriceSimulator()
        logger.info("Price feed: GBM simulator")
        return PriceFeed(
            settings=settings,
            quotes=FreshnessCache(FallbackResolver([SimulatedSource(sim)]), ttl=settings.cache_ttl),
            batch=SimulatedBatchLookup(sim),
            history=history,
            multiplexer=SubscriptionMultiplexer(
                SimulatedTokenSource(sim), history, poll_interval=settings.poll_interval
            ),
        )

    if client is None:
        client = httpx.AsyncClient(timeout=settings.http_timeout)

    sources = build_sources(settings.source_order, client, settings.coingecko_api_key)
    batch_headers = {"x-cg-pro-api-key": settings.coingecko_api_key} if settings.coingecko_api_key else None
    logger.info("Price feed: live sources %s", [s.name for s in sources])
    return PriceFeed(
        settings=settings,
        quotes=FreshnessCache(FallbackResolver(sources), ttl=settings.cache_ttl),
        batch=BatchLookup(client, headers=batch_headers),
        history=history,
        multiplexer=SubscriptionMultiplexer(
            JupiterTokenSource(client), history, poll_interval=settings.poll_interval
        ),
        client=client,
    )
