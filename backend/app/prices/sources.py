"""Upstream market-data adapters.

Each adapter targets one fixed REST endpoint and normalizes the provider's
JSON shape into a canonical Quote. Adapters never raise: any failure is
logged and reported as ``None`` so the fallback chain can move on.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .errors import PriceFeedError, SourceMalformed, SourceUnavailable
from .models import PriceUpdate, Quote

logger = logging.getLogger(__name__)

# Everything a parse or transport step can throw for a bad upstream answer
_FETCH_ERRORS = (PriceFeedError, httpx.HTTPError, ValueError, LookupError, TypeError)


def safe_float(value: Any, default: float = 0.0) -> float:
    """Coerce a provider field (number or numeric string) to a finite float."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _price(value: Any) -> float:
    price = safe_float(value)
    if price <= 0:
        raise SourceMalformed(f"missing or invalid price: {value!r}")
    return price


def _object(payload: Any, key: str) -> dict:
    """Return ``payload[key]`` if it is a JSON object, else SourceMalformed."""
    node = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(node, dict):
        raise SourceMalformed(f"missing object {key!r}")
    return node


class SourceAdapter(ABC):
    """Contract for single-asset quote providers.

    ``fetch()`` performs exactly one upstream call and returns a Quote, or
    None when the provider is unavailable or its payload is unusable.
    """

    name: str = "source"

    async def fetch(self) -> Quote | None:
        try:
            quote = await self._fetch_quote()
        except _FETCH_ERRORS as e:
            logger.warning("Price source %s unavailable: %s", self.name, e)
            return None
        except Exception:
            logger.exception("Price source %s failed unexpectedly", self.name)
            return None
        logger.debug("Price source %s: %.6f", self.name, quote.price)
        return quote

    @abstractmethod
    async def _fetch_quote(self) -> Quote:
        """Fetch and normalize one quote. May raise; fetch() catches."""


class HttpSource(SourceAdapter):
    """SourceAdapter backed by one GET request on a shared httpx client."""

    url: str = ""
    params: tuple[tuple[str, str], ...] = ()  # Query string pairs

    def __init__(self, client: httpx.AsyncClient, headers: dict[str, str] | None = None) -> None:
        self._client = client
        self._headers = {"Accept": "application/json", **(headers or {})}

    async def _fetch_quote(self) -> Quote:
        response = await self._client.get(self.url, params=self.params, headers=self._headers)
        response.raise_for_status()
        return self.parse(response.json())

    @abstractmethod
    def parse(self, payload: Any) -> Quote:
        """Normalize a decoded payload. Raises SourceMalformed on bad shape."""


class KuCoinSource(HttpSource):
    """KuCoin 24h stats: percent change arrives as a fraction (``changeRate``)."""

    name = "kucoin"
    url = "https://api.kucoin.com/api/v1/market/stats"
    params = (("symbol", "SOL-USDT"),)

    def parse(self, payload: Any) -> Quote:
        code = payload.get("code") if isinstance(payload, dict) else None
        if code is not None and str(code) != "200000":
            raise SourceUnavailable(f"kucoin error code {code}")
        data = _object(payload, "data")
        return Quote(
            price=_price(data.get("last")),
            change_24h=safe_float(data.get("changeRate")) * 100,
            volume_24h=safe_float(data.get("volValue")),
        )


class KrakenSource(HttpSource):
    """Kraken ticker: change is derived from the last trade and today's open.

    ``v[1]`` is 24h volume in base units, converted to quote currency.
    """

    name = "kraken"
    url = "https://api.kraken.com/0/public/Ticker"
    pair = "SOLUSD"
    params = (("pair", pair),)

    def parse(self, payload: Any) -> Quote:
        errors = payload.get("error") if isinstance(payload, dict) else None
        if errors:
            raise SourceUnavailable(f"kraken error: {errors}")
        ticker = _object(_object(payload, "result"), self.pair)

        last = ticker.get("c")
        price = _price(last[0] if isinstance(last, list) and last else None)
        open_price = safe_float(ticker.get("o"))
        change = (price - open_price) / open_price * 100 if open_price > 0 else 0.0

        volume = ticker.get("v")
        base_volume = safe_float(volume[1]) if isinstance(volume, list) and len(volume) > 1 else 0.0

        return Quote(price=price, change_24h=change, volume_24h=base_volume * price)


class CoinbaseSource(HttpSource):
    """Coinbase exchange rates: price only."""

    name = "coinbase"
    url = "https://api.coinbase.com/v2/exchange-rates"
    params = (("currency", "SOL"),)

    def parse(self, payload: Any) -> Quote:
        rates = _object(_object(payload, "data"), "rates")
        return Quote(price=_price(rates.get("USD")))


class CoinGeckoSource(HttpSource):
    """CoinGecko simple price: the only provider that reports market cap."""

    name = "coingecko"
    url = "https://api.coingecko.com/api/v3/simple/price"
    coin_id = "solana"
    params = (
        ("ids", coin_id),
        ("vs_currencies", "usd"),
        ("include_market_cap", "true"),
        ("include_24hr_vol", "true"),
        ("include_24hr_change", "true"),
    )

    def parse(self, payload: Any) -> Quote:
        coin = _object(payload, self.coin_id)
        return Quote(
            price=_price(coin.get("usd")),
            change_24h=safe_float(coin.get("usd_24h_change")),
            volume_24h=safe_float(coin.get("usd_24h_vol")),
            market_cap=safe_float(coin.get("usd_market_cap")),
        )


class TokenPriceSource(ABC):
    """Contract for per-mint price lookups used by poll tasks."""

    name: str = "tokens"

    async def fetch_update(self, mint: str) -> PriceUpdate | None:
        """Fetch the latest price for one mint, or None on any failure."""
        try:
            return await self._fetch_update(mint)
        except _FETCH_ERRORS as e:
            logger.warning("Token source %s failed for %s: %s", self.name, mint, e)
            return None
        except Exception:
            logger.exception("Token source %s failed unexpectedly for %s", self.name, mint)
            return None

    @abstractmethod
    async def _fetch_update(self, mint: str) -> PriceUpdate:
        """Fetch one update. May raise; fetch_update() catches."""


class JupiterTokenSource(TokenPriceSource):
    """Jupiter price API v2, one mint per request."""

    name = "jupiter"
    url = "https://api.jup.ag/price/v2"

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _fetch_update(self, mint: str) -> PriceUpdate:
        response = await self._client.get(
            self.url, params={"ids": mint}, headers={"Accept": "application/json"}
        )
        response.raise_for_status()
        token = _object(_object(response.json(), "data"), mint)

        change = 0.0
        vs_token = token.get("vsToken")
        if isinstance(vs_token, dict) and isinstance(vs_token.get("24h"), dict):
            change = safe_float(vs_token["24h"].get("changePercent"))

        return PriceUpdate(
            mint=mint,
            symbol=token.get("symbol") or "UNKNOWN",
            price=_price(token.get("price")),
            change_24h=change,
        )
