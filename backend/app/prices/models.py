"""Data models for the price feed."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from .errors import NoPriceData


@dataclass(frozen=True, slots=True)
class Quote:
    """Canonical, provider-agnostic quote for one asset."""

    price: float
    change_24h: float = 0.0  # Signed percent
    volume_24h: float = 0.0
    market_cap: float = 0.0
    observed_at: float = field(default_factory=time.time)  # Unix seconds

    def to_dict(self) -> dict:
        """Serialize for JSON. ``lastUpdate`` is in milliseconds."""
        return {
            "price": self.price,
            "change24h": self.change_24h,
            "volume24h": self.volume_24h,
            "marketCap": self.market_cap,
            "lastUpdate": int(self.observed_at * 1000),
        }


@dataclass(frozen=True, slots=True)
class CacheEntry:
    quote: Quote
    stored_at: float


class Freshness(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class QuoteLookup:
    """Result of a cache read: the quote (if any) and how much to trust it."""

    quote: Quote | None
    freshness: Freshness

    def require(self) -> Quote:
        """Return the quote, or raise NoPriceData if none was ever obtained."""
        if self.quote is None:
            raise NoPriceData("No fresh or stale price data available")
        return self.quote


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Latest polled price for one token mint. Delivered to subscribers."""

    mint: str
    symbol: str
    price: float
    timestamp: float = field(default_factory=time.time)  # Unix seconds
    change_24h: float = 0.0

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "price": self.price,
            "timestamp": int(self.timestamp * 1000),
            "change24h": self.change_24h,
        }


@dataclass(frozen=True, slots=True)
class TokenQuote:
    """One entry of a batch lookup."""

    id: str
    price: float
    change_24h: float = 0.0

    def to_dict(self) -> dict:
        return {"id": self.id, "price": self.price, "change24h": self.change_24h}


@dataclass(frozen=True, slots=True)
class HistoryPoint:
    timestamp: float  # Unix seconds
    price: float
    symbol: str

    def to_dict(self) -> dict:
        return {
            "timestamp": int(self.timestamp * 1000),
            "price": self.price,
            "symbol": self.symbol,
        }


@dataclass(frozen=True, slots=True)
class PriceStats:
    """High/low/change over a history window. All zero for an empty window."""

    high: float = 0.0
    low: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0

    def to_dict(self) -> dict:
        return {
            "high": self.high,
            "low": self.low,
            "change": self.change,
            "changePercent": self.change_percent,
        }
