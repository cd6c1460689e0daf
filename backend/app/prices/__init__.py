"""Price feed subsystem.

Public API:
    Quote / PriceUpdate      - Immutable price snapshot dataclasses
    FreshnessCache           - TTL quote cache with stale fallback, single-flight
    FallbackResolver         - First-success-wins over ordered SourceAdapters
    BatchLookup              - Many token prices in one upstream request
    HistoryStore             - Bounded rolling price history with stats
    SubscriptionMultiplexer  - One shared poll per token, fan-out to subscribers
    Settings                 - Environment-driven configuration
    create_price_feed        - Factory that assembles a live or simulated feed
    create_price_router      - FastAPI router factory for the quote endpoints
    create_stream_router     - FastAPI router factory for the SSE endpoint
"""

from .batch import BatchLookup
from .cache import FreshnessCache
from .config import Settings
from .factory import PriceFeed, create_price_feed
from .history import HistoryStore
from .models import Freshness, PriceUpdate, Quote
from .multiplexer import SubscriptionMultiplexer
from .resolver import FallbackResolver
from .routes import create_price_router
from .stream import create_stream_router

__all__ = [
    "BatchLookup",
    "FallbackResolver",
    "Freshness",
    "FreshnessCache",
    "HistoryStore",
    "PriceFeed",
    "PriceUpdate",
    "Quote",
    "Settings",
    "SubscriptionMultiplexer",
    "create_price_feed",
    "create_price_router",
    "create_stream_router",
]
