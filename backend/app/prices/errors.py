"""Exception hierarchy for the price feed.

Only NoPriceData is ever user-visible. The others are raised and recovered
inside the pipeline:

    SourceUnavailable    one provider failed (transport, status, decode)
    SourceMalformed      payload decoded but lacks required fields
    AllSourcesExhausted  every provider failed in one resolution
    NoPriceData          nothing fresh or stale to serve
"""


class PriceFeedError(Exception):
    """Base class for price feed errors."""


class SourceUnavailable(PriceFeedError):
    """A single upstream provider could not be reached or refused the request."""


class SourceMalformed(SourceUnavailable):
    """A provider answered, but the payload is missing required fields."""


class AllSourcesExhausted(PriceFeedError):
    """Every source in the fallback chain failed."""


class NoPriceData(PriceFeedError):
    """No price was ever obtained and all sources are failing."""
