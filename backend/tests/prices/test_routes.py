"""Tests for the price HTTP endpoints."""

from typing import Any

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.prices.batch import BatchLookup
from app.prices.cache import FreshnessCache
from app.prices.errors import SourceUnavailable
from app.prices.history import HistoryStore
from app.prices.models import Quote
from app.prices.resolver import FallbackResolver
from app.prices.routes import create_price_router
from app.prices.sources import SourceAdapter

ID_MAP = {"X": "x-coin", "Z": "z-coin"}


class FakeSource(SourceAdapter):
    name = "fake"

    def __init__(self, quote: Quote | None = None) -> None:
        self.quote = quote

    async def _fetch_quote(self) -> Quote:
        if self.quote is None:
            raise SourceUnavailable("down")
        return self.quote


class StaticBatchLookup(BatchLookup):
    """BatchLookup whose upstream always answers with ``payload``."""

    def __init__(self, payload: Any) -> None:
        super().__init__(client=None, id_map=ID_MAP)
        self.payload = payload
        self.requests: list[list[str]] = []

    async def _fetch_batch(self, upstream_ids: list[str]) -> Any:
        self.requests.append(upstream_ids)
        return self.payload


def _app(source: FakeSource, clock, batch: BatchLookup | None = None, history: HistoryStore | None = None):
    app = FastAPI()
    app.include_router(
        create_price_router(
            FreshnessCache(FallbackResolver([source]), ttl=30.0, clock=clock),
            StaticBatchLookup({}) if batch is None else batch,
            HistoryStore(clock=clock) if history is None else history,
        )
    )
    return app


class TestSolPrice:
    """GET /api/prices/sol"""

    def test_fresh_quote(self, clock):
        """Test the quote body and freshness header."""
        quote = Quote(price=101.5, change_24h=1.5, volume_24h=500000.0, observed_at=1707580800.0)
        with TestClient(_app(FakeSource(quote), clock)) as client:
            response = client.get("/api/prices/sol")

        assert response.status_code == 200
        assert response.headers["X-Price-Freshness"] == "fresh"
        assert response.json() == {
            "price": 101.5,
            "change24h": 1.5,
            "volume24h": 500000.0,
            "marketCap": 0.0,
            "lastUpdate": 1707580800000,
        }

    def test_stale_quote(self, clock):
        """Test that an expired quote is still served when sources are down."""
        source = FakeSource(Quote(price=140.0))
        with TestClient(_app(source, clock)) as client:
            client.get("/api/prices/sol")
            source.quote = None
            clock.advance(120)
            response = client.get("/api/prices/sol")

        assert response.status_code == 200
        assert response.headers["X-Price-Freshness"] == "stale"
        assert response.json()["price"] == 140.0

    def test_no_data_is_503(self, clock):
        """Test that no data ever obtained yields an explicit error."""
        with TestClient(_app(FakeSource(), clock)) as client:
            response = client.get("/api/prices/sol")

        assert response.status_code == 503
        assert response.json() == {"error": "All price sources failed"}


class TestTokenPrices:
    """POST /api/prices/tokens"""

    def test_batch_prices(self, clock):
        """Test that mapped identifiers come back and unmapped ones do not."""
        batch = StaticBatchLookup({"x-coin": {"usd": 1.5, "usd_24h_change": 2.0}})
        with TestClient(_app(FakeSource(), clock, batch=batch)) as client:
            response = client.post("/api/prices/tokens", json={"identifiers": ["X", "Y", "Z"]})

        assert response.status_code == 200
        assert response.json() == {"data": {"X": {"id": "X", "price": 1.5, "change24h": 2.0}}}
        assert batch.requests == [["x-coin", "z-coin"]]

    def test_legacy_mints_key(self, clock):
        """Test that the older ``mints`` key is accepted."""
        batch = StaticBatchLookup({"z-coin": {"usd": 3.0}})
        with TestClient(_app(FakeSource(), clock, batch=batch)) as client:
            response = client.post("/api/prices/tokens", json={"mints": ["Z"]})

        assert response.json()["data"]["Z"]["price"] == 3.0

    def test_malformed_body(self, clock):
        """Test that a non-JSON body yields empty data, not an error."""
        with TestClient(_app(FakeSource(), clock)) as client:
            response = client.post(
                "/api/prices/tokens", content=b"not json", headers={"Content-Type": "application/json"}
            )

        assert response.status_code == 200
        assert response.json() == {"data": {}}

    def test_empty_and_wrong_shapes(self, clock):
        """Test empty lists, missing keys and non-list values."""
        batch = StaticBatchLookup({})
        with TestClient(_app(FakeSource(), clock, batch=batch)) as client:
            for body in ({"identifiers": []}, {}, {"identifiers": "X"}, [1, 2], {"identifiers": [1, None]}):
                response = client.post("/api/prices/tokens", json=body)
                assert response.status_code == 200
                assert response.json() == {"data": {}}

        assert batch.requests == []


class TestHistory:
    """GET /api/prices/history/{mint}"""

    def test_history_and_stats(self, clock):
        """Test points and stats for a recorded series."""
        history = HistoryStore(clock=clock)
        for price in (100.0, 110.0, 90.0):
            history.record("M", "TKN", price)
            clock.advance(60)

        with TestClient(_app(FakeSource(), clock, history=history)) as client:
            response = client.get("/api/prices/history/M")

        body = response.json()
        assert response.status_code == 200
        assert body["mint"] == "M"
        assert [p["price"] for p in body["points"]] == [100.0, 110.0, 90.0]
        assert body["stats"]["high"] == 110.0
        assert body["stats"]["low"] == 90.0
        assert body["stats"]["change"] == -10.0

    def test_window_filter(self, clock):
        """Test that ``hours`` narrows the window."""
        history = HistoryStore(clock=clock)
        history.record("M", "TKN", 100.0)
        clock.advance(2 * 3600)
        history.record("M", "TKN", 105.0)

        with TestClient(_app(FakeSource(), clock, history=history)) as client:
            response = client.get("/api/prices/history/M", params={"hours": 1})

        assert [p["price"] for p in response.json()["points"]] == [105.0]

    def test_unknown_mint_is_empty(self, clock):
        """Test that an untracked mint returns no points and zero stats."""
        with TestClient(_app(FakeSource(), clock)) as client:
            body = client.get("/api/prices/history/NOPE").json()

        assert body["points"] == []
        assert body["stats"] == {"high": 0.0, "low": 0.0, "change": 0.0, "changePercent": 0.0}

    def test_invalid_hours(self, clock):
        """Test that a non-positive window is rejected."""
        with TestClient(_app(FakeSource(), clock)) as client:
            assert client.get("/api/prices/history/M", params={"hours": 0}).status_code == 422
