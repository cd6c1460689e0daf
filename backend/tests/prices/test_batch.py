"""Tests for BatchLookup (mocked HTTP)."""

import httpx
import pytest

from app.prices.batch import BatchLookup
from app.prices.token_ids import TOKEN_ID_MAP

ID_MAP = {"X": "x-coin", "Z": "z-coin", "X2": "x-coin"}
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _client(payload=None, status: int = 200, requests: list | None = None, raises=None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if raises is not None:
            raise raises
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestBatchLookup:
    """Unit tests for BatchLookup."""

    async def test_partial_success(self):
        """X mapped, Y unmapped, Z mapped but omitted upstream: only X comes back."""
        requests: list = []
        payload = {"x-coin": {"usd": 1.5, "usd_24h_change": 2.0}}
        async with _client(payload, requests=requests) as client:
            result = await BatchLookup(client, id_map=ID_MAP).resolve_many(["X", "Y", "Z"])

        assert set(result) == {"X"}
        assert result["X"].id == "X"
        assert result["X"].price == 1.5
        assert result["X"].change_24h == 2.0
        assert len(requests) == 1
        assert requests[0].url.params["ids"] == "x-coin,z-coin"

    async def test_unmapped_only_makes_no_request(self):
        """Test that nothing is fetched when no identifier is mapped."""
        requests: list = []
        async with _client({}, requests=requests) as client:
            result = await BatchLookup(client, id_map=ID_MAP).resolve_many(["Y", "W"])

        assert result == {}
        assert requests == []

    async def test_empty_input(self):
        """Test that an empty identifier set resolves to an empty mapping."""
        requests: list = []
        async with _client({}, requests=requests) as client:
            assert await BatchLookup(client, id_map=ID_MAP).resolve_many([]) == {}
        assert requests == []

    async def test_upstream_error_status(self):
        """Test that an upstream error yields an empty mapping, not an exception."""
        async with _client({"status": {"error_code": 429}}, status=429) as client:
            assert await BatchLookup(client, id_map=ID_MAP).resolve_many(["X"]) == {}

    async def test_transport_error(self):
        """Test that a network failure yields an empty mapping."""
        async with _client(raises=httpx.ConnectError("unreachable")) as client:
            assert await BatchLookup(client, id_map=ID_MAP).resolve_many(["X"]) == {}

    async def test_invalid_json(self):
        """Test that an undecodable body yields an empty mapping."""
        async with _client("oops") as client:
            assert await BatchLookup(client, id_map=ID_MAP).resolve_many(["X"]) == {}

    async def test_non_object_body(self):
        """Test that a JSON array body yields an empty mapping."""
        async with _client(["x-coin"]) as client:
            assert await BatchLookup(client, id_map=ID_MAP).resolve_many(["X"]) == {}

    async def test_non_object_entry_skipped(self):
        """Test that a malformed per-id entry is left out."""
        payload = {"x-coin": "1.5", "z-coin": {"usd": 3.0}}
        async with _client(payload) as client:
            result = await BatchLookup(client, id_map=ID_MAP).resolve_many(["X", "Z"])

        assert set(result) == {"Z"}

    async def test_missing_fields_default_to_zero(self):
        """Test that an entry without change still resolves."""
        async with _client({"z-coin": {"usd": 3.0}}) as client:
            result = await BatchLookup(client, id_map=ID_MAP).resolve_many(["Z"])

        assert result["Z"].change_24h == 0.0

    async def test_identifiers_sharing_an_upstream_id(self):
        """Test that two identifiers mapped to one coin each get an entry."""
        requests: list = []
        async with _client({"x-coin": {"usd": 1.0}}, requests=requests) as client:
            result = await BatchLookup(client, id_map=ID_MAP).resolve_many(["X", "X2", "X"])

        assert set(result) == {"X", "X2"}
        assert requests[0].url.params["ids"] == "x-coin"

    async def test_default_map(self):
        """Test that the built-in table maps USDC to CoinGecko's usd-coin."""
        requests: list = []
        async with _client({"usd-coin": {"usd": 1.0}}, requests=requests) as client:
            result = await BatchLookup(client).resolve_many([USDC])

        assert TOKEN_ID_MAP[USDC] == "usd-coin"
        assert result[USDC].price == 1.0
        assert requests[0].url.params["include_24hr_change"] == "true"

    async def test_no_client(self):
        """Test that a lookup without an HTTP client fails soft."""
        assert await BatchLookup(None, id_map=ID_MAP).resolve_many(["X"]) == {}
