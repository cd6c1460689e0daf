"""Batch price lookup: many mints, one upstream request."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from .models import TokenQuote
from .sources import safe_float
from .token_ids import TOKEN_ID_MAP

logger = logging.getLogger(__name__)


class BatchLookup:
    """Resolve many wallet identifiers against CoinGecko's simple-price endpoint.

    Identifiers are translated through a static mapping; unknown ones are
    dropped before any request. Upstream failures produce an empty result
    rather than an exception, so callers treat "no entry" as the only
    absence signal.
    """

    url = "https://api.coingecko.com/api/v3/simple/price"

    def __init__(
        self,
        client: httpx.AsyncClient | None,
        id_map: Mapping[str, str] = TOKEN_ID_MAP,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._client = client
        self._id_map = dict(id_map)
        self._headers = {"Accept": "application/json", **(headers or {})}

    async def resolve_many(self, identifiers: Iterable[str]) -> dict[str, TokenQuote]:
        mapped: dict[str, str] = {}
        for identifier in identifiers:
            upstream_id = self._id_map.get(identifier) if isinstance(identifier, str) else None
            if upstream_id:
                mapped[identifier] = upstream_id

        if not mapped:
            return {}

        upstream_ids = sorted(set(mapped.values()))
        try:
            payload = await self._fetch_batch(upstream_ids)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Batch price lookup failed for %d ids: %s", len(upstream_ids), e)
            return {}

        if not isinstance(payload, dict):
            logger.warning("Batch price lookup returned %s, expected object", type(payload).__name__)
            return {}

        result: dict[str, TokenQuote] = {}
        for identifier, upstream_id in mapped.items():
            entry = payload.get(upstream_id)
            if not isinstance(entry, dict):
                continue
            result[identifier] = TokenQuote(
                id=identifier,
                price=safe_float(entry.get("usd")),
                change_24h=safe_float(entry.get("usd_24h_change")),
            )

        logger.debug("Batch price lookup: %d/%d identifiers priced", len(result), len(mapped))
        return result

    async def _fetch_batch(self, upstream_ids: list[str]) -> Any:
        """One request for all ids. Raises httpx.HTTPError / ValueError on failure."""
        if self._client is None:
            raise httpx.TransportError("no HTTP client configured")
        response = await self._client.get(
            self.url,
            params={
                "ids": ",".join(upstream_ids),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            },
            headers=self._headers,
        )
        response.raise_for_status()
        return response.json()
