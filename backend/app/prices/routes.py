"""Request/response endpoints for point-in-time price reads."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from .batch import BatchLookup
from .cache import FreshnessCache
from .history import HistoryStore
from .models import Freshness

logger = logging.getLogger(__name__)


def _identifiers(body: Any) -> list[str]:
    """Pull the identifier list out of a batch request body. Anything odd → []."""
    if not isinstance(body, dict):
        return []
    raw = body.get("identifiers", body.get("mints"))  # "mints" is the legacy key
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str) and item]


def create_price_router(
    quotes: FreshnessCache,
    batch: BatchLookup,
    history: HistoryStore,
) -> APIRouter:
    """Create the price router with its collaborators injected."""
    router = APIRouter(prefix="/api/prices", tags=["prices"])

    @router.get("/sol")
    async def sol_price() -> JSONResponse:
        """Current SOL/USD quote, fresh or stale. 503 only if none was ever obtained."""
        lookup = await quotes.get()
        if lookup.freshness is Freshness.NONE:
            return JSONResponse({"error": "All price sources failed"}, status_code=503)
        return JSONResponse(
            lookup.require().to_dict(),
            headers={"X-Price-Freshness": lookup.freshness.value},
        )

    @router.post("/tokens")
    async def token_prices(request: Request) -> dict:
        """Batch prices for ``{"identifiers": [...]}``. Unknown ids are left out."""
        try:
            body = await request.json()
        except ValueError:
            logger.debug("Malformed batch price request body")
            body = None

        identifiers = _identifiers(body)
        if not identifiers:
            return {"data": {}}

        prices = await batch.resolve_many(identifiers)
        return {"data": {key: quote.to_dict() for key, quote in prices.items()}}

    @router.get("/history/{mint}")
    async def price_history(mint: str, hours: float = Query(24.0, gt=0, le=24 * 30)) -> dict:
        """Recorded history and high/low/change stats over the last ``hours``."""
        window = hours * 3600
        return {
            "mint": mint,
            "points": [point.to_dict() for point in history.query(mint, window)],
            "stats": history.stats(mint, window).to_dict(),
        }

    return router
