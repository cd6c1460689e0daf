"""FastAPI application entry point for the wallet price service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.prices import Settings, create_price_feed, create_price_router, create_stream_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app. The price feed lives for the duration of the lifespan."""
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    feed = create_price_feed(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Price service started (%s mode)", settings.mode)
        yield
        await feed.aclose()

    app = FastAPI(title="Wallet Price Service", version="0.1.0", lifespan=lifespan)
    app.state.feed = feed
    app.include_router(create_price_router(feed.quotes, feed.batch, feed.history))
    app.include_router(create_stream_router(feed.multiplexer))

    @app.get("/api/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "mode": settings.mode,
            "polling": feed.multiplexer.active_keys(),
        }

    return app
