"""SSE streaming endpoint for live per-token price updates."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .models import PriceUpdate
from .multiplexer import SubscriptionMultiplexer

logger = logging.getLogger(__name__)

QUEUE_SIZE = 64


def create_stream_router(multiplexer: SubscriptionMultiplexer) -> APIRouter:
    """Create the SSE streaming router bound to a subscription multiplexer.

    This factory pattern lets us inject the multiplexer without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/prices/{mint}")
    async def stream_prices(mint: str, request: Request) -> StreamingResponse:
        """SSE endpoint for live price updates of one token.

        Each connection is one subscriber; every client watching the same
        mint shares a single upstream poll. Events look like:

            data: {"mint": "...", "symbol": "BONK", "price": 0.0000213, ...}
        """
        return StreamingResponse(
            _generate_events(multiplexer, mint, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    multiplexer: SubscriptionMultiplexer,
    mint: str,
    request: Request,
    heartbeat: float = 15.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted price events.

    Subscribes on the first iteration and unsubscribes when the client
    disconnects or the stream is cancelled. A slow client drops its oldest
    queued updates rather than growing the queue.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    queue: asyncio.Queue[PriceUpdate] = asyncio.Queue(maxsize=QUEUE_SIZE)

    def enqueue(update: PriceUpdate) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(update)

    client_ip = request.client.host if request.client else "unknown"
    subscription = multiplexer.subscribe(mint, enqueue)
    logger.info("SSE client connected: %s (%s)", client_ip, mint)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            try:
                update = await asyncio.wait_for(queue.get(), timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue

            yield f"data: {json.dumps(update.to_dict())}\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
        raise
    finally:
        subscription.unsubscribe()
