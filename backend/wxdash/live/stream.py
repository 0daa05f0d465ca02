"""SSE streaming endpoint for live archive updates."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .broker import UpdateBroker

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
}


def create_stream_router(broker: UpdateBroker, keepalive: float = 15.0) -> APIRouter:
    """Create the SSE streaming router bound to a broker."""
    router = APIRouter(prefix="/api", tags=["streaming"])

    @router.get("/stream")
    async def stream_updates(request: Request) -> StreamingResponse:
        """SSE endpoint for live weather updates.

        Sends one ``update`` event per new archive row:

            event: update
            data: {"timestamp": 1717200000, "outTemp": 91.2, ...}

        Nothing is pushed while the archive is quiet or unreachable; idle
        periods only carry keepalive comments.
        """
        return StreamingResponse(
            _generate_events(broker, request, keepalive=keepalive),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    return router


async def _generate_events(
    broker: UpdateBroker,
    request: Request,
    keepalive: float = 15.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted update events.

    Waits on the subscriber queue, waking every ``keepalive`` seconds to check
    for client disconnect. The subscription is released however the
    generator ends (disconnect, cancellation, or server shutdown).
    """
    client_ip = request.client.host if request.client else "unknown"

    async with broker.subscribe() as sub:
        logger.info("SSE client connected: %s", client_ip)
        # Short comment to establish the stream
        yield ": connected\n\n"

        while True:
            try:
                message = await asyncio.wait_for(sub.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    logger.info("SSE client disconnected: %s", client_ip)
                    break
                yield ": keepalive\n\n"
                continue
            yield f"event: update\ndata: {message.data}\n\n"
