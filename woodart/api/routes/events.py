"""Server-sent event stream of live design changes."""

import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from woodart.api.deps import BroadcasterDep
from woodart.core.events import EventBroadcaster, Subscriber, format_sse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

KEEPALIVE_FRAME = ": keep-alive\n\n"


async def event_stream(
    request: Request,
    broadcaster: EventBroadcaster,
    subscriber: Subscriber,
) -> AsyncIterator[str]:
    """Yield SSE frames for one subscriber until it disconnects or the server stops.

    The first frame is a ``connected`` message; a keep-alive comment is sent
    whenever no event arrives within the keep-alive interval.
    """
    try:
        yield format_sse({"type": "connected"})
        while True:
            try:
                event = await asyncio.wait_for(
                    subscriber.queue.get(),
                    timeout=broadcaster.config.keepalive_seconds,
                )
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    break
                yield KEEPALIVE_FRAME
                continue
            if event is None:
                break
            yield format_sse(event)
    finally:
        broadcaster.unsubscribe(subscriber)


@router.get(
    "/events",
    summary="Live design updates",
    description="Server-sent events. Each message is JSON with type designUpdated and the new listing state.",
    response_class=StreamingResponse,
)
async def stream_events(request: Request, broadcaster: BroadcasterDep) -> StreamingResponse:
    """Open an event stream; events published before connecting are not replayed."""
    subscriber = broadcaster.subscribe()
    logger.info("Event stream %d opened", subscriber.subscriber_id)
    return StreamingResponse(
        event_stream(request, broadcaster, subscriber),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )
