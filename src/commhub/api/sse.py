"""Helpers for Server-Sent Events responses."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from ..services.pubsub import Subscription


def format_event(event: str, data: dict[str, Any], event_id: str | None = None) -> str:
    payload = json.dumps(data, separators=(",", ":"))
    prefix = f"id: {event_id}\n" if event_id else ""
    return f"{prefix}event: {event}\ndata: {payload}\n\n"


async def message_events(subscription: Subscription) -> AsyncIterator[str]:
    """Render each message on ``subscription`` as an SSE frame, cancelling it on exit."""

    try:
        yield format_event("subscribed", {"channel": subscription.channel})
        async for message in subscription:
            yield format_event(
                "message",
                message.model_dump(mode="json", by_alias=True),
                event_id=message.id,
            )
    finally:
        await subscription.cancel()


def sse_response(
    generator: AsyncIterator[str], subscription: Subscription | None = None
) -> StreamingResponse:
    """Stream ``generator``; ``subscription`` is cancelled once the response ends.

    The background cancel also covers clients that disconnect before the
    generator first runs, when its own ``finally`` never executes.
    """

    return StreamingResponse(
        generator,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
        background=BackgroundTask(subscription.cancel) if subscription is not None else None,
    )
