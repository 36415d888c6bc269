from __future__ import annotations

import json
from typing import AsyncIterator, Awaitable, Callable, Optional

from college_notes.core.pubsub import Event, Subscription


def format_sse(event: Event) -> str:
    """
    One Server-Sent-Events frame: named event + single-line JSON payload.
    """
    payload = json.dumps(event.data, default=str, separators=(",", ":"))
    return f"event: {event.name}\ndata: {payload}\n\n"


async def sse_stream(
    subscription: Subscription,
    keepalive_seconds: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Stream events for one subscriber without buffering; emits a comment
    frame when idle so proxies keep the connection open.
    """
    try:
        yield format_sse(Event("connected", {"user_id": subscription.user_id}))
        while True:
            if is_disconnected is not None and await is_disconnected():
                break
            event = await subscription.next(timeout=keepalive_seconds)
            if event is None:
                yield ": keepalive\n\n"
                continue
            yield format_sse(event)
    finally:
        subscription.close()
