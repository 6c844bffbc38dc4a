"""Single-producer / single-consumer push channel for stream events.

The orchestrator writes named events; the SSE response drains them. The
channel has an explicit open/closed state: writes after close are dropped
silently and ``close`` is idempotent, so every failure path may call it.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)

PING_INTERVAL_SECONDS = 15.0

_CLOSE = object()


class EventChannel:
    """Queue-backed event channel with guarded writes."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: str, data: dict[str, Any]) -> bool:
        """Enqueue an event. Returns False (and drops it) once closed."""
        if self._closed:
            logger.debug("Dropping %r event on closed channel", event)
            return False
        self._queue.put_nowait({"event": event, "data": data})
        return True

    def close(self) -> None:
        """Close the channel; safe to call any number of times."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)

    async def events(
        self, ping_interval: float = PING_INTERVAL_SECONDS
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield queued events until the channel is closed.

        A ``ping`` event is produced whenever nothing arrives for
        ``ping_interval`` seconds.
        """
        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=ping_interval)
            except asyncio.TimeoutError:
                yield {"event": "ping", "data": {}}
                continue
            if item is _CLOSE:
                return
            yield item


def to_sse(event: dict[str, Any]) -> dict[str, str]:
    """Render a channel event in the dict form EventSourceResponse expects."""
    return {
        "event": event["event"],
        "data": json.dumps(event["data"], ensure_ascii=False),
    }
