"""Subscriber sinks - the push transports an EventHub writes to.

A sink raises on any failed write; the hub treats that subscriber as dead.
Heartbeat frames are no-op frames that clients can tell apart from data.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

from fastapi import WebSocket

from app.schemas.ws import WSCloseCode

logger = logging.getLogger(__name__)

SSE_HEARTBEAT_FRAME = ": heartbeat\n\n"
WS_HEARTBEAT_MESSAGE = {"type": "heartbeat"}


class EventSink(Protocol):
    async def send(self, message: dict[str, Any]) -> None: ...

    async def send_heartbeat(self) -> None: ...

    async def close(self) -> None: ...


def format_sse(message: dict[str, Any]) -> str:
    """Format a message as a text/event-stream data frame."""
    return f"data: {json.dumps(message)}\n\n"


class SinkClosedError(ConnectionError):
    """Raised when writing to a sink that was already closed."""


class SSESink:
    """Server-sent events sink backed by a bounded frame queue.

    The HTTP response drains the queue through frames(). A full queue means
    the client stopped reading, which counts as a failed write.
    """

    def __init__(self, max_queue: int = 100) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_queue)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, frame: str) -> None:
        if self._closed:
            raise SinkClosedError("Event stream is closed")
        # QueueFull propagates to the hub
        self._queue.put_nowait(frame)

    async def send(self, message: dict[str, Any]) -> None:
        self._put(format_sse(message))

    async def send_heartbeat(self) -> None:
        self._put(SSE_HEARTBEAT_FRAME)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Make room for the end-of-stream marker
        while self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncIterator[str]:
        """Yield queued frames until the sink is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


class WebSocketSink:
    """Sink writing JSON frames to an accepted WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, message: dict[str, Any]) -> None:
        await self._websocket.send_json(message)

    async def send_heartbeat(self) -> None:
        await self._websocket.send_json(WS_HEARTBEAT_MESSAGE)

    async def close(self) -> None:
        try:
            await self._websocket.close(code=WSCloseCode.GOING_AWAY)
        except Exception as e:
            logger.debug("Error closing websocket: %s", e)
