"""Observer transports: hub subscription → WebSocket / SSE."""

import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi import WebSocket, WebSocketDisconnect

from monitor.hub import BroadcastHub, Subscription

logger = logging.getLogger("agent_monitor")


async def _forward(websocket: WebSocket, sub: Subscription) -> None:
    async for message in sub.messages():
        await websocket.send_text(message)


async def _drain_incoming(websocket: WebSocket) -> None:
    """Read (and ignore) client frames until the client goes away."""
    while True:
        message = await websocket.receive()
        if message.get("type") == "websocket.disconnect":
            return


async def serve_websocket(websocket: WebSocket, hub: BroadcastHub) -> None:
    """Stream every broadcast event to ``websocket`` as a JSON text frame.

    The subscription is taken before the handshake completes, so anything
    broadcast after the client sees the connection open reaches it.
    Returns when either side closes.
    """
    sub = hub.subscribe()
    try:
        await websocket.accept()
        sender = asyncio.create_task(_forward(websocket, sub))
        receiver = asyncio.create_task(_drain_incoming(websocket))
        done, pending = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
                pass
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, (WebSocketDisconnect, RuntimeError)):
                logger.debug(f"WebSocket observer closed with {exc!r}")
    except WebSocketDisconnect:
        pass
    finally:
        hub.unsubscribe(sub)


class SSEObserver:
    """Bridge a hub subscription onto an SSE event stream.

    Usage:
        observer = SSEObserver(hub)
        return EventSourceResponse(observer.events())
    """

    def __init__(self, hub: BroadcastHub):
        self._hub = hub

    async def events(self) -> AsyncIterator[dict]:
        """Async generator yielding SSE dicts until the stream ends.

        The subscription lives exactly as long as the generator runs.
        """
        sub = self._hub.subscribe()
        try:
            async for message in sub.messages():
                event_type = json.loads(message).get("type", "message")
                yield {"event": event_type, "data": message}
        finally:
            self._hub.unsubscribe(sub)
