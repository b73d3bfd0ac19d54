"""
WebSocket view streaming.
Pushes live views to a connected client until the views end or the client leaves.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import WebSocket
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Application close codes
WS_CLOSE_UNAUTHORIZED = 4001
WS_CLOSE_NOT_FOUND = 4004


async def stream_views(websocket: WebSocket, views: AsyncIterator[BaseModel], kind: str) -> bool:
    """
    Send every view as {"type": kind, "data": ...}.

    Returns True when the client disconnected, False when the views ended
    first (the caller then decides how to close the socket).
    """

    async def send() -> None:
        async with aclosing(views) as stream:
            async for view in stream:
                await websocket.send_json({"type": kind, "data": view.model_dump(mode="json")})

    async def receive() -> None:
        # Incoming messages are ignored; reading is how a disconnect is seen
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    sender = asyncio.create_task(send(), name=f"ws-send:{kind}")
    receiver = asyncio.create_task(receive(), name=f"ws-receive:{kind}")
    try:
        await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sender, receiver):
            task.cancel()
        await asyncio.gather(sender, receiver, return_exceptions=True)

    if not receiver.cancelled():
        return True
    if not sender.cancelled() and sender.exception() is not None:
        logger.warning("WebSocket %s send failed, dropping client: %s", kind, sender.exception())
        return True
    return False
