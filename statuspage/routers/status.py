"""
Public status page endpoints.

Unauthenticated. Expose an organization's name, services and incidents,
nothing else.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, status

from statuspage.core.dependencies import get_store
from statuspage.core.exceptions import NotFoundError
from statuspage.core.websocket import WS_CLOSE_NOT_FOUND, stream_views
from statuspage.schemas.status import StatusPageResponse
from statuspage.store.client import DirectoryStore
from statuspage.sync.status_page import StatusPageFeed, load_status_page

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{org_id}",
    response_model=StatusPageResponse,
    summary="Public status page",
)
async def get_status_page(
    org_id: UUID,
    store: DirectoryStore = Depends(get_store),
) -> StatusPageResponse:
    """Overall status, services, active and resolved incidents (newest update first)."""
    return await load_status_page(store, org_id)


@router.websocket("/{org_id}/ws")
async def status_page_ws(
    websocket: WebSocket,
    org_id: UUID,
    store: DirectoryStore = Depends(get_store),
) -> None:
    """
    Live public status page.
    Connect: WS /api/v1/status/{org_id}/ws

    Sends {"type": "status", "data": StatusPageResponse} on connect and after
    every change to the organization's name, services or incidents.
    """
    feed = StatusPageFeed(store, org_id)
    try:
        await feed.start()
    except NotFoundError:
        await feed.close()
        await websocket.close(code=WS_CLOSE_NOT_FOUND)
        return

    await websocket.accept()
    try:
        client_left = await stream_views(websocket, feed.views(), "status")
    finally:
        await feed.close()

    if not client_left:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
