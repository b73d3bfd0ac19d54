"""
Live dashboard endpoints.
Stream the signed-in member's organization, or one of its incidents, as it changes.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, status
from jose import JWTError

from statuspage.core.dependencies import get_session_registry, get_store
from statuspage.core.exceptions import PartialWriteError, StatusPageError
from statuspage.core.security import decode_identity_token
from statuspage.core.sessions import SessionRegistry
from statuspage.core.websocket import WS_CLOSE_NOT_FOUND, WS_CLOSE_UNAUTHORIZED, stream_views
from statuspage.schemas.organization import SessionResponse
from statuspage.services.session_service import SessionResolver
from statuspage.store.client import DirectoryStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def _resolve_session(
    websocket: WebSocket,
    token: str,
    store: DirectoryStore,
    sessions: SessionRegistry,
) -> SessionResponse | None:
    """
    Verify the token and resolve (or bootstrap) the session before accepting.
    Closes the socket and returns None when that fails.
    """
    try:
        identity = decode_identity_token(token)
    except JWTError:
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED)
        return None

    uid = identity.subject_id
    try:
        return await SessionResolver(store).resolve(identity)
    except PartialWriteError as exc:
        logger.error("Dashboard sign-in failed for uid=%s: %s", uid, exc)
        if exc.code == "BOOTSTRAP_FAILED":
            await sessions.sign_out(uid)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return None
    except StatusPageError as exc:
        logger.warning("Dashboard sign-in rejected for uid=%s: %s", uid, exc)
        await websocket.close(code=WS_CLOSE_NOT_FOUND)
        return None


@router.websocket("/ws")
async def dashboard_ws(
    websocket: WebSocket,
    token: str = Query(..., description="Identity token"),
    store: DirectoryStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> None:
    """
    WebSocket endpoint authenticated via identity token query param.
    Connect: WS /api/v1/dashboard/ws?token={identity_token}

    On connect:
    - Verify the token and resolve (or bootstrap) the session
    - Send {"type": "session", "data": SessionResponse}
    - Then {"type": "dashboard", "data": DashboardResponse} on every change

    The stream follows the user into a new organization when an invite moves
    them. Sign-out closes the socket with 1000.
    """
    resolved = await _resolve_session(websocket, token, store, sessions)
    if resolved is None:
        return
    uid = resolved.profile.uid

    await websocket.accept()
    await websocket.send_json({"type": "session", "data": resolved.model_dump(mode="json")})

    async with sessions.open(store, uid, resolved.profile.organization_id) as context:
        client_left = await stream_views(websocket, context.views(), "dashboard")
        signed_out = context.closed

    if client_left:
        logger.info("Dashboard client disconnected: uid=%s", uid)
        return
    await websocket.close(
        code=status.WS_1000_NORMAL_CLOSURE if signed_out else status.WS_1011_INTERNAL_ERROR
    )


@router.websocket("/incidents/{incident_id}/ws")
async def incident_ws(
    websocket: WebSocket,
    incident_id: UUID,
    token: str = Query(..., description="Identity token"),
    store: DirectoryStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> None:
    """
    Live incident detail of the caller's organization.
    Connect: WS /api/v1/dashboard/incidents/{incident_id}/ws?token={identity_token}

    Sends {"type": "incident", "data": IncidentDetailResponse} on connect and
    after every change. data.incident is null while the incident does not
    exist in the organization.

    Closes with 1000 on sign-out and with 4004 when an invite moves the
    caller to another organization.
    """
    resolved = await _resolve_session(websocket, token, store, sessions)
    if resolved is None:
        return
    uid = resolved.profile.uid
    org_id = resolved.profile.organization_id

    await websocket.accept()
    async with sessions.open(store, uid, org_id) as context:
        client_left = await stream_views(websocket, context.incident_views(incident_id), "incident")
        signed_out = context.closed
        moved = context.organization_id != org_id

    if client_left:
        logger.info("Incident client disconnected: uid=%s incident=%s", uid, incident_id)
        return
    if signed_out:
        code = status.WS_1000_NORMAL_CLOSURE
    elif moved:
        code = WS_CLOSE_NOT_FOUND
    else:
        code = status.WS_1011_INTERNAL_ERROR
    await websocket.close(code=code)
