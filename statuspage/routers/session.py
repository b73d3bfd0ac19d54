"""
Session endpoints.

Sign-in resolves (or bootstraps) the caller's profile and organization;
sign-out closes every live session the caller holds.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from statuspage.core.dependencies import get_identity, get_session_registry, get_store
from statuspage.core.exceptions import PartialWriteError
from statuspage.core.security import AuthenticatedIdentity
from statuspage.core.sessions import SessionRegistry
from statuspage.schemas.organization import SessionResponse, SignOutResponse
from statuspage.services.session_service import SessionResolver
from statuspage.store.client import DirectoryStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_session_resolver(store: DirectoryStore = Depends(get_store)) -> SessionResolver:
    """Dependency that constructs SessionResolver."""
    return SessionResolver(store=store)


@router.post(
    "",
    response_model=SessionResponse,
    summary="Sign in",
)
async def sign_in(
    identity: AuthenticatedIdentity = Depends(get_identity),
    resolver: SessionResolver = Depends(get_session_resolver),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Resolve the caller's profile and organization.

    - First sign-in creates the organization, the owner membership and the profile
    - If that setup fails nothing is kept and the caller is signed out
    """
    try:
        return await resolver.resolve(identity)
    except PartialWriteError as exc:
        if exc.code == "BOOTSTRAP_FAILED":
            await sessions.sign_out(identity.subject_id)
        raise


@router.delete(
    "",
    response_model=SignOutResponse,
    summary="Sign out",
)
async def sign_out(
    identity: AuthenticatedIdentity = Depends(get_identity),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SignOutResponse:
    """Close every live dashboard session of the caller."""
    closed = await sessions.sign_out(identity.subject_id)
    return SignOutResponse(closed_sessions=closed)
