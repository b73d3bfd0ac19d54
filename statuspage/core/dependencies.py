"""
FastAPI dependency injection functions.

Provides the directory store, the session registry, the verified identity
and organization membership enforcement.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from statuspage.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from statuspage.core.security import AuthenticatedIdentity, decode_identity_token
from statuspage.core.sessions import SessionRegistry
from statuspage.models.member import OrgMember
from statuspage.schemas.organization import OrganizationResponse
from statuspage.store import collections
from statuspage.store.client import DirectoryStore

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------


def get_store(connection: HTTPConnection) -> DirectoryStore:
    """The store opened by the application lifespan (works for HTTP and WebSocket)."""
    return connection.app.state.store


def get_session_registry(connection: HTTPConnection) -> SessionRegistry:
    return connection.app.state.sessions


# ---------------------------------------------------------------------------
# Current identity
# ---------------------------------------------------------------------------

def _verify(token: str) -> AuthenticatedIdentity:
    try:
        return decode_identity_token(token)
    except JWTError as exc:
        raise AuthenticationError("INVALID_TOKEN", "Token is invalid or expired") from exc


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedIdentity:
    """
    Validate the Bearer identity token.

    Raises 401 if no token is provided or it does not verify.
    """
    if credentials is None:
        raise AuthenticationError("MISSING_TOKEN", "Authorization header required")
    return _verify(credentials.credentials)


# ---------------------------------------------------------------------------
# Organization membership
# ---------------------------------------------------------------------------

async def get_org_member(
    org_id: UUID,
    request: Request,
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> tuple[OrganizationResponse, OrgMember]:
    """
    Resolve org by id and verify the caller is a member.

    Returns (organization, org_member) tuple.
    Raises 404 if org not found, 403 if the caller is not a member.
    """
    store = get_store(request)

    async def load(session: AsyncSession) -> tuple[OrganizationResponse | None, OrgMember | None]:
        org = await collections.fetch_organization(session, org_id)
        if org is None:
            return None, None
        member = await session.scalar(
            select(OrgMember).where(
                OrgMember.org_id == org_id,
                OrgMember.user_id == identity.subject_id,
            )
        )
        return org, member

    org, member = await store.read(load)

    if org is None:
        raise NotFoundError("ORG_NOT_FOUND", "Organization not found")
    if member is None:
        raise PermissionDeniedError(
            "NOT_A_MEMBER", "You are not a member of this organization"
        )

    return org, member
