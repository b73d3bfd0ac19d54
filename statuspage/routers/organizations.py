"""
Organization management endpoints.

Rename, member roster, invitations.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from statuspage.core.dependencies import get_org_member, get_store
from statuspage.models.member import OrgMember
from statuspage.schemas.organization import (
    InviteRequest,
    MemberResponse,
    MembersListResponse,
    OrganizationResponse,
    OrganizationUpdateRequest,
)
from statuspage.services.organization_service import OrganizationService
from statuspage.store.client import DirectoryStore

router = APIRouter()


def get_org_service(store: DirectoryStore = Depends(get_store)) -> OrganizationService:
    """Dependency that constructs OrganizationService."""
    return OrganizationService(store=store)


# ---------------------------------------------------------------------------
# Get Organization
# ---------------------------------------------------------------------------

@router.get(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Get organization by id",
)
async def get_organization(
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
) -> OrganizationResponse:
    """Get organization details, including the public status page URL. Must be a member."""
    org, _ = org_and_member
    return org


# ---------------------------------------------------------------------------
# Update Organization
# ---------------------------------------------------------------------------

@router.patch(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Rename organization",
)
async def update_organization(
    data: OrganizationUpdateRequest,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    org, _ = org_and_member
    return await service.update_organization(org.id, data)


# ---------------------------------------------------------------------------
# List Members
# ---------------------------------------------------------------------------

@router.get(
    "/{org_id}/members",
    response_model=MembersListResponse,
    summary="List organization members",
)
async def list_members(
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: OrganizationService = Depends(get_org_service),
) -> MembersListResponse:
    """List all members of the organization with their profiles."""
    org, _ = org_and_member
    return await service.list_members(org.id)


# ---------------------------------------------------------------------------
# Invite Member
# ---------------------------------------------------------------------------

@router.post(
    "/{org_id}/invite",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an existing user to the organization",
)
async def invite_member(
    data: InviteRequest,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: OrganizationService = Depends(get_org_service),
) -> MemberResponse:
    """
    Invite a user by email.

    - The user must already have signed in once
    - Takes effect immediately: the user's profile moves to this organization
    - 404 if no user has the email, 409 if already a member
    """
    org, _ = org_and_member
    return await service.invite_member(org.id, data.email)
