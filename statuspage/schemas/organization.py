"""
Organization schemas.

Request/response models for organization, profile and member management.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from statuspage.schemas.service import strip_required


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------

class OrganizationUpdateRequest(BaseModel):
    """Request body for PATCH /organizations/{org_id}."""

    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        return strip_required(v)


class OrganizationResponse(BaseModel):
    """Organization detail response. Members only, never public."""

    id: UUID
    name: str
    owner_id: str
    members: list[str]
    status_page_url: str
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileResponse(BaseModel):
    """A user's profile and the one organization it belongs to."""

    uid: str
    email: str
    display_name: str
    organization_id: UUID

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Response for POST /session."""

    profile: ProfileResponse
    organization: OrganizationResponse
    created: bool = Field(description="True when this sign-in bootstrapped the account")


class SignOutResponse(BaseModel):
    """Response for DELETE /session."""

    closed_sessions: int


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberResponse(BaseModel):
    """Single org member with profile info."""

    uid: str
    email: str
    display_name: str
    role: str
    is_owner: bool
    joined_at: datetime


class MembersListResponse(BaseModel):
    """Response for GET /organizations/{org_id}/members."""

    members: list[MemberResponse]
    total: int


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

class InviteRequest(BaseModel):
    """Request body for POST /organizations/{org_id}/invite."""

    email: EmailStr
