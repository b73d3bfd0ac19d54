"""
Organization business logic.

Handles organization rename, the member roster and invitations.
All queries scoped by org_id.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from statuspage.core.exceptions import NotFoundError, ValidationError
from statuspage.models.base import utcnow
from statuspage.models.member import OrgMember, OrgRole
from statuspage.models.organization import Organization
from statuspage.models.user import User
from statuspage.schemas.organization import (
    MemberResponse,
    MembersListResponse,
    OrganizationResponse,
    OrganizationUpdateRequest,
)
from statuspage.store import collections
from statuspage.store.client import DirectoryStore
from statuspage.store.collections import organization_response
from statuspage.store.paths import organization_path, user_path

logger = logging.getLogger(__name__)


def org_not_found() -> NotFoundError:
    return NotFoundError("ORG_NOT_FOUND", "Organization not found")


def already_member() -> ValidationError:
    return ValidationError(
        "ALREADY_MEMBER",
        "User is already a member of this organization",
        status_code=status.HTTP_409_CONFLICT,
    )


class OrganizationService:
    """Handles all organization operations."""

    def __init__(self, store: DirectoryStore) -> None:
        self.store = store

    # -----------------------------------------------------------------------
    # Get / Update Organization
    # -----------------------------------------------------------------------

    async def get_organization(self, org_id: UUID) -> OrganizationResponse:
        org = await self.store.get_organization(org_id)
        if org is None:
            raise org_not_found()
        return org

    async def update_organization(
        self, org_id: UUID, data: OrganizationUpdateRequest
    ) -> OrganizationResponse:
        async with self.store.transaction() as tx:
            org = await tx.session.scalar(
                select(Organization)
                .where(Organization.id == org_id)
                .options(selectinload(Organization.members))
            )
            if org is None:
                raise org_not_found()
            org.name = data.name
            org.updated_at = utcnow()
            await tx.session.flush()
            tx.touch(organization_path(org_id))
            response = organization_response(org)

        logger.info("Organization renamed: id=%s name=%r", org_id, data.name)
        return response

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    async def list_members(self, org_id: UUID) -> MembersListResponse:
        members = await self.store.read(lambda s: collections.fetch_members(s, org_id))
        return MembersListResponse(members=members, total=len(members))

    # -----------------------------------------------------------------------
    # Invite Member
    # -----------------------------------------------------------------------

    async def invite_member(self, org_id: UUID, email: str) -> MemberResponse:
        """
        Add an existing user to the organization.

        - Looks the profile up by email, case-insensitively
        - Rejects an email matching nobody, several profiles, or a member
        - Inserts the membership and moves the invitee's profile to this
          organization in one transaction
        """
        normalized = email.strip().lower()
        try:
            async with self.store.transaction() as tx:
                org = await tx.session.get(Organization, org_id)
                if org is None:
                    raise org_not_found()

                result = await tx.session.scalars(
                    select(User).where(func.lower(User.email) == normalized)
                )
                matches = result.all()
                if not matches:
                    raise NotFoundError("USER_NOT_FOUND", "No user found with this email")
                if len(matches) > 1:
                    raise ValidationError(
                        "AMBIGUOUS_EMAIL", "More than one user has this email address"
                    )
                invitee = matches[0]

                existing = await tx.session.scalar(
                    select(OrgMember.id).where(
                        OrgMember.org_id == org_id,
                        OrgMember.user_id == invitee.uid,
                    )
                )
                if existing is not None:
                    raise already_member()

                member = OrgMember(org_id=org_id, user_id=invitee.uid, role=OrgRole.member)
                tx.session.add(member)
                previous_org = invitee.organization_id
                invitee.organization_id = org_id
                await tx.session.flush()

                tx.touch(organization_path(org_id), user_path(invitee.uid))
                response = MemberResponse(
                    uid=invitee.uid,
                    email=invitee.email,
                    display_name=invitee.display_name,
                    role=member.role.value,
                    is_owner=False,
                    joined_at=member.joined_at,
                )
        except IntegrityError as exc:
            raise already_member() from exc

        logger.info(
            "Member invited: org=%s uid=%s (moved from %s)", org_id, response.uid, previous_org
        )
        return response
