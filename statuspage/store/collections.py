"""
Typed reads over organization-scoped collections.

Each function takes a session and returns detached response models, so a
snapshot can outlive the session that produced it. Every query filters on
org_id.
"""

from __future__ import annotations

import enum
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from statuspage.core.config import settings
from statuspage.models.incident import Incident, IncidentStatus
from statuspage.models.member import OrgMember, OrgRole
from statuspage.models.organization import Organization
from statuspage.models.service import Service
from statuspage.models.user import User
from statuspage.schemas.incident import IncidentResponse
from statuspage.schemas.organization import MemberResponse, OrganizationResponse, ProfileResponse
from statuspage.schemas.service import ServiceResponse


class IncidentView(str, enum.Enum):
    """Which slice of an organization's incidents a query returns."""

    all = "all"
    active = "active"
    resolved = "resolved"


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

def services_query(org_id: UUID) -> Select[tuple[Service]]:
    return (
        select(Service)
        .where(Service.org_id == org_id)
        .order_by(Service.created_at.desc())
    )


def incidents_query(org_id: UUID, view: IncidentView = IncidentView.all) -> Select[tuple[Incident]]:
    stmt = (
        select(Incident)
        .where(Incident.org_id == org_id)
        .options(selectinload(Incident.updates))
    )
    if view is IncidentView.active:
        return stmt.where(Incident.status != IncidentStatus.resolved).order_by(
            Incident.status, Incident.created_at.desc()
        )
    if view is IncidentView.resolved:
        return stmt.where(Incident.status == IncidentStatus.resolved).order_by(
            Incident.created_at.desc()
        )
    return stmt.order_by(Incident.created_at.desc())


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def fetch_services(session: AsyncSession, org_id: UUID) -> list[ServiceResponse]:
    result = await session.scalars(services_query(org_id))
    return [ServiceResponse.model_validate(s) for s in result.all()]


async def fetch_incidents(
    session: AsyncSession, org_id: UUID, view: IncidentView = IncidentView.all
) -> list[IncidentResponse]:
    result = await session.scalars(incidents_query(org_id, view))
    return [IncidentResponse.model_validate(i) for i in result.all()]


async def fetch_incident(
    session: AsyncSession, org_id: UUID, incident_id: UUID
) -> IncidentResponse | None:
    incident = await session.scalar(
        select(Incident)
        .where(Incident.id == incident_id, Incident.org_id == org_id)
        .options(selectinload(Incident.updates))
        .execution_options(populate_existing=True)
    )
    if incident is None:
        return None
    return IncidentResponse.model_validate(incident)


async def fetch_profile(session: AsyncSession, uid: str) -> ProfileResponse | None:
    user = await session.scalar(
        select(User).where(User.uid == uid).execution_options(populate_existing=True)
    )
    if user is None:
        return None
    return ProfileResponse.model_validate(user)


async def fetch_organization(session: AsyncSession, org_id: UUID) -> OrganizationResponse | None:
    org = await session.scalar(
        select(Organization)
        .where(Organization.id == org_id)
        .options(selectinload(Organization.members))
        .execution_options(populate_existing=True)
    )
    if org is None:
        return None
    return organization_response(org)


def organization_response(org: Organization) -> OrganizationResponse:
    """Members relationship must already be loaded."""
    return OrganizationResponse(
        id=org.id,
        name=org.name,
        owner_id=org.owner_id,
        members=org.member_ids,
        status_page_url=settings.status_page_url(org.id),
        created_at=org.created_at,
        updated_at=org.updated_at,
    )


async def fetch_members(session: AsyncSession, org_id: UUID) -> list[MemberResponse]:
    """Roster with profile details, read in a single join."""
    result = await session.execute(
        select(OrgMember, User)
        .join(User, User.uid == OrgMember.user_id)
        .where(OrgMember.org_id == org_id)
        .order_by(OrgMember.joined_at)
        .execution_options(populate_existing=True)
    )
    return [
        MemberResponse(
            uid=user.uid,
            email=user.email,
            display_name=user.display_name,
            role=member.role.value,
            is_owner=member.role == OrgRole.owner,
            joined_at=member.joined_at,
        )
        for member, user in result.all()
    ]
