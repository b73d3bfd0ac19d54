"""
Incident endpoints.

Create incidents and append timeline updates.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from statuspage.core.dependencies import get_org_member, get_store
from statuspage.models.member import OrgMember
from statuspage.schemas.incident import (
    IncidentCreateRequest,
    IncidentListResponse,
    IncidentResponse,
    IncidentUpdateCreateRequest,
)
from statuspage.schemas.organization import OrganizationResponse
from statuspage.services.incident_service import IncidentService
from statuspage.store.client import DirectoryStore
from statuspage.store.collections import IncidentView

router = APIRouter()


def get_incident_service(store: DirectoryStore = Depends(get_store)) -> IncidentService:
    """Dependency that constructs IncidentService."""
    return IncidentService(store=store)


# ---------------------------------------------------------------------------
# List / Get
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{org_id}/incidents",
    response_model=IncidentListResponse,
    summary="List incidents",
)
async def list_incidents(
    view: IncidentView = Query(IncidentView.all, description="all, active or resolved"),
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentListResponse:
    org, _ = org_and_member
    return await service.list_incidents(org.id, view)


@router.get(
    "/organizations/{org_id}/incidents/{incident_id}",
    response_model=IncidentResponse,
    summary="Get incident with its update log",
)
async def get_incident(
    incident_id: UUID,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentResponse:
    org, _ = org_and_member
    return await service.get_incident(org.id, incident_id)


# ---------------------------------------------------------------------------
# Create Incident
# ---------------------------------------------------------------------------

@router.post(
    "/organizations/{org_id}/incidents",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report an incident",
)
async def create_incident(
    data: IncidentCreateRequest,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentResponse:
    """
    Create an incident with its first update.

    - Affected services are recorded by id and current name
    - 404 if an affected service id is unknown
    """
    org, _ = org_and_member
    return await service.create_incident(org.id, data)


# ---------------------------------------------------------------------------
# Append Update
# ---------------------------------------------------------------------------

@router.post(
    "/organizations/{org_id}/incidents/{incident_id}/updates",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Append an update to an incident",
)
async def append_update(
    incident_id: UUID,
    data: IncidentUpdateCreateRequest,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentResponse:
    """
    Append an update and set the incident's status to the update's status.

    Posting Resolved resolves the incident; any other status reopens it.
    Re-posting an update id the incident already has is a no-op.
    """
    org, _ = org_and_member
    return await service.append_update(org.id, incident_id, data)
