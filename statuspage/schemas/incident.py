"""
Incident schemas.

Request/response models for incident endpoints and live snapshots.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field, field_validator

from statuspage.models.incident import IncidentImpact, IncidentStatus
from statuspage.schemas.service import strip_required


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class IncidentCreateRequest(BaseModel):
    """Request body for POST /organizations/{org_id}/incidents."""

    title: str = Field(min_length=1, max_length=200)
    impact: IncidentImpact = IncidentImpact.minor
    status: IncidentStatus = IncidentStatus.investigating
    affected_service_ids: list[UUID] = Field(default_factory=list)
    message: str = Field(min_length=1, max_length=5000, description="First timeline entry")
    update_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Client-generated id of the first update",
    )

    @field_validator("title", "message")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        return strip_required(v)


class IncidentUpdateCreateRequest(BaseModel):
    """Request body for POST /organizations/{org_id}/incidents/{incident_id}/updates."""

    message: str = Field(min_length=1, max_length=5000)
    status: IncidentStatus
    id: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Client-generated update id; re-posting the same id is a no-op",
    )

    @field_validator("message")
    @classmethod
    def message_must_not_be_blank(cls, v: str) -> str:
        return strip_required(v)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class AffectedService(BaseModel):
    """Service id and its name as of when the incident was written."""

    id: str
    name: str


class IncidentUpdateResponse(BaseModel):
    """Single timeline entry."""

    id: str = Field(validation_alias=AliasChoices("id", "token"))
    message: str
    status: IncidentStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class IncidentResponse(BaseModel):
    """
    Incident with its full update log.

    updates is in storage (append) order; presentation order is derived.
    """

    id: UUID
    org_id: UUID
    title: str
    status: IncidentStatus
    impact: IncidentImpact
    affected_services: list[AffectedService]
    updates: list[IncidentUpdateResponse]
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None

    model_config = {"from_attributes": True}


class IncidentListResponse(BaseModel):
    """Response for GET /organizations/{org_id}/incidents."""

    incidents: list[IncidentResponse]
    total: int
