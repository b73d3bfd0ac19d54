"""
Service schemas.

Request/response models for the service catalog endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from statuspage.models.service import ServiceStatus


def strip_required(v: str) -> str:
    """Strip surrounding whitespace and reject what is left if empty."""
    v = v.strip()
    if not v:
        raise ValueError("Must not be blank")
    return v


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class ServiceCreateRequest(BaseModel):
    """Request body for POST /organizations/{org_id}/services."""

    name: str = Field(min_length=1, max_length=100)
    status: ServiceStatus = ServiceStatus.operational

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        return strip_required(v)


class ServiceUpdateRequest(BaseModel):
    """
    Request body for PUT /organizations/{org_id}/services/{service_id}.

    Full overwrite of the mutable fields.
    """

    name: str = Field(min_length=1, max_length=100)
    status: ServiceStatus

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        return strip_required(v)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ServiceResponse(BaseModel):
    """Service as seen by dashboards and the public status page."""

    id: UUID
    org_id: UUID
    name: str
    status: ServiceStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ServiceListResponse(BaseModel):
    """Response for GET /organizations/{org_id}/services."""

    services: list[ServiceResponse]
    total: int
