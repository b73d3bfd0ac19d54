"""
Status view schemas.

Aggregated, read-only shapes pushed to the public status page and to
dashboards.
"""

from __future__ import annotations

import enum
from uuid import UUID

from pydantic import BaseModel

from statuspage.schemas.incident import IncidentResponse
from statuspage.schemas.organization import MemberResponse
from statuspage.schemas.service import ServiceResponse


class OverallStatus(str, enum.Enum):
    major_outage = "Major Outage"
    partial_outage = "Partial Outage"
    degraded_performance = "Degraded Performance"
    all_operational = "All Systems Operational"
    unknown = "Status Unknown"


class ViewState(str, enum.Enum):
    """Lifecycle of a live view: waiting for data, current, or failed."""

    loading = "loading"
    ready = "ready"
    error = "error"


class StatusPageResponse(BaseModel):
    """Public status page. Contains nothing but the three public collections."""

    organization_id: UUID
    organization_name: str
    state: ViewState = ViewState.ready
    error: str | None = None
    overall_status: OverallStatus
    services: list[ServiceResponse]
    active_incidents: list[IncidentResponse]
    resolved_incidents: list[IncidentResponse]


class DashboardResponse(BaseModel):
    """Live dashboard view of a signed-in member's organization."""

    organization_id: UUID
    state: ViewState = ViewState.ready
    error: str | None = None
    overall_status: OverallStatus
    services: list[ServiceResponse]
    incidents: list[IncidentResponse]
    active_count: int
    resolved_count: int
    members: list[MemberResponse] = []


class IncidentDetailResponse(BaseModel):
    """Live view of one incident. incident is null while it does not exist."""

    organization_id: UUID
    incident_id: UUID
    state: ViewState = ViewState.ready
    error: str | None = None
    incident: IncidentResponse | None
