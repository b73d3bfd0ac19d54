"""
View derivation.

Pure functions over synchronized snapshots: overall status, active/resolved
partition, timeline order, and assembly of the public and dashboard views.
Nothing here touches the store.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from statuspage.models.incident import IncidentStatus
from statuspage.models.service import ServiceStatus
from statuspage.schemas.incident import IncidentResponse, IncidentUpdateResponse
from statuspage.schemas.organization import MemberResponse
from statuspage.schemas.service import ServiceResponse
from statuspage.schemas.status import (
    DashboardResponse,
    IncidentDetailResponse,
    OverallStatus,
    StatusPageResponse,
    ViewState,
)

# Most severe first; the first status present wins.
SEVERITY_ORDER: tuple[tuple[ServiceStatus, OverallStatus], ...] = (
    (ServiceStatus.major_outage, OverallStatus.major_outage),
    (ServiceStatus.partial_outage, OverallStatus.partial_outage),
    (ServiceStatus.degraded_performance, OverallStatus.degraded_performance),
)


def overall_status(services: Sequence[ServiceResponse]) -> OverallStatus:
    present = {s.status for s in services}
    for service_status, overall in SEVERITY_ORDER:
        if service_status in present:
            return overall
    if services:
        return OverallStatus.all_operational
    return OverallStatus.unknown


def is_active(incident: IncidentResponse) -> bool:
    return incident.status != IncidentStatus.resolved


def partition_incidents(
    incidents: Iterable[IncidentResponse],
) -> tuple[list[IncidentResponse], list[IncidentResponse]]:
    """Split into (active, resolved), keeping the input order in each."""
    active: list[IncidentResponse] = []
    resolved: list[IncidentResponse] = []
    for incident in incidents:
        (active if is_active(incident) else resolved).append(incident)
    return active, resolved


def timeline(updates: Sequence[IncidentUpdateResponse]) -> list[IncidentUpdateResponse]:
    """Newest first by created_at; on equal timestamps the later append comes first."""
    ordered = sorted(
        enumerate(updates),
        key=lambda pair: (pair[1].created_at, pair[0]),
        reverse=True,
    )
    return [update for _, update in ordered]


def with_timeline(incident: IncidentResponse) -> IncidentResponse:
    """Copy of incident whose updates are in presentation order."""
    return incident.model_copy(update={"updates": timeline(incident.updates)})


def combine_states(*states: ViewState) -> ViewState:
    if ViewState.error in states:
        return ViewState.error
    if ViewState.loading in states:
        return ViewState.loading
    return ViewState.ready


def build_status_page(
    organization_id: UUID,
    organization_name: str,
    services: Sequence[ServiceResponse],
    active_incidents: Sequence[IncidentResponse],
    resolved_incidents: Sequence[IncidentResponse],
    state: ViewState = ViewState.ready,
    error: str | None = None,
) -> StatusPageResponse:
    return StatusPageResponse(
        organization_id=organization_id,
        organization_name=organization_name,
        state=state,
        error=error,
        overall_status=overall_status(services),
        services=list(services),
        active_incidents=[with_timeline(i) for i in active_incidents],
        resolved_incidents=[with_timeline(i) for i in resolved_incidents],
    )


def build_dashboard(
    organization_id: UUID,
    services: Sequence[ServiceResponse],
    incidents: Sequence[IncidentResponse],
    members: Sequence[MemberResponse] = (),
    state: ViewState = ViewState.ready,
    error: str | None = None,
) -> DashboardResponse:
    active, resolved = partition_incidents(incidents)
    return DashboardResponse(
        organization_id=organization_id,
        state=state,
        error=error,
        overall_status=overall_status(services),
        services=list(services),
        incidents=[with_timeline(i) for i in incidents],
        active_count=len(active),
        resolved_count=len(resolved),
        members=list(members),
    )


def build_incident_detail(
    organization_id: UUID,
    incident_id: UUID,
    incidents: Sequence[IncidentResponse],
    state: ViewState = ViewState.ready,
    error: str | None = None,
) -> IncidentDetailResponse:
    """incidents holds the watched incident, or nothing when it is missing."""
    return IncidentDetailResponse(
        organization_id=organization_id,
        incident_id=incident_id,
        state=state,
        error=error,
        incident=with_timeline(incidents[0]) if incidents else None,
    )
