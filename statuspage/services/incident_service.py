"""
Incident business logic.

Incidents are created with a first update; afterwards the only write is an
append to their update log, which also moves the incident's status.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from statuspage.core.exceptions import NotFoundError
from statuspage.models.base import utcnow
from statuspage.models.incident import Incident, IncidentStatus, IncidentUpdate
from statuspage.models.service import Service
from statuspage.schemas.incident import (
    IncidentCreateRequest,
    IncidentListResponse,
    IncidentResponse,
    IncidentUpdateCreateRequest,
)
from statuspage.store.client import DirectoryStore
from statuspage.store.collections import IncidentView
from statuspage.store.paths import incident_path, incidents_path

logger = logging.getLogger(__name__)


def new_update_token() -> str:
    """Id for an update whose client did not supply one."""
    return secrets.token_hex(10)


def incident_not_found() -> NotFoundError:
    return NotFoundError("INCIDENT_NOT_FOUND", "Incident not found")


class IncidentService:
    """Handles all incident operations."""

    def __init__(self, store: DirectoryStore) -> None:
        self.store = store

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def list_incidents(
        self, org_id: UUID, view: IncidentView = IncidentView.all
    ) -> IncidentListResponse:
        incidents = await self.store.list_incidents(org_id, view)
        return IncidentListResponse(incidents=incidents, total=len(incidents))

    async def get_incident(self, org_id: UUID, incident_id: UUID) -> IncidentResponse:
        incident = await self.store.get_incident(org_id, incident_id)
        if incident is None:
            raise incident_not_found()
        return incident

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create_incident(self, org_id: UUID, data: IncidentCreateRequest) -> IncidentResponse:
        """
        Create an incident with exactly one update.

        - Resolves affected service ids to {id, name} snapshots, in request order
        - Sets resolved_at when created as Resolved
        """
        async with self.store.transaction() as tx:
            affected = await self._snapshot_services(tx.session, org_id, data.affected_service_ids)
            now = utcnow()
            incident = Incident(
                org_id=org_id,
                title=data.title,
                status=data.status,
                impact=data.impact,
                affected_services=affected,
                resolved_at=now if data.status is IncidentStatus.resolved else None,
                created_at=now,
                updated_at=now,
            )
            incident.updates.append(
                IncidentUpdate(
                    token=data.update_id or new_update_token(),
                    message=data.message,
                    status=data.status,
                    created_at=now,
                )
            )
            tx.session.add(incident)
            await tx.session.flush()
            tx.touch(incidents_path(org_id), incident_path(org_id, incident.id))
            response = IncidentResponse.model_validate(incident)

        logger.info("Incident created: org=%s id=%s status=%s", org_id, response.id, response.status.value)
        return response

    # -----------------------------------------------------------------------
    # Append update
    # -----------------------------------------------------------------------

    async def append_update(
        self, org_id: UUID, incident_id: UUID, data: IncidentUpdateCreateRequest
    ) -> IncidentResponse:
        """
        Append one update and move the incident to its status.

        The update is an insert, never a rewrite of the log, so concurrent
        appends all land. resolved_at follows the new status: set when
        Resolved, cleared otherwise. Re-posting a token the incident already
        has changes nothing.
        """
        token = data.id or new_update_token()
        try:
            async with self.store.transaction() as tx:
                exists = await tx.session.scalar(
                    select(Incident.id).where(Incident.id == incident_id, Incident.org_id == org_id)
                )
                if exists is None:
                    raise incident_not_found()

                now = utcnow()
                tx.session.add(
                    IncidentUpdate(
                        incident_id=incident_id,
                        token=token,
                        message=data.message,
                        status=data.status,
                        created_at=now,
                    )
                )
                await tx.session.flush()
                await tx.session.execute(
                    update(Incident)
                    .where(Incident.id == incident_id, Incident.org_id == org_id)
                    .values(
                        status=data.status,
                        updated_at=now,
                        resolved_at=now if data.status is IncidentStatus.resolved else None,
                    )
                )
                tx.touch(incidents_path(org_id), incident_path(org_id, incident_id))
        except IntegrityError:
            existing = await self.store.get_incident(org_id, incident_id)
            if existing is None or all(u.id != token for u in existing.updates):
                raise
            logger.info("Update %s already on incident %s, ignoring repost", token, incident_id)
            return existing

        logger.info("Incident updated: org=%s id=%s status=%s", org_id, incident_id, data.status.value)
        return await self.get_incident(org_id, incident_id)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _snapshot_services(
        self, session: AsyncSession, org_id: UUID, service_ids: list[UUID]
    ) -> list[dict[str, Any]]:
        ordered = list(dict.fromkeys(service_ids))
        if not ordered:
            return []
        result = await session.scalars(
            select(Service).where(Service.org_id == org_id, Service.id.in_(ordered))
        )
        names = {s.id: s.name for s in result.all()}
        missing = [str(i) for i in ordered if i not in names]
        if missing:
            raise NotFoundError(
                "SERVICE_NOT_FOUND", f"Unknown service id(s): {', '.join(missing)}"
            )
        return [{"id": str(i), "name": names[i]} for i in ordered]
