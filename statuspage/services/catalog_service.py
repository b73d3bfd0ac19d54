"""
Service catalog business logic.

Create, overwrite and delete the services an organization reports on.
All queries scoped by org_id.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from statuspage.core.exceptions import NotFoundError, ValidationError
from statuspage.models.base import utcnow
from statuspage.models.service import Service
from statuspage.schemas.service import (
    ServiceCreateRequest,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdateRequest,
)
from statuspage.store.client import DirectoryStore
from statuspage.store.paths import services_path

logger = logging.getLogger(__name__)


class CatalogService:
    """Handles all service catalog operations."""

    def __init__(self, store: DirectoryStore) -> None:
        self.store = store

    # -----------------------------------------------------------------------
    # List
    # -----------------------------------------------------------------------

    async def list_services(self, org_id: UUID) -> ServiceListResponse:
        services = await self.store.list_services(org_id)
        return ServiceListResponse(services=services, total=len(services))

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create_service(self, org_id: UUID, data: ServiceCreateRequest) -> ServiceResponse:
        """Duplicate names are allowed; timestamps come from the backend."""
        async with self.store.transaction() as tx:
            service = Service(org_id=org_id, name=data.name, status=data.status)
            tx.session.add(service)
            await tx.session.flush()
            tx.touch(services_path(org_id))
            response = ServiceResponse.model_validate(service)

        logger.info("Service created: org=%s id=%s name=%r", org_id, response.id, response.name)
        return response

    # -----------------------------------------------------------------------
    # Update
    # -----------------------------------------------------------------------

    async def update_service(
        self, org_id: UUID, service_id: UUID, data: ServiceUpdateRequest
    ) -> ServiceResponse:
        """Overwrite name and status. Last writer wins."""
        async with self.store.transaction() as tx:
            service = await self._get_service(tx.session, org_id, service_id)
            service.name = data.name
            service.status = data.status
            service.updated_at = utcnow()
            await tx.session.flush()
            tx.touch(services_path(org_id))
            response = ServiceResponse.model_validate(service)

        logger.info("Service updated: org=%s id=%s status=%s", org_id, service_id, data.status.value)
        return response

    # -----------------------------------------------------------------------
    # Delete
    # -----------------------------------------------------------------------

    async def delete_service(self, org_id: UUID, service_id: UUID, confirmed: bool = False) -> None:
        """
        Remove a service.

        Incidents keep their name snapshots of it; nothing cascades.
        """
        if not confirmed:
            raise ValidationError(
                "CONFIRMATION_REQUIRED", "Deleting a service must be explicitly confirmed"
            )

        async with self.store.transaction() as tx:
            service = await self._get_service(tx.session, org_id, service_id)
            await tx.session.delete(service)
            tx.touch(services_path(org_id))

        logger.info("Service deleted: org=%s id=%s", org_id, service_id)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_service(self, session: AsyncSession, org_id: UUID, service_id: UUID) -> Service:
        service = await session.scalar(
            select(Service).where(Service.id == service_id, Service.org_id == org_id)
        )
        if service is None:
            raise NotFoundError("SERVICE_NOT_FOUND", "Service not found")
        return service
