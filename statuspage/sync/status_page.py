"""
Public status page.

Read-only projection of one organization for anonymous viewers: name,
services and the active/resolved incident partitions. Members and profiles
are never part of it.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from uuid import UUID

from statuspage.core.exceptions import NotFoundError
from statuspage.derivation import build_status_page
from statuspage.schemas.status import StatusPageResponse
from statuspage.store.client import DirectoryStore
from statuspage.store.collections import IncidentView
from statuspage.sync.base import combine_latest, merged_state
from statuspage.sync.incidents import IncidentSync
from statuspage.sync.organization import OrganizationSync
from statuspage.sync.services import ServiceSync

logger = logging.getLogger(__name__)


def status_page_not_found() -> NotFoundError:
    return NotFoundError("ORG_NOT_FOUND", "Status page not found")


async def load_status_page(store: DirectoryStore, org_id: UUID) -> StatusPageResponse:
    """One-off read of the public view."""
    org = await store.get_organization(org_id)
    if org is None:
        raise status_page_not_found()
    services = await store.list_services(org_id)
    active = await store.list_incidents(org_id, IncidentView.active)
    resolved = await store.list_incidents(org_id, IncidentView.resolved)
    return build_status_page(org.id, org.name, services, active, resolved)


class StatusPageFeed:
    """Live public view of one organization."""

    def __init__(self, store: DirectoryStore, org_id: UUID) -> None:
        self.store = store
        self.org_id = org_id
        self.organization_name: str | None = None
        self.organization = OrganizationSync(store, org_id)
        self.services = ServiceSync(store, org_id)
        self.active = IncidentSync.active(store, org_id)
        self.resolved = IncidentSync.resolved(store, org_id)

    async def start(self) -> None:
        org = await self.store.get_organization(self.org_id)
        if org is None:
            raise status_page_not_found()
        self.organization_name = org.name
        await self.organization.start()
        await self.services.start()
        await self.active.start()
        await self.resolved.start()
        logger.debug("Status page feed opened for %s", self.org_id)

    async def close(self) -> None:
        await self.organization.stop()
        await self.services.stop()
        await self.active.stop()
        await self.resolved.stop()

    async def __aenter__(self) -> StatusPageFeed:
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def views(self) -> AsyncIterator[StatusPageResponse]:
        """Public view on every change; the organization name follows renames."""
        syncs = (self.organization, self.services, self.active, self.resolved)
        async with aclosing(combine_latest(*syncs)) as stream:
            async for organization, services, active, resolved in stream:
                if organization.items:
                    self.organization_name = organization.items[0].name
                state, error = merged_state((organization, services, active, resolved))
                yield build_status_page(
                    self.org_id,
                    self.organization_name or "",
                    services.items,
                    active.items,
                    resolved.items,
                    state=state,
                    error=error,
                )
