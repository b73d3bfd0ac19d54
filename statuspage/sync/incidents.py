from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing
from uuid import UUID

from statuspage.derivation import build_incident_detail
from statuspage.schemas.incident import IncidentResponse
from statuspage.schemas.status import IncidentDetailResponse
from statuspage.store.client import DirectoryStore
from statuspage.store.collections import IncidentView
from statuspage.store.paths import incident_path, incidents_path
from statuspage.sync.base import Synchronizer


class IncidentSync(Synchronizer[IncidentResponse]):
    """
    Incidents of one organization.

    view selects the slice: all incidents newest first, active ones ordered by
    status then newest first, or resolved ones newest first.
    """

    def __init__(
        self,
        store: DirectoryStore,
        org_id: UUID,
        view: IncidentView = IncidentView.all,
    ) -> None:
        self.org_id = org_id
        self.view = view
        super().__init__(
            f"{incidents_path(org_id)}?view={view.value}",
            lambda: store.watch_incidents(org_id, view),
        )

    @classmethod
    def active(cls, store: DirectoryStore, org_id: UUID) -> IncidentSync:
        return cls(store, org_id, IncidentView.active)

    @classmethod
    def resolved(cls, store: DirectoryStore, org_id: UUID) -> IncidentSync:
        return cls(store, org_id, IncidentView.resolved)


class IncidentDetailSync(Synchronizer[IncidentResponse]):
    """
    One incident with its update log.

    Holds zero items while the incident does not exist in the organization,
    so a missing or foreign id is a ready snapshot with no incident.
    """

    def __init__(self, store: DirectoryStore, org_id: UUID, incident_id: UUID) -> None:
        self.org_id = org_id
        self.incident_id = incident_id
        super().__init__(
            incident_path(org_id, incident_id),
            lambda: store.watch_incident(org_id, incident_id),
        )

    @property
    def incident(self) -> IncidentResponse | None:
        items = self.current.items
        return items[0] if items else None

    async def views(self) -> AsyncIterator[IncidentDetailResponse]:
        async with aclosing(self.observe()) as snapshots:
            async for snapshot in snapshots:
                yield build_incident_detail(
                    self.org_id,
                    self.incident_id,
                    snapshot.items,
                    state=snapshot.state,
                    error=snapshot.error,
                )
