"""
Signed-in session state.

A SessionContext lives from sign-in to sign-out (or disconnect). It follows
the user's profile document and keeps one Workspace, the org-scoped
synchronizers, for the organization the profile currently points at. When
an invite moves the user to another organization the old workspace is
closed before anything from the new one is observed by the caller, and no
subscription of the previous organization survives.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from uuid import UUID

from statuspage.derivation import build_dashboard
from statuspage.schemas.status import DashboardResponse, IncidentDetailResponse
from statuspage.store.client import DirectoryStore
from statuspage.sync.base import combine_latest, merged_state
from statuspage.sync.incidents import IncidentDetailSync, IncidentSync
from statuspage.sync.organization import RosterSync
from statuspage.sync.profile import ProfileSync
from statuspage.sync.services import ServiceSync

logger = logging.getLogger(__name__)


class Workspace:
    """
    Services, incidents and roster of one organization, plus every incident
    detail view opened in it. Closing the workspace ends all of them.
    """

    def __init__(self, store: DirectoryStore, org_id: UUID) -> None:
        self.store = store
        self.org_id = org_id
        self.services = ServiceSync(store, org_id)
        self.incidents = IncidentSync(store, org_id)
        self.roster = RosterSync(store, org_id)
        self.details: set[IncidentDetailSync] = set()

    @property
    def closed(self) -> bool:
        return self.services.stopped and self.incidents.stopped and self.roster.stopped

    async def open(self) -> None:
        await self.services.start()
        await self.incidents.start()
        await self.roster.start()

    async def close(self) -> None:
        for detail in list(self.details):
            await self.close_incident(detail)
        await self.services.stop()
        await self.incidents.stop()
        await self.roster.stop()

    async def open_incident(self, incident_id: UUID) -> IncidentDetailSync:
        detail = IncidentDetailSync(self.store, self.org_id, incident_id)
        self.details.add(detail)
        if self.closed:
            await self.close_incident(detail)
        else:
            await detail.start()
        return detail

    async def close_incident(self, detail: IncidentDetailSync) -> None:
        self.details.discard(detail)
        await detail.stop()

    async def views(self) -> AsyncIterator[DashboardResponse]:
        async with aclosing(combine_latest(self.services, self.incidents, self.roster)) as stream:
            async for services, incidents, members in stream:
                state, error = merged_state((services, incidents, members))
                yield build_dashboard(
                    self.org_id,
                    services.items,
                    incidents.items,
                    members.items,
                    state=state,
                    error=error,
                )


class SessionContext:
    """Explicit lifecycle for everything one signed-in client subscribes to."""

    def __init__(self, store: DirectoryStore, uid: str, organization_id: UUID) -> None:
        self.store = store
        self.uid = uid
        self.profile = ProfileSync(store, uid)
        self.workspace = Workspace(store, organization_id)
        self._follower: asyncio.Task[None] | None = None
        self._opened = False
        self._closed = False

    @property
    def organization_id(self) -> UUID:
        return self.workspace.org_id

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        if self._opened:
            return
        self._opened = True
        await self.workspace.open()
        await self.profile.start()
        self._follower = asyncio.create_task(
            self._follow_profile(), name=f"session:{self.uid}"
        )
        logger.info("Session opened: uid=%s org=%s", self.uid, self.organization_id)

    async def close(self) -> None:
        """Cancel every subscription this session holds. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._follower is not None:
            self._follower.cancel()
            try:
                await self._follower
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Profile follower failed: uid=%s", self.uid)
        await self.profile.stop()
        await self.workspace.close()
        logger.info("Session closed: uid=%s", self.uid)

    async def __aenter__(self) -> SessionContext:
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def views(self) -> AsyncIterator[DashboardResponse]:
        """Dashboard views of the current organization, across switches."""
        while not self._closed:
            workspace = self.workspace
            async with aclosing(workspace.views()) as stream:
                async for view in stream:
                    yield view
            if self.workspace is workspace:
                # Ended without a switch: closed or failed.
                return

    async def incident_views(self, incident_id: UUID) -> AsyncIterator[IncidentDetailResponse]:
        """
        Live view of one incident of the current organization.

        Ends on sign-out and when the session moves to another organization.
        """
        workspace = self.workspace
        detail = await workspace.open_incident(incident_id)
        try:
            async with aclosing(detail.views()) as stream:
                async for view in stream:
                    yield view
        finally:
            await workspace.close_incident(detail)

    async def _follow_profile(self) -> None:
        async with aclosing(self.profile.observe()) as snapshots:
            async for snapshot in snapshots:
                if not snapshot.ready or not snapshot.items:
                    continue
                org_id = snapshot.items[0].organization_id
                if org_id != self.workspace.org_id:
                    await self._switch(org_id)

    async def _switch(self, org_id: UUID) -> None:
        previous = self.workspace
        workspace = Workspace(self.store, org_id)
        await workspace.open()
        self.workspace = workspace
        await previous.close()
        logger.info(
            "Session switched organization: uid=%s %s -> %s",
            self.uid,
            previous.org_id,
            org_id,
        )
