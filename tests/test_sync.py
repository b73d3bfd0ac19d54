"""
Entity synchronizer tests.

Covers the snapshot lifecycle (loading, ready, error), observer fan-out,
exactly-once stop and the composed public status feed.
"""

import asyncio
import uuid
from contextlib import aclosing

import pytest

from conftest import until
from statuspage.core.exceptions import NotFoundError
from statuspage.core.security import AuthenticatedIdentity
from statuspage.models.incident import IncidentStatus
from statuspage.models.service import ServiceStatus
from statuspage.schemas.incident import IncidentCreateRequest, IncidentUpdateCreateRequest
from statuspage.schemas.organization import OrganizationUpdateRequest
from statuspage.schemas.service import ServiceCreateRequest, ServiceUpdateRequest
from statuspage.schemas.status import OverallStatus, ViewState
from statuspage.services.catalog_service import CatalogService
from statuspage.services.incident_service import IncidentService
from statuspage.services.organization_service import OrganizationService
from statuspage.services.session_service import SessionResolver
from statuspage.store.paths import incident_path, incidents_path, services_path
from statuspage.sync.base import Synchronizer, combine_latest
from statuspage.sync.incidents import IncidentDetailSync, IncidentSync
from statuspage.sync.organization import RosterSync
from statuspage.sync.services import ServiceSync
from statuspage.sync.status_page import StatusPageFeed


def idle_source(*items):
    """Source that yields one snapshot and then waits forever."""

    async def source():
        yield list(items)
        await asyncio.Event().wait()

    return source


# ---------------------------------------------------------------------------
# Synchronizer lifecycle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_observe_starts_loading_then_ready():
    sync = Synchronizer("numbers", idle_source(1, 2))
    async with sync:
        stream = sync.observe()
        first = await anext(stream)
        second = await asyncio.wait_for(anext(stream), 1)
        await stream.aclose()

    assert first.state is ViewState.loading
    assert second.ready
    assert second.items == (1, 2)


@pytest.mark.asyncio
async def test_each_observe_call_is_a_fresh_sequence():
    async with Synchronizer("numbers", idle_source(7)) as sync:
        async with aclosing(sync.observe()) as first:
            await until(first, lambda s: s.ready)
        async with aclosing(sync.observe()) as second:
            replay = await anext(second)

    assert replay.ready
    assert replay.items == (7,)


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_completes_observers():
    sync = Synchronizer("numbers", idle_source(1))
    await sync.start()
    stream = sync.observe()
    await until(stream, lambda s: s.ready)

    await sync.stop()
    await sync.stop()

    assert sync.stopped
    assert not sync.running
    with pytest.raises(StopAsyncIteration):
        await anext(stream)
    # Observing a stopped synchronizer yields its last snapshot and ends
    assert [s.items async for s in sync.observe()] == [(1,)]


@pytest.mark.asyncio
async def test_start_after_stop_is_rejected():
    sync = Synchronizer("numbers", idle_source())
    await sync.start()
    await sync.stop()
    with pytest.raises(RuntimeError):
        await sync.start()


@pytest.mark.asyncio
async def test_failing_source_publishes_error_and_completes():
    async def source():
        yield [1]
        raise RuntimeError("boom")

    async with Synchronizer("numbers", source) as sync:
        seen = [s async for s in sync.observe()]

    assert [s.state for s in seen] == [ViewState.loading, ViewState.ready, ViewState.error]
    assert seen[-1].error == "boom"
    assert seen[-1].items == (1,)


@pytest.mark.asyncio
async def test_combine_latest_emits_latest_of_each():
    left = Synchronizer("left", idle_source("a"))
    right = Synchronizer("right", idle_source("b"))
    async with left, right:
        async with aclosing(combine_latest(left, right)) as stream:
            both = await until(stream, lambda pair: all(s.ready for s in pair))

    assert [s.items for s in both] == [("a",), ("b",)]


# ---------------------------------------------------------------------------
# Store-backed synchronizers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_service_sync_follows_writes(store, feed, bootstrap):
    _, session = await bootstrap()
    org_id = session.organization.id
    catalog = CatalogService(store)

    async with ServiceSync(store, org_id) as sync:
        stream = sync.observe()
        await until(stream, lambda s: s.ready and s.items == ())

        created = await catalog.create_service(org_id, ServiceCreateRequest(name="API"))
        snapshot = await until(stream, lambda s: len(s.items) == 1)
        assert snapshot.items[0].status == ServiceStatus.operational

        await catalog.update_service(
            org_id, created.id, ServiceUpdateRequest(name="API", status=ServiceStatus.major_outage)
        )
        snapshot = await until(stream, lambda s: bool(s.items) and s.items[0].status == ServiceStatus.major_outage)
        assert snapshot.items[0].id == created.id
        await stream.aclose()

    assert feed.subscriber_count(services_path(org_id)) == 0


@pytest.mark.asyncio
async def test_incident_moves_from_active_to_resolved(store, feed, bootstrap):
    _, session = await bootstrap()
    org_id = session.organization.id
    incidents = IncidentService(store)

    async with IncidentSync.active(store, org_id) as active, IncidentSync.resolved(store, org_id) as resolved:
        active_stream = active.observe()
        resolved_stream = resolved.observe()

        incident = await incidents.create_incident(
            org_id, IncidentCreateRequest(title="DB down", message="Looking into it")
        )
        await until(active_stream, lambda s: [i.id for i in s.items] == [incident.id])

        await incidents.append_update(
            org_id,
            incident.id,
            IncidentUpdateCreateRequest(message="Fixed", status=IncidentStatus.resolved),
        )
        await until(active_stream, lambda s: s.ready and s.items == ())
        moved = await until(resolved_stream, lambda s: len(s.items) == 1)
        assert moved.items[0].id == incident.id
        await active_stream.aclose()
        await resolved_stream.aclose()

    assert feed.subscriber_count(incidents_path(org_id)) == 0


# ---------------------------------------------------------------------------
# Public status feed
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_status_page_feed_streams_overall_status(store, feed, bootstrap):
    _, session = await bootstrap()
    org_id = session.organization.id
    catalog = CatalogService(store)

    async with StatusPageFeed(store, org_id) as status_feed:
        views = status_feed.views()
        first = await until(views, lambda v: v.state is ViewState.ready)
        assert first.organization_name == "Ada's Status Page"
        assert first.overall_status == OverallStatus.unknown

        api = await catalog.create_service(org_id, ServiceCreateRequest(name="API"))
        await until(views, lambda v: v.overall_status == OverallStatus.all_operational)

        await catalog.update_service(
            org_id, api.id, ServiceUpdateRequest(name="API", status=ServiceStatus.major_outage)
        )
        await until(views, lambda v: v.overall_status == OverallStatus.major_outage)
        await views.aclose()

    assert feed.subscriber_count() == 0


@pytest.mark.asyncio
async def test_status_page_feed_for_unknown_org(store):
    with pytest.raises(NotFoundError):
        async with StatusPageFeed(store, uuid.uuid4()):
            pass


@pytest.mark.asyncio
async def test_status_page_feed_follows_rename(store, bootstrap):
    _, session = await bootstrap()
    org_id = session.organization.id

    async with StatusPageFeed(store, org_id) as status_feed:
        views = status_feed.views()
        await until(views, lambda v: v.state is ViewState.ready)

        await OrganizationService(store).update_organization(
            org_id, OrganizationUpdateRequest(name="Acme Status")
        )
        renamed = await until(views, lambda v: v.organization_name == "Acme Status")
        assert renamed.state is ViewState.ready
        await views.aclose()


# ---------------------------------------------------------------------------
# Incident detail and roster
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_incident_detail_receives_appended_updates(store, feed, bootstrap):
    _, session = await bootstrap()
    org_id = session.organization.id
    incidents = IncidentService(store)
    incident = await incidents.create_incident(
        org_id, IncidentCreateRequest(title="DB down", message="Investigating")
    )

    async with IncidentDetailSync(store, org_id, incident.id) as detail:
        views = detail.views()
        first = await until(views, lambda v: v.state is ViewState.ready)
        assert first.incident.id == incident.id
        assert len(first.incident.updates) == 1

        await incidents.append_update(
            org_id, incident.id, IncidentUpdateCreateRequest(message="Fixed", status=IncidentStatus.resolved)
        )
        resolved = await until(views, lambda v: v.incident is not None and len(v.incident.updates) == 2)
        assert resolved.incident.status == IncidentStatus.resolved
        assert [u.message for u in resolved.incident.updates] == ["Fixed", "Investigating"]
        assert detail.incident.resolved_at is not None
        await views.aclose()

    assert feed.subscriber_count(incident_path(org_id, incident.id)) == 0


@pytest.mark.asyncio
async def test_incident_detail_of_missing_or_foreign_incident(store, bootstrap):
    _, session = await bootstrap("Ada Lovelace")
    _, other = await bootstrap("Grace Hopper")
    foreign = await IncidentService(store).create_incident(
        other.organization.id, IncidentCreateRequest(title="Theirs", message="x")
    )

    for incident_id in (uuid.uuid4(), foreign.id):
        async with IncidentDetailSync(store, session.organization.id, incident_id) as detail:
            async with aclosing(detail.views()) as views:
                view = await until(views, lambda v: v.state is ViewState.ready)
        assert view.incident is None
        assert view.incident_id == incident_id


@pytest.mark.asyncio
async def test_roster_follows_invites_and_profile_changes(store, bootstrap):
    owner, session = await bootstrap("Ada Lovelace")
    invitee, _ = await bootstrap("Grace Hopper", "grace@example.com")
    org_id = session.organization.id

    async with RosterSync(store, org_id) as roster:
        stream = roster.observe()
        first = await until(stream, lambda s: s.ready)
        assert [m.uid for m in first.items] == [owner.subject_id]

        await OrganizationService(store).invite_member(org_id, "grace@example.com")
        grown = await until(stream, lambda s: len(s.items) == 2)
        assert [(m.display_name, m.is_owner) for m in grown.items] == [
            ("Ada Lovelace", True),
            ("Grace Hopper", False),
        ]

        renamed = AuthenticatedIdentity(invitee.subject_id, invitee.email, "Grace B. Hopper")
        await SessionResolver(store, refresh_profile=True).resolve(renamed)
        refreshed = await until(
            stream, lambda s: any(m.display_name == "Grace B. Hopper" for m in s.items)
        )
        assert len(refreshed.items) == 2
        await stream.aclose()
