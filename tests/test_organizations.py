"""
Organization, membership and session context tests.
"""

import asyncio

import pytest

from conftest import new_identity, until
from statuspage.core.exceptions import NotFoundError, ValidationError
from statuspage.schemas.incident import IncidentCreateRequest
from statuspage.schemas.organization import OrganizationUpdateRequest
from statuspage.schemas.service import ServiceCreateRequest
from statuspage.schemas.status import ViewState
from statuspage.services.catalog_service import CatalogService
from statuspage.services.incident_service import IncidentService
from statuspage.services.organization_service import OrganizationService
from statuspage.services.session_service import SessionResolver
from statuspage.store.paths import incident_path, incidents_path, organization_path, services_path, user_path
from statuspage.sync.session import SessionContext


@pytest.fixture
def orgs(store) -> OrganizationService:
    return OrganizationService(store)


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_rename_organization(orgs, bootstrap):
    _, session = await bootstrap()

    renamed = await orgs.update_organization(
        session.organization.id, OrganizationUpdateRequest(name="  Acme Status  ")
    )

    assert renamed.name == "Acme Status"
    assert (await orgs.get_organization(session.organization.id)).name == "Acme Status"


# ---------------------------------------------------------------------------
# Invite
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invite_unknown_email_changes_nothing(orgs, bootstrap):
    owner, session = await bootstrap()
    org_id = session.organization.id

    with pytest.raises(NotFoundError) as excinfo:
        await orgs.invite_member(org_id, "nobody@example.com")

    assert excinfo.value.code == "USER_NOT_FOUND"
    assert (await orgs.get_organization(org_id)).members == [owner.subject_id]


@pytest.mark.asyncio
async def test_invite_existing_member_is_rejected_without_mutation(store, orgs, bootstrap):
    owner, session = await bootstrap("Ada Lovelace", "ada@example.com")
    org_id = session.organization.id
    before = await orgs.get_organization(org_id)

    with pytest.raises(ValidationError) as excinfo:
        await orgs.invite_member(org_id, "ada@example.com")

    assert excinfo.value.code == "ALREADY_MEMBER"
    assert excinfo.value.status_code == 409
    after = await orgs.get_organization(org_id)
    assert after.members == before.members
    assert after.updated_at == before.updated_at
    assert (await store.get_profile(owner.subject_id)).organization_id == org_id


@pytest.mark.asyncio
async def test_invite_transfers_the_invitee(store, orgs, bootstrap):
    owner, owner_session = await bootstrap("Ada Lovelace")
    invitee, invitee_session = await bootstrap("Grace Hopper", "grace@example.com")
    org_id = owner_session.organization.id

    member = await orgs.invite_member(org_id, "Grace@Example.com")

    assert member.uid == invitee.subject_id
    assert member.is_owner is False
    assert (await store.get_profile(invitee.subject_id)).organization_id == org_id
    assert (await orgs.get_organization(org_id)).members == [owner.subject_id, invitee.subject_id]

    # Sign-in now lands in the new organization
    session = await SessionResolver(store).resolve(invitee)
    assert session.organization.id == org_id
    assert session.organization.id != invitee_session.organization.id


@pytest.mark.asyncio
async def test_invite_with_ambiguous_email(orgs, bootstrap):
    _, session = await bootstrap()
    await bootstrap("Grace Hopper", "grace@example.com")
    await bootstrap("Grace H.", "GRACE@example.com")

    with pytest.raises(ValidationError) as excinfo:
        await orgs.invite_member(session.organization.id, "grace@example.com")

    assert excinfo.value.code == "AMBIGUOUS_EMAIL"


@pytest.mark.asyncio
async def test_list_members_reads_profiles(orgs, bootstrap):
    owner, session = await bootstrap("Ada Lovelace")
    await bootstrap("Grace Hopper", "grace@example.com")
    await orgs.invite_member(session.organization.id, "grace@example.com")

    roster = await orgs.list_members(session.organization.id)

    assert roster.total == 2
    assert [(m.display_name, m.is_owner) for m in roster.members] == [
        ("Ada Lovelace", True),
        ("Grace Hopper", False),
    ]


# ---------------------------------------------------------------------------
# Session context
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_session_follows_invite_into_new_organization(store, feed, sessions, orgs, bootstrap):
    _, owner_session = await bootstrap("Ada Lovelace")
    invitee, invitee_session = await bootstrap("Grace Hopper", "grace@example.com")
    old_org = invitee_session.organization.id
    new_org = owner_session.organization.id
    await CatalogService(store).create_service(new_org, ServiceCreateRequest(name="API"))

    async with sessions.open(store, invitee.subject_id, old_org) as context:
        views = context.views()
        first = await until(views, lambda v: v.state is ViewState.ready)
        assert first.organization_id == old_org
        assert first.services == []

        await orgs.invite_member(new_org, "grace@example.com")

        moved = await until(views, lambda v: v.organization_id == new_org and v.state is ViewState.ready)
        assert [s.name for s in moved.services] == ["API"]
        assert context.organization_id == new_org
        assert feed.subscriber_count(services_path(old_org)) == 0
        assert feed.subscriber_count(incidents_path(old_org)) == 0
        assert feed.subscriber_count(organization_path(old_org)) == 0
        await views.aclose()

    assert feed.subscriber_count() == 0


@pytest.mark.asyncio
async def test_sign_out_closes_every_session(store, feed, sessions, bootstrap):
    identity, session = await bootstrap()
    org_id = session.organization.id

    async def watch_until_closed():
        async with sessions.open(store, identity.subject_id, org_id) as context:
            return [view async for view in context.views()]

    watchers = [asyncio.create_task(watch_until_closed()) for _ in range(2)]
    await asyncio.sleep(0.1)
    assert len(sessions.sessions_for(identity.subject_id)) == 2
    assert feed.subscriber_count(user_path(identity.subject_id)) == 2

    closed = await sessions.sign_out(identity.subject_id)

    assert closed == 2
    results = await asyncio.wait_for(asyncio.gather(*watchers), 5)
    assert all(results)
    assert sessions.connected_user_ids == []
    assert feed.subscriber_count() == 0


@pytest.mark.asyncio
async def test_session_for_other_identity_is_untouched_by_sign_out(store, sessions, bootstrap):
    first, first_session = await bootstrap("Ada Lovelace")
    second = new_identity("Grace Hopper")
    second_session = await SessionResolver(store).resolve(second)

    async with sessions.open(store, first.subject_id, first_session.organization.id) as kept:
        async with sessions.open(store, second.subject_id, second_session.organization.id):
            assert await sessions.sign_out(second.subject_id) == 1
            assert not kept.closed
            assert sessions.connected_user_ids == [first.subject_id]


@pytest.mark.asyncio
async def test_dashboard_roster_follows_invites(store, sessions, orgs, bootstrap):
    owner, owner_session = await bootstrap("Ada Lovelace")
    await bootstrap("Grace Hopper", "grace@example.com")
    org_id = owner_session.organization.id

    async with sessions.open(store, owner.subject_id, org_id) as context:
        views = context.views()
        first = await until(views, lambda v: v.state is ViewState.ready)
        assert [m.display_name for m in first.members] == ["Ada Lovelace"]

        await orgs.invite_member(org_id, "grace@example.com")

        grown = await until(views, lambda v: len(v.members) == 2)
        assert [(m.display_name, m.is_owner) for m in grown.members] == [
            ("Ada Lovelace", True),
            ("Grace Hopper", False),
        ]
        await views.aclose()


@pytest.mark.asyncio
async def test_incident_view_ends_when_session_moves(store, feed, sessions, orgs, bootstrap):
    _, owner_session = await bootstrap("Ada Lovelace")
    invitee, invitee_session = await bootstrap("Grace Hopper", "grace@example.com")
    old_org = invitee_session.organization.id
    incident = await IncidentService(store).create_incident(
        old_org, IncidentCreateRequest(title="DB down", message="Investigating")
    )

    async with sessions.open(store, invitee.subject_id, old_org) as context:
        views = context.incident_views(incident.id)
        first = await until(views, lambda v: v.state is ViewState.ready)
        assert first.incident.title == "DB down"

        await orgs.invite_member(owner_session.organization.id, "grace@example.com")

        rest = await asyncio.wait_for(_drain(views), 5)
        assert all(v.organization_id == old_org for v in rest)
        assert context.organization_id == owner_session.organization.id
        assert not context.closed
        assert feed.subscriber_count(incident_path(old_org, incident.id)) == 0


@pytest.mark.asyncio
async def test_incident_view_ends_on_sign_out(store, feed, sessions, bootstrap):
    identity, session = await bootstrap()
    org_id = session.organization.id
    incident = await IncidentService(store).create_incident(
        org_id, IncidentCreateRequest(title="DB down", message="Investigating")
    )

    async def watch_until_closed():
        async with sessions.open(store, identity.subject_id, org_id) as context:
            return [view async for view in context.incident_views(incident.id)]

    watcher = asyncio.create_task(watch_until_closed())
    await asyncio.sleep(0.1)
    assert feed.subscriber_count(incident_path(org_id, incident.id)) == 1

    await sessions.sign_out(identity.subject_id)

    seen = await asyncio.wait_for(watcher, 5)
    assert seen[-1].incident.id == incident.id
    assert feed.subscriber_count() == 0


@pytest.mark.asyncio
async def test_close_survives_failed_profile_follower(store, feed, monkeypatch, caplog, bootstrap):
    identity, session = await bootstrap()

    async def broken(self):
        raise RuntimeError("profile feed lost")

    monkeypatch.setattr(SessionContext, "_follow_profile", broken)

    async with SessionContext(store, identity.subject_id, session.organization.id) as context:
        await asyncio.sleep(0.05)

    assert context.closed
    assert "Profile follower failed" in caplog.text
    assert feed.subscriber_count() == 0


async def _drain(stream):
    return [item async for item in stream]
