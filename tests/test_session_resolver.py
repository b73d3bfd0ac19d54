"""
Session resolver tests: first sign-in bootstrap, repeat sign-in, rollback.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from conftest import new_identity
from statuspage.core.exceptions import PartialWriteError
from statuspage.core.security import AuthenticatedIdentity
from statuspage.models.member import OrgMember, OrgRole
from statuspage.models.organization import NAME_LENGTH, Organization
from statuspage.models.user import DISPLAY_NAME_LENGTH, User
from statuspage.services.session_service import SessionResolver, default_organization_name


async def count(store, model) -> int:
    return await store.read(lambda s: s.scalar(select(func.count()).select_from(model)))


@pytest.mark.asyncio
async def test_first_sign_in_bootstraps_org_owner_and_profile(store):
    identity = new_identity("Ada Lovelace", "ada@example.com")

    session = await SessionResolver(store).resolve(identity)

    assert session.created is True
    assert session.profile.uid == identity.subject_id
    assert session.profile.email == "ada@example.com"
    assert session.profile.organization_id == session.organization.id
    assert session.organization.name == "Ada's Status Page"
    assert session.organization.owner_id == identity.subject_id
    assert session.organization.members == [identity.subject_id]
    assert session.organization.status_page_url.endswith(f"/status/{session.organization.id}")

    async def load_roles(session):
        result = await session.scalars(
            select(OrgMember.role).where(OrgMember.user_id == identity.subject_id)
        )
        return result.all()

    assert await store.read(load_roles) == [OrgRole.owner]


@pytest.mark.asyncio
async def test_second_sign_in_returns_existing_profile(store):
    identity = new_identity()
    resolver = SessionResolver(store)

    first = await resolver.resolve(identity)
    second = await resolver.resolve(identity)

    assert second.created is False
    assert second.profile == first.profile
    assert second.organization.id == first.organization.id
    assert await count(store, Organization) == 1


def test_default_name_falls_back_to_email_local_part():
    identity = new_identity("", "grace@example.com")
    assert default_organization_name(identity) == "grace's Status Page"


@pytest.mark.asyncio
async def test_failed_bootstrap_leaves_nothing_behind(store, monkeypatch):
    def broken_profile(self, identity, org):
        return User(uid=identity.subject_id, email=None, display_name="", organization_id=org.id)

    monkeypatch.setattr(SessionResolver, "_new_profile", broken_profile)
    identity = new_identity()

    with pytest.raises(PartialWriteError) as excinfo:
        await SessionResolver(store).resolve(identity)

    assert excinfo.value.code == "BOOTSTRAP_FAILED"
    assert await store.get_profile(identity.subject_id) is None
    assert await count(store, Organization) == 0
    assert await count(store, OrgMember) == 0


@pytest.mark.asyncio
async def test_concurrent_first_sign_in_creates_one_organization(store):
    identity = new_identity()
    resolver = SessionResolver(store)

    results = await asyncio.gather(resolver.resolve(identity), resolver.resolve(identity))

    assert [r.created for r in results].count(True) == 1
    assert results[0].profile == results[1].profile
    assert await count(store, Organization) == 1


@pytest.mark.asyncio
async def test_cached_profile_is_kept_by_default(store):
    identity = new_identity("Ada Lovelace", "ada@example.com")
    await SessionResolver(store).resolve(identity)

    renamed = AuthenticatedIdentity(identity.subject_id, "ada@example.com", "Ada King")
    session = await SessionResolver(store, refresh_profile=False).resolve(renamed)

    assert session.profile.display_name == "Ada Lovelace"


@pytest.mark.asyncio
async def test_profile_refresh_on_login(store):
    identity = new_identity("Ada Lovelace", "ada@example.com")
    await SessionResolver(store).resolve(identity)

    renamed = AuthenticatedIdentity(identity.subject_id, "countess@example.com", "Ada King")
    session = await SessionResolver(store, refresh_profile=True).resolve(renamed)

    assert session.profile.display_name == "Ada King"
    assert session.profile.email == "countess@example.com"
    assert (await store.get_profile(identity.subject_id)).display_name == "Ada King"


def test_default_name_without_name_or_email():
    identity = AuthenticatedIdentity("u1", "", "")
    assert default_organization_name(identity) == "My Status Page"


@pytest.mark.asyncio
async def test_long_display_name_fits_the_columns(store):
    identity = new_identity("A" * 150)

    session = await SessionResolver(store).resolve(identity)

    assert session.created is True
    assert session.profile.display_name == "A" * DISPLAY_NAME_LENGTH
    assert len(session.organization.name) == NAME_LENGTH
    assert session.organization.name.endswith("'s Status Page")


@pytest.mark.asyncio
async def test_refreshed_display_name_is_truncated(store):
    identity = new_identity("Ada Lovelace")
    await SessionResolver(store).resolve(identity)

    renamed = AuthenticatedIdentity(identity.subject_id, identity.email, "B" * 150)
    session = await SessionResolver(store, refresh_profile=True).resolve(renamed)

    assert session.profile.display_name == "B" * DISPLAY_NAME_LENGTH
