"""
Session resolver.

Turns a verified identity into a profile plus organization, creating both on
the first sign-in.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from statuspage.core.config import settings
from statuspage.core.exceptions import NotFoundError, PartialWriteError
from statuspage.core.security import AuthenticatedIdentity
from statuspage.models.member import OrgMember, OrgRole
from statuspage.models.organization import NAME_LENGTH, Organization
from statuspage.models.user import DISPLAY_NAME_LENGTH, User
from statuspage.schemas.organization import ProfileResponse, SessionResponse
from statuspage.store.client import DirectoryStore
from statuspage.store.paths import organization_path, user_path

logger = logging.getLogger(__name__)


ORGANIZATION_SUFFIX = "'s Status Page"
FALLBACK_ORGANIZATION_NAME = "My Status Page"


def default_organization_name(identity: AuthenticatedIdentity) -> str:
    """
    "<first name>'s Status Page", cut to fit the organization name column.

    An identity with neither a display name nor an email gets a fixed name.
    """
    first_name = identity.first_name
    if not first_name:
        return FALLBACK_ORGANIZATION_NAME
    return first_name[: NAME_LENGTH - len(ORGANIZATION_SUFFIX)] + ORGANIZATION_SUFFIX


class SessionResolver:
    """
    Resolve or bootstrap the profile of a signed-in identity.

    An existing profile is returned as stored unless refresh_profile is set,
    in which case email and display name are refreshed from the identity.
    """

    def __init__(self, store: DirectoryStore, refresh_profile: bool | None = None) -> None:
        self.store = store
        self.refresh_profile = (
            settings.PROFILE_REFRESH_ON_LOGIN if refresh_profile is None else refresh_profile
        )

    async def resolve(self, identity: AuthenticatedIdentity) -> SessionResponse:
        created = False
        profile = await self.store.get_profile(identity.subject_id)
        if profile is None:
            profile, created = await self._bootstrap(identity)
        elif self.refresh_profile:
            profile = await self._refresh(identity)

        org = await self.store.get_organization(profile.organization_id)
        if org is None:
            raise NotFoundError("ORG_NOT_FOUND", "Organization not found")
        return SessionResponse(profile=profile, organization=org, created=created)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _bootstrap(self, identity: AuthenticatedIdentity) -> tuple[ProfileResponse, bool]:
        """
        Create organization, owner membership and profile in one transaction.

        Returns (profile, created). Losing a concurrent first-login race
        returns the winner's profile with created=False.
        """
        uid = identity.subject_id
        try:
            async with self.store.transaction() as tx:
                org = Organization(name=default_organization_name(identity), owner_id=uid)
                tx.session.add(org)
                await tx.session.flush()

                user = self._new_profile(identity, org)
                tx.session.add(user)
                await tx.session.flush()

                tx.session.add(OrgMember(org_id=org.id, user_id=uid, role=OrgRole.owner))
                await tx.session.flush()

                tx.touch(user_path(uid), organization_path(org.id))
                profile = ProfileResponse.model_validate(user)
        except IntegrityError as exc:
            existing = await self.store.get_profile(uid)
            if existing is not None:
                logger.info("Concurrent first sign-in for uid=%s, using existing profile", uid)
                return existing, False
            logger.error("Bootstrap failed for uid=%s: %s", uid, exc)
            raise PartialWriteError(
                "BOOTSTRAP_FAILED", "Account setup failed and was rolled back"
            ) from exc
        except SQLAlchemyError as exc:
            logger.error("Bootstrap failed for uid=%s: %s", uid, exc)
            raise PartialWriteError(
                "BOOTSTRAP_FAILED", "Account setup failed and was rolled back"
            ) from exc

        logger.info("Bootstrapped uid=%s with organization %s", uid, profile.organization_id)
        return profile, True

    def _new_profile(self, identity: AuthenticatedIdentity, org: Organization) -> User:
        return User(
            uid=identity.subject_id,
            email=identity.email,
            display_name=identity.display_name[:DISPLAY_NAME_LENGTH],
            organization_id=org.id,
        )

    async def _refresh(self, identity: AuthenticatedIdentity) -> ProfileResponse:
        async with self.store.transaction() as tx:
            user = await tx.session.get(User, identity.subject_id)
            if user is None:
                raise NotFoundError("USER_NOT_FOUND", "Profile not found")
            if identity.email:
                user.email = identity.email
            user.display_name = identity.display_name[:DISPLAY_NAME_LENGTH]
            tx.touch(user_path(user.uid))
            # Rosters show profile details
            org_ids = await tx.session.scalars(
                select(OrgMember.org_id).where(OrgMember.user_id == user.uid)
            )
            tx.touch(*(organization_path(org_id) for org_id in org_ids.all()))
            profile = ProfileResponse.model_validate(user)
        return profile
