"""
Directory Store client.

Wraps the database and the change feed behind three primitives:

    read(loader)          one-off read in a fresh session
    transaction()         unit of work; touched paths are published after commit
    watch(path, loader)   initial snapshot, then a fresh snapshot per change

plus typed shortcuts for the collections the rest of the app reads.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from statuspage.core.config import Settings
from statuspage.core.database import build_engine, build_session_factory
from statuspage.core.exceptions import PartialWriteError
from statuspage.schemas.incident import IncidentResponse
from statuspage.schemas.organization import MemberResponse, OrganizationResponse, ProfileResponse
from statuspage.schemas.service import ServiceResponse
from statuspage.store import collections
from statuspage.store.collections import IncidentView
from statuspage.store.feed import ChangeFeed, LocalChangeFeed, RedisChangeFeed
from statuspage.store.paths import (
    incident_path,
    incidents_path,
    organization_path,
    services_path,
    user_path,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[AsyncSession], Awaitable[T]]


class StoreTransaction:
    """
    Handle passed to writers inside DirectoryStore.transaction().

    Writers use the session for ORM work and call touch() with every path
    whose subscribers must re-read.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.touched: list[str] = []

    def touch(self, *paths: str) -> None:
        for path in paths:
            if path not in self.touched:
                self.touched.append(path)


class DirectoryStore:
    """Durable, queryable, subscribable store of organization-scoped documents."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.feed = feed
        self._engine = engine

    # -----------------------------------------------------------------------
    # Primitives
    # -----------------------------------------------------------------------

    async def read(self, loader: Loader[T]) -> T:
        async with self._session_factory() as session:
            return await loader(session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        """
        Run a unit of work and notify subscribers once it has committed.

        Nothing is published when the body raises: the transaction is rolled
        back and subscribers keep their current snapshot.
        """
        async with self._session_factory() as session:
            async with session.begin():
                tx = StoreTransaction(session)
                yield tx

        for path in tx.touched:
            try:
                await self.feed.publish(path)
            except Exception as exc:
                logger.error("Committed write could not notify %s: %s", path, exc)
                raise PartialWriteError(
                    "NOTIFY_FAILED",
                    "The change was saved but live views could not be notified",
                ) from exc

    async def watch(self, path: str, loader: Loader[T]) -> AsyncIterator[T]:
        """
        Yield a full snapshot now and again after every change of path.

        The feed subscription is taken before the first read so a write that
        lands in between is not missed. Closing the generator (or cancelling
        the task iterating it) releases the subscription.
        """
        subscription = await self.feed.subscribe(path)
        logger.debug("Subscribed to %s", path)
        try:
            yield await self.read(loader)
            async for _ in subscription:
                yield await self.read(loader)
        finally:
            await subscription.close()
            logger.debug("Unsubscribed from %s", path)

    async def close(self) -> None:
        await self.feed.close()
        if self._engine is not None:
            await self._engine.dispose()

    # -----------------------------------------------------------------------
    # Typed reads
    # -----------------------------------------------------------------------

    async def get_profile(self, uid: str) -> ProfileResponse | None:
        return await self.read(lambda s: collections.fetch_profile(s, uid))

    async def get_organization(self, org_id: UUID) -> OrganizationResponse | None:
        return await self.read(lambda s: collections.fetch_organization(s, org_id))

    async def list_services(self, org_id: UUID) -> list[ServiceResponse]:
        return await self.read(lambda s: collections.fetch_services(s, org_id))

    async def list_incidents(
        self, org_id: UUID, view: IncidentView = IncidentView.all
    ) -> list[IncidentResponse]:
        return await self.read(lambda s: collections.fetch_incidents(s, org_id, view))

    async def get_incident(self, org_id: UUID, incident_id: UUID) -> IncidentResponse | None:
        return await self.read(lambda s: collections.fetch_incident(s, org_id, incident_id))

    # -----------------------------------------------------------------------
    # Typed subscriptions
    # -----------------------------------------------------------------------

    def watch_services(self, org_id: UUID) -> AsyncIterator[list[ServiceResponse]]:
        return self.watch(
            services_path(org_id), lambda s: collections.fetch_services(s, org_id)
        )

    def watch_incidents(
        self, org_id: UUID, view: IncidentView = IncidentView.all
    ) -> AsyncIterator[list[IncidentResponse]]:
        return self.watch(
            incidents_path(org_id), lambda s: collections.fetch_incidents(s, org_id, view)
        )

    def watch_profile(self, uid: str) -> AsyncIterator[list[ProfileResponse]]:
        async def load(session: AsyncSession) -> list[ProfileResponse]:
            profile = await collections.fetch_profile(session, uid)
            return [profile] if profile is not None else []

        return self.watch(user_path(uid), load)

    def watch_organization(self, org_id: UUID) -> AsyncIterator[list[OrganizationResponse]]:
        async def load(session: AsyncSession) -> list[OrganizationResponse]:
            org = await collections.fetch_organization(session, org_id)
            return [org] if org is not None else []

        return self.watch(organization_path(org_id), load)

    def watch_members(self, org_id: UUID) -> AsyncIterator[list[MemberResponse]]:
        """Roster of org_id; membership and member profile changes touch the organization path."""
        return self.watch(
            organization_path(org_id), lambda s: collections.fetch_members(s, org_id)
        )

    def watch_incident(self, org_id: UUID, incident_id: UUID) -> AsyncIterator[list[IncidentResponse]]:
        async def load(session: AsyncSession) -> list[IncidentResponse]:
            incident = await collections.fetch_incident(session, org_id, incident_id)
            return [incident] if incident is not None else []

        return self.watch(incident_path(org_id, incident_id), load)


def create_directory_store(settings: Settings) -> DirectoryStore:
    """Build the store configured by settings."""
    engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    feed: ChangeFeed
    if settings.CHANGE_FEED == "local":
        feed = LocalChangeFeed()
    else:
        feed = RedisChangeFeed.from_url(str(settings.REDIS_URL))
    logger.info("Directory store ready (change feed: %s)", settings.CHANGE_FEED)
    return DirectoryStore(build_session_factory(engine), feed, engine=engine)
