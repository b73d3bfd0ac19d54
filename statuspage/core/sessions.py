"""
Session registry.
In-memory map of open session contexts per user, single process.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from statuspage.store.client import DirectoryStore
from statuspage.sync.session import SessionContext

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Maps uid → open SessionContexts.
    A user may hold several (one per connected dashboard); sign-out closes all.
    """

    def __init__(self) -> None:
        self._active: dict[str, set[SessionContext]] = {}

    @asynccontextmanager
    async def open(
        self, store: DirectoryStore, uid: str, organization_id: UUID
    ) -> AsyncIterator[SessionContext]:
        context = SessionContext(store, uid, organization_id)
        self._active.setdefault(uid, set()).add(context)
        try:
            async with context:
                yield context
        finally:
            self._discard(context)

    async def sign_out(self, uid: str) -> int:
        """Close every session of uid. Returns how many were open."""
        contexts = self._active.pop(uid, set())
        for context in contexts:
            await context.close()
        logger.info("Signed out uid=%s, closed %d session(s)", uid, len(contexts))
        return len(contexts)

    async def close_all(self) -> None:
        for uid in list(self._active):
            await self.sign_out(uid)

    def sessions_for(self, uid: str) -> list[SessionContext]:
        return list(self._active.get(uid, ()))

    @property
    def connected_user_ids(self) -> list[str]:
        return list(self._active.keys())

    def _discard(self, context: SessionContext) -> None:
        contexts = self._active.get(context.uid)
        if contexts is None:
            return
        contexts.discard(context)
        if not contexts:
            del self._active[context.uid]
