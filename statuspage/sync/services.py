from __future__ import annotations

from uuid import UUID

from statuspage.schemas.service import ServiceResponse
from statuspage.store.client import DirectoryStore
from statuspage.store.paths import services_path
from statuspage.sync.base import Synchronizer


class ServiceSync(Synchronizer[ServiceResponse]):
    """Services of one organization, newest first."""

    def __init__(self, store: DirectoryStore, org_id: UUID) -> None:
        self.org_id = org_id
        super().__init__(services_path(org_id), lambda: store.watch_services(org_id))
