from __future__ import annotations

from uuid import UUID

from statuspage.schemas.organization import MemberResponse, OrganizationResponse
from statuspage.store.client import DirectoryStore
from statuspage.store.paths import organization_path
from statuspage.sync.base import Synchronizer


class OrganizationSync(Synchronizer[OrganizationResponse]):
    """The organization document itself (zero or one item)."""

    def __init__(self, store: DirectoryStore, org_id: UUID) -> None:
        self.org_id = org_id
        super().__init__(organization_path(org_id), lambda: store.watch_organization(org_id))

    @property
    def organization(self) -> OrganizationResponse | None:
        items = self.current.items
        return items[0] if items else None


class RosterSync(Synchronizer[MemberResponse]):
    """
    Members of one organization with their profile details, oldest first.

    One batched query per change of the organization document, not one
    subscription per member.
    """

    def __init__(self, store: DirectoryStore, org_id: UUID) -> None:
        self.org_id = org_id
        super().__init__(
            f"{organization_path(org_id)}?view=members",
            lambda: store.watch_members(org_id),
        )
