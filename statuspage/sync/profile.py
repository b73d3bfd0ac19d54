from __future__ import annotations

from statuspage.schemas.organization import ProfileResponse
from statuspage.store.client import DirectoryStore
from statuspage.store.paths import user_path
from statuspage.sync.base import Synchronizer


class ProfileSync(Synchronizer[ProfileResponse]):
    """The signed-in user's own profile (zero or one item)."""

    def __init__(self, store: DirectoryStore, uid: str) -> None:
        self.uid = uid
        super().__init__(user_path(uid), lambda: store.watch_profile(uid))

    @property
    def profile(self) -> ProfileResponse | None:
        items = self.current.items
        return items[0] if items else None
