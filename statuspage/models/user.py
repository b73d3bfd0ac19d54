"""
User profile ORM model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statuspage.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from statuspage.models.member import OrgMember

DISPLAY_NAME_LENGTH = 100


class User(Base, TimestampMixin):
    """
    Profile of an authenticated identity.

    Keyed by the identity provider's subject. A profile belongs to exactly one
    organization at a time; an invite overwrites organization_id.
    """

    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(DISPLAY_NAME_LENGTH), nullable=False, default="")
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )

    # Relationships
    memberships: Mapped[list[OrgMember]] = relationship(
        "OrgMember", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User uid={self.uid!r} email={self.email!r}>"
