"""
OrgMember ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statuspage.models.base import Base, UUIDMixin, enum_values, utcnow

if TYPE_CHECKING:
    from statuspage.models.organization import Organization
    from statuspage.models.user import User


class OrgRole(str, enum.Enum):
    """Organization member role enumeration."""

    owner = "owner"
    member = "member"


class OrgMember(Base, UUIDMixin):
    """
    One row per (organization, user): the organization's member set.

    Growing the set is a single insert; the unique constraint makes a
    duplicate add fail instead of silently overwriting.
    """

    __tablename__ = "org_members"
    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_org_members_org_user"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.uid", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[OrgRole] = mapped_column(
        Enum(OrgRole, name="org_role", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=OrgRole.member,
    )
    joined_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="members"
    )
    user: Mapped[User] = relationship("User", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<OrgMember org_id={self.org_id} user_id={self.user_id} role={self.role}>"
