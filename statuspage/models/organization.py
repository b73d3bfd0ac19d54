"""
Organization ORM model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statuspage.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from statuspage.models.incident import Incident
    from statuspage.models.member import OrgMember
    from statuspage.models.service import Service

NAME_LENGTH = 100


class Organization(Base, UUIDMixin, TimestampMixin):
    """Tenant boundary: owns services and incidents, has members."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    # Identity subject of the creator. Weak reference: the owner's profile is
    # written in the same transaction, after the organization.
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Relationships
    members: Mapped[list[OrgMember]] = relationship(
        "OrgMember",
        back_populates="organization",
        cascade="all, delete-orphan",
        order_by="OrgMember.joined_at",
    )
    services: Mapped[list[Service]] = relationship(
        "Service", back_populates="organization", cascade="all, delete-orphan"
    )
    incidents: Mapped[list[Incident]] = relationship(
        "Incident", back_populates="organization", cascade="all, delete-orphan"
    )

    @property
    def member_ids(self) -> list[str]:
        return [m.user_id for m in self.members]

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"
