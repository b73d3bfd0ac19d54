"""
Incident and IncidentUpdate ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statuspage.models.base import Base, TimestampMixin, UUIDMixin, enum_values, utcnow

if TYPE_CHECKING:
    from statuspage.models.organization import Organization


class IncidentStatus(str, enum.Enum):
    investigating = "Investigating"
    identified = "Identified"
    monitoring = "Monitoring"
    resolved = "Resolved"


class IncidentImpact(str, enum.Enum):
    critical = "Critical"
    major = "Major"
    minor = "Minor"
    none = "None"


class Incident(Base, UUIDMixin, TimestampMixin):
    """
    A reported disruption with an append-only log of updates.

    affected_services holds {"id", "name"} snapshots taken when the incident
    was written; they are never rewritten when a service is renamed or
    deleted.
    """

    __tablename__ = "incidents"
    __table_args__ = (
        CheckConstraint(
            "(status = 'Resolved') = (resolved_at IS NOT NULL)",
            name="ck_incidents_resolved_at_matches_status",
        ),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[IncidentStatus] = mapped_column(
        Enum(IncidentStatus, name="incident_status", native_enum=False, values_callable=enum_values),
        nullable=False,
        index=True,
    )
    impact: Mapped[IncidentImpact] = mapped_column(
        Enum(IncidentImpact, name="incident_impact", native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    affected_services: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="incidents"
    )
    updates: Mapped[list[IncidentUpdate]] = relationship(
        "IncidentUpdate",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentUpdate.seq",
    )

    def __repr__(self) -> str:
        return f"<Incident id={self.id} status={self.status.value!r} org_id={self.org_id}>"


class IncidentUpdate(Base):
    """
    One immutable entry of an incident's timeline.

    seq records append order; token is the client-generated id, unique per
    incident so a retried post is recognised instead of duplicated.
    """

    __tablename__ = "incident_updates"
    __table_args__ = (
        UniqueConstraint("incident_id", "token", name="uq_incident_updates_incident_token"),
    )

    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    incident_id: Mapped[UUID] = mapped_column(
        ForeignKey("incidents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[IncidentStatus] = mapped_column(
        Enum(IncidentStatus, name="incident_status", native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    incident: Mapped[Incident] = relationship("Incident", back_populates="updates")

    def __repr__(self) -> str:
        return f"<IncidentUpdate token={self.token!r} status={self.status.value!r}>"
