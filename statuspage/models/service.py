"""
Service ORM model.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statuspage.models.base import Base, TimestampMixin, UUIDMixin, enum_values

if TYPE_CHECKING:
    from statuspage.models.organization import Organization


class ServiceStatus(str, enum.Enum):
    """Current health of a monitored service."""

    operational = "Operational"
    degraded_performance = "Degraded Performance"
    partial_outage = "Partial Outage"
    major_outage = "Major Outage"


class Service(Base, UUIDMixin, TimestampMixin):
    """A monitored component with a current health status."""

    __tablename__ = "services"

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Names are not unique within an organization.
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[ServiceStatus] = mapped_column(
        Enum(ServiceStatus, name="service_status", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=ServiceStatus.operational,
    )

    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="services"
    )

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name!r} status={self.status.value!r}>"
