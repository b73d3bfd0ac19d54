"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from statuspage.models.base import Base, TimestampMixin, UUIDMixin
from statuspage.models.member import OrgMember, OrgRole
from statuspage.models.organization import Organization
from statuspage.models.user import User
from statuspage.models.service import Service, ServiceStatus
from statuspage.models.incident import Incident, IncidentImpact, IncidentStatus, IncidentUpdate

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Organization",
    "User",
    "OrgMember",
    "OrgRole",
    "Service",
    "ServiceStatus",
    "Incident",
    "IncidentImpact",
    "IncidentStatus",
    "IncidentUpdate",
]
