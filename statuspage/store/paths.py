"""
Document and collection paths.

A path names what a subscription watches and what a write touches; the
change feed uses it as the channel name.
"""

from __future__ import annotations

from uuid import UUID


def organization_path(org_id: UUID | str) -> str:
    """Format: organizations/{org_id}"""
    return f"organizations/{org_id}"


def services_path(org_id: UUID | str) -> str:
    """Format: organizations/{org_id}/services"""
    return f"{organization_path(org_id)}/services"


def incidents_path(org_id: UUID | str) -> str:
    """Format: organizations/{org_id}/incidents"""
    return f"{organization_path(org_id)}/incidents"


def incident_path(org_id: UUID | str, incident_id: UUID | str) -> str:
    """Format: organizations/{org_id}/incidents/{incident_id}"""
    return f"{incidents_path(org_id)}/{incident_id}"


def user_path(uid: str) -> str:
    """Format: users/{uid}"""
    return f"users/{uid}"


def feed_channel(path: str) -> str:
    """Redis channel for a path. Format: statuspage:changes:{path}"""
    return f"statuspage:changes:{path}"
