"""
Service catalog endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from statuspage.core.dependencies import get_org_member, get_store
from statuspage.models.member import OrgMember
from statuspage.schemas.organization import OrganizationResponse
from statuspage.schemas.service import (
    ServiceCreateRequest,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdateRequest,
)
from statuspage.services.catalog_service import CatalogService
from statuspage.store.client import DirectoryStore

router = APIRouter()


def get_catalog_service(store: DirectoryStore = Depends(get_store)) -> CatalogService:
    """Dependency that constructs CatalogService."""
    return CatalogService(store=store)


@router.get(
    "/organizations/{org_id}/services",
    response_model=ServiceListResponse,
    summary="List services",
)
async def list_services(
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceListResponse:
    """Services of the organization, newest first."""
    org, _ = org_and_member
    return await service.list_services(org.id)


@router.post(
    "/organizations/{org_id}/services",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a service",
)
async def create_service(
    data: ServiceCreateRequest,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    org, _ = org_and_member
    return await service.create_service(org.id, data)


@router.put(
    "/organizations/{org_id}/services/{service_id}",
    response_model=ServiceResponse,
    summary="Overwrite a service's name and status",
)
async def update_service(
    service_id: UUID,
    data: ServiceUpdateRequest,
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    org, _ = org_and_member
    return await service.update_service(org.id, service_id, data)


@router.delete(
    "/organizations/{org_id}/services/{service_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a service",
)
async def delete_service(
    service_id: UUID,
    confirm: bool = Query(False, description="Must be true to delete"),
    org_and_member: tuple[OrganizationResponse, OrgMember] = Depends(get_org_member),
    service: CatalogService = Depends(get_catalog_service),
) -> None:
    """
    Delete a service. Requires ?confirm=true.

    Existing incidents keep the service's name in their affected list.
    """
    org, _ = org_and_member
    await service.delete_service(org.id, service_id, confirmed=confirm)
