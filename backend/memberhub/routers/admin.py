"""
Super admin console endpoints.

Only users with ``is_super_admin`` can reach these. They manage
organizations directly, bypassing profile membership.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_redis, require_super_admin
from memberhub.models.user import User
from memberhub.schemas.organization import (
    OrganizationAdminUpdateRequest,
    OrganizationCreateRequest,
    OrganizationCreateResponse,
    OrganizationListResponse,
    OrganizationResponse,
    OrganizationStatsResponse,
)
from memberhub.services.organization_service import OrganizationService

router = APIRouter()


def get_org_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OrganizationService:
    return OrganizationService(db=db, redis=redis)


@router.post(
    "/organizations",
    response_model=OrganizationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an organization",
)
async def create_organization(
    data: OrganizationCreateRequest,
    current_user: User = Depends(require_super_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationCreateResponse:
    """
    Create an organization with its default signup form.

    When ``admin_email`` is given, an admin invitation is sent to it.
    """
    return await service.create_organization(data, current_user)


@router.get(
    "/organizations",
    response_model=OrganizationListResponse,
    summary="List all organizations",
)
async def list_organizations(
    _: User = Depends(require_super_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationListResponse:
    return await service.list_organizations()


@router.get(
    "/organizations/{org_id}",
    response_model=OrganizationResponse,
    summary="Get an organization",
)
async def get_organization(
    org_id: UUID,
    _: User = Depends(require_super_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    return await service.get_organization(org_id)


@router.patch(
    "/organizations/{org_id}",
    response_model=OrganizationResponse,
    summary="Update an organization",
)
async def update_organization(
    org_id: UUID,
    data: OrganizationAdminUpdateRequest,
    _: User = Depends(require_super_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    return await service.admin_update_organization(org_id, data)


@router.delete(
    "/organizations/{org_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an organization and everything in it",
)
async def delete_organization(
    org_id: UUID,
    _: User = Depends(require_super_admin),
    service: OrganizationService = Depends(get_org_service),
) -> None:
    await service.delete_organization(org_id)


@router.get(
    "/organizations/{org_id}/stats",
    response_model=OrganizationStatsResponse,
    summary="Member, membership and revenue totals",
)
async def get_organization_stats(
    org_id: UUID,
    _: User = Depends(require_super_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationStatsResponse:
    await service.get_org_model(org_id)
    return await service.get_stats(org_id)
