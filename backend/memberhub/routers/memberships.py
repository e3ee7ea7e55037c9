"""
Membership type and membership endpoints.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import (
    get_active_profile,
    get_org_profile,
    get_redis,
    require_admin,
)
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole
from memberhub.schemas.membership import (
    MembershipActivateRequest,
    MembershipCreateRequest,
    MembershipListResponse,
    MembershipResponse,
    MembershipTypeCreateRequest,
    MembershipTypeListResponse,
    MembershipTypeReorderRequest,
    MembershipTypeResponse,
    MembershipTypeUpdateRequest,
    MembershipUpdateRequest,
)
from memberhub.services.membership_service import MembershipService

router = APIRouter()

STATUS_PATTERN = "^(pending|active|expired|cancelled)$"


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> MembershipService:
    return MembershipService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Membership types
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/membership-types",
    response_model=MembershipTypeListResponse,
    summary="List membership types",
)
async def list_membership_types(
    include_inactive: bool = Query(default=False),
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipTypeListResponse:
    """Inactive types are only listed for admins."""
    org, profile = org_and_profile
    return await service.list_types(
        org.id, include_inactive=include_inactive and profile.role == ProfileRole.admin
    )


@router.post(
    "/organizations/{slug}/membership-types",
    response_model=MembershipTypeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a membership type",
)
async def create_membership_type(
    data: MembershipTypeCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipTypeResponse:
    org, _ = org_and_profile
    return await service.create_type(org.id, data)


@router.post(
    "/organizations/{slug}/membership-types/reorder",
    response_model=MembershipTypeListResponse,
    summary="Set the display order of membership types",
)
async def reorder_membership_types(
    data: MembershipTypeReorderRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipTypeListResponse:
    org, _ = org_and_profile
    return await service.reorder_types(org.id, data)


@router.patch(
    "/organizations/{slug}/membership-types/{type_id}",
    response_model=MembershipTypeResponse,
    summary="Update a membership type",
)
async def update_membership_type(
    type_id: UUID,
    data: MembershipTypeUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipTypeResponse:
    org, _ = org_and_profile
    return await service.update_type(org.id, type_id, data)


@router.delete(
    "/organizations/{slug}/membership-types/{type_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Retire a membership type",
)
async def delete_membership_type(
    type_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> None:
    """Soft delete: the type is deactivated so existing memberships keep it."""
    org, _ = org_and_profile
    await service.deactivate_type(org.id, type_id)


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/me/memberships",
    response_model=MembershipListResponse,
    summary="My memberships",
)
async def list_my_memberships(
    org_and_profile: tuple[Organization, Profile] = Depends(get_org_profile),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipListResponse:
    org, profile = org_and_profile
    return await service.list_memberships(org.id, profile_id=profile.id)


@router.get(
    "/organizations/{slug}/memberships",
    response_model=MembershipListResponse,
    summary="List memberships",
)
async def list_memberships(
    year: int | None = Query(default=None, ge=1900, le=2200),
    status_filter: str | None = Query(default=None, alias="status", pattern=STATUS_PATTERN),
    profile_id: UUID | None = Query(default=None),
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipListResponse:
    org, _ = org_and_profile
    return await service.list_memberships(org.id, year, status_filter, profile_id)


@router.post(
    "/organizations/{slug}/memberships",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a membership",
)
async def create_membership(
    data: MembershipCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    org, _ = org_and_profile
    return await service.create_membership(org, data)


@router.patch(
    "/organizations/{slug}/memberships/{membership_id}",
    response_model=MembershipResponse,
    summary="Update a membership",
)
async def update_membership(
    membership_id: UUID,
    data: MembershipUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    org, _ = org_and_profile
    return await service.update_membership(org.id, membership_id, data)


@router.post(
    "/organizations/{slug}/memberships/{membership_id}/activate",
    response_model=MembershipResponse,
    summary="Activate a membership for its membership year",
)
async def activate_membership(
    membership_id: UUID,
    data: MembershipActivateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    """
    Set status active and the period dates.

    The period starts on the first day of the organization's membership
    year and ends the day before the same date a year later.
    """
    org, _ = org_and_profile
    return await service.activate_membership(org, membership_id, data)
