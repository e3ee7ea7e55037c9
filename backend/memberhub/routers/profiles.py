"""
Profile endpoints.

Members read and edit their own profile; admins review, approve and
manage everyone's.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_org_profile, get_redis, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.profile import (
    ProfileAdminUpdateRequest,
    ProfileApproveRequest,
    ProfileListResponse,
    ProfileRejectRequest,
    ProfileResponse,
    ProfileSelfUpdateRequest,
)
from memberhub.services.export_service import ExportService
from memberhub.services.profile_service import ProfileService

router = APIRouter()


def get_profile_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> ProfileService:
    return ProfileService(db=db, redis=redis)


def get_export_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> ExportService:
    return ExportService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/me",
    response_model=ProfileResponse,
    summary="Get my profile in this organization",
)
async def get_my_profile(
    org_and_profile: tuple[Organization, Profile] = Depends(get_org_profile),
) -> ProfileResponse:
    """Available while the profile is still pending approval."""
    _, profile = org_and_profile
    return ProfileResponse.model_validate(profile)


@router.patch(
    "/organizations/{slug}/me",
    response_model=ProfileResponse,
    summary="Update my contact details",
)
async def update_my_profile(
    data: ProfileSelfUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(get_org_profile),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    _, profile = org_and_profile
    return await service.update_own_profile(profile, data)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/profiles",
    response_model=ProfileListResponse,
    summary="List profiles",
)
async def list_profiles(
    status_filter: str | None = Query(
        default=None, alias="status", pattern="^(pending|active|rejected)$"
    ),
    search: str | None = Query(default=None, max_length=100),
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileListResponse:
    org, _ = org_and_profile
    return await service.list_profiles(org.id, status_filter, search)


@router.get(
    "/organizations/{slug}/profiles/export",
    summary="Export profiles as CSV",
    response_class=Response,
)
async def export_profiles(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ExportService = Depends(get_export_service),
) -> Response:
    org, _ = org_and_profile
    content = await service.members_csv(org.id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{org.slug}-members.csv"'},
    )


@router.get(
    "/organizations/{slug}/profiles/{profile_id}",
    response_model=ProfileResponse,
    summary="Get a profile",
)
async def get_profile(
    profile_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    org, _ = org_and_profile
    return await service.get_profile(org.id, profile_id)


@router.patch(
    "/organizations/{slug}/profiles/{profile_id}",
    response_model=ProfileResponse,
    summary="Update a profile's details or role",
)
async def update_profile(
    profile_id: UUID,
    data: ProfileAdminUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    org, acting = org_and_profile
    return await service.update_profile(org.id, profile_id, data, acting)


@router.post(
    "/organizations/{slug}/profiles/{profile_id}/approve",
    response_model=ProfileResponse,
    summary="Approve a pending profile",
)
async def approve_profile(
    profile_id: UUID,
    data: ProfileApproveRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    org, acting = org_and_profile
    return await service.approve(org.id, profile_id, data, acting)


@router.post(
    "/organizations/{slug}/profiles/{profile_id}/reject",
    response_model=ProfileResponse,
    summary="Reject a profile",
)
async def reject_profile(
    profile_id: UUID,
    data: ProfileRejectRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    org, acting = org_and_profile
    return await service.reject(org.id, profile_id, data, acting)


@router.post(
    "/organizations/{slug}/profiles/{profile_id}/toggle-active",
    response_model=ProfileResponse,
    summary="Enable or disable a profile",
)
async def toggle_profile(
    profile_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    org, acting = org_and_profile
    return await service.toggle_active(org.id, profile_id, acting)


@router.delete(
    "/organizations/{slug}/profiles/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a profile",
)
async def delete_profile(
    profile_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> None:
    org, acting = org_and_profile
    await service.delete_profile(org.id, profile_id, acting)
