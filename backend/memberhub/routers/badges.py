"""
Badge endpoints.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import (
    get_active_profile,
    get_current_user,
    get_redis,
    require_admin,
)
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole
from memberhub.models.user import User
from memberhub.schemas.badge import (
    BadgeAwardRequest,
    BadgeCreateRequest,
    BadgeListResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    MemberBadgeListResponse,
    MemberBadgeResponse,
)
from memberhub.services.badge_service import BadgeService

router = APIRouter()


def get_badge_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> BadgeService:
    return BadgeService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/badges",
    response_model=BadgeListResponse,
    summary="List badges",
)
async def list_badges(
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: BadgeService = Depends(get_badge_service),
) -> BadgeListResponse:
    """Admins also see inactive badges."""
    org, profile = org_and_profile
    return await service.list_badges(org.id, include_inactive=profile.role == ProfileRole.admin)


@router.post(
    "/organizations/{slug}/badges",
    response_model=BadgeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a badge",
)
async def create_badge(
    data: BadgeCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> BadgeResponse:
    org, _ = org_and_profile
    return await service.create_badge(org.id, data)


@router.patch(
    "/organizations/{slug}/badges/{badge_id}",
    response_model=BadgeResponse,
    summary="Update a badge",
)
async def update_badge(
    badge_id: UUID,
    data: BadgeUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> BadgeResponse:
    org, _ = org_and_profile
    return await service.update_badge(org.id, badge_id, data)


@router.post(
    "/organizations/{slug}/badges/{badge_id}/toggle",
    response_model=BadgeResponse,
    summary="Enable or disable a badge",
)
async def toggle_badge(
    badge_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> BadgeResponse:
    org, _ = org_and_profile
    return await service.toggle_badge(org.id, badge_id)


@router.delete(
    "/organizations/{slug}/badges/{badge_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a badge and its awards",
)
async def delete_badge(
    badge_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_badge(org.id, badge_id)


# ---------------------------------------------------------------------------
# Awards
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/badges/{badge_id}/awards",
    response_model=MemberBadgeListResponse,
    summary="Members holding a badge",
)
async def list_badge_holders(
    badge_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> MemberBadgeListResponse:
    org, _ = org_and_profile
    return await service.list_holders(org.id, badge_id)


@router.post(
    "/organizations/{slug}/badges/{badge_id}/awards",
    response_model=MemberBadgeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Award a badge to a member",
)
async def award_badge(
    badge_id: UUID,
    data: BadgeAwardRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    current_user: User = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
) -> MemberBadgeResponse:
    org, _ = org_and_profile
    return await service.award(org.id, badge_id, data, current_user)


@router.delete(
    "/organizations/{slug}/badges/{badge_id}/awards/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a badge from a member",
)
async def revoke_badge(
    badge_id: UUID,
    profile_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> None:
    org, _ = org_and_profile
    await service.revoke(org.id, badge_id, profile_id)


@router.get(
    "/organizations/{slug}/me/badges",
    response_model=MemberBadgeListResponse,
    summary="My badges",
)
async def list_my_badges(
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: BadgeService = Depends(get_badge_service),
) -> MemberBadgeListResponse:
    org, profile = org_and_profile
    return await service.list_profile_badges(org.id, profile.id)


@router.get(
    "/organizations/{slug}/profiles/{profile_id}/badges",
    response_model=MemberBadgeListResponse,
    summary="A member's badges",
)
async def list_profile_badges(
    profile_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: BadgeService = Depends(get_badge_service),
) -> MemberBadgeListResponse:
    org, _ = org_and_profile
    return await service.list_profile_badges(org.id, profile_id)
