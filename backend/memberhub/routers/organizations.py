"""
Organization endpoints for org admins and members.

Settings, stats, analytics and invitations.
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
    get_public_org,
    get_redis,
    require_admin,
)
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.models.user import User
from memberhub.schemas.organization import (
    AnalyticsResponse,
    InvitationResponse,
    InvitationsListResponse,
    InviteRequest,
    OrganizationResponse,
    OrganizationSettingsUpdate,
    OrganizationStatsResponse,
    PublicOrganizationResponse,
)
from memberhub.services.analytics_service import AnalyticsService
from memberhub.services.organization_service import OrganizationService

router = APIRouter()


def get_org_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OrganizationService:
    return OrganizationService(db=db, redis=redis)


def get_analytics_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> AnalyticsService:
    return AnalyticsService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------

@router.get(
    "/{slug}/public",
    response_model=PublicOrganizationResponse,
    summary="Public branding for an organization",
)
async def get_public_organization(
    org: Organization = Depends(get_public_org),
) -> PublicOrganizationResponse:
    return PublicOrganizationResponse.model_validate(org)


@router.get(
    "/{slug}",
    response_model=OrganizationResponse,
    summary="Get organization details",
)
async def get_organization(
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
) -> OrganizationResponse:
    org, _ = org_and_profile
    return OrganizationResponse.model_validate(org)


@router.patch(
    "/{slug}/settings",
    response_model=OrganizationResponse,
    summary="Update organization settings",
)
async def update_settings(
    data: OrganizationSettingsUpdate,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    """
    Update branding, contact details, membership year and renewal options.

    Only the fields present in the body are changed.
    """
    org, _ = org_and_profile
    return await service.update_settings(org, data)


@router.get(
    "/{slug}/stats",
    response_model=OrganizationStatsResponse,
    summary="Member, membership and revenue totals",
)
async def get_stats(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationStatsResponse:
    org, _ = org_and_profile
    return await service.get_stats(org.id)


@router.get(
    "/{slug}/analytics",
    response_model=AnalyticsResponse,
    summary="Dashboard analytics",
)
async def get_analytics(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: AnalyticsService = Depends(get_analytics_service),
) -> AnalyticsResponse:
    org, _ = org_and_profile
    return await service.get_analytics(org)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.post(
    "/{slug}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone to the organization",
)
async def invite_member(
    data: InviteRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_org_service),
) -> InvitationResponse:
    """
    Send an email invitation.

    - Invitation expires in 48 hours
    - Accepting it creates an active profile with the invited role
    """
    org, _ = org_and_profile
    return await service.invite_member(org, data, current_user)


@router.get(
    "/{slug}/invitations",
    response_model=InvitationsListResponse,
    summary="List pending invitations",
)
async def list_invitations(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: OrganizationService = Depends(get_org_service),
) -> InvitationsListResponse:
    org, _ = org_and_profile
    return await service.list_invitations(org.id)


@router.delete(
    "/{slug}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a pending invitation",
)
async def revoke_invitation(
    invitation_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: OrganizationService = Depends(get_org_service),
) -> None:
    org, _ = org_and_profile
    await service.revoke_invitation(org.id, invitation_id)
