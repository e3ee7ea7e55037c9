"""
Email campaign endpoints.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_current_user, get_redis, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.models.user import User
from memberhub.schemas.campaign import (
    CampaignCreateRequest,
    CampaignListResponse,
    CampaignResponse,
    CampaignScheduleRequest,
    CampaignUpdateRequest,
)
from memberhub.services.campaign_service import CampaignService

router = APIRouter()


def get_campaign_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> CampaignService:
    return CampaignService(db=db, redis=redis)


@router.get(
    "/organizations/{slug}/campaigns",
    response_model=CampaignListResponse,
    summary="List campaigns",
)
async def list_campaigns(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignListResponse:
    org, _ = org_and_profile
    return await service.list_campaigns(org.id)


@router.post(
    "/organizations/{slug}/campaigns",
    response_model=CampaignResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft campaign",
)
async def create_campaign(
    data: CampaignCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    current_user: User = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    org, _ = org_and_profile
    return await service.create_campaign(org.id, data, current_user)


@router.get(
    "/organizations/{slug}/campaigns/{campaign_id}",
    response_model=CampaignResponse,
    summary="Get a campaign",
)
async def get_campaign(
    campaign_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    org, _ = org_and_profile
    return await service.get_campaign(org.id, campaign_id)


@router.patch(
    "/organizations/{slug}/campaigns/{campaign_id}",
    response_model=CampaignResponse,
    summary="Edit a draft or scheduled campaign",
)
async def update_campaign(
    campaign_id: UUID,
    data: CampaignUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    org, _ = org_and_profile
    return await service.update_campaign(org.id, campaign_id, data)


@router.delete(
    "/organizations/{slug}/campaigns/{campaign_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a draft or scheduled campaign",
)
async def delete_campaign(
    campaign_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_campaign(org.id, campaign_id)


@router.post(
    "/organizations/{slug}/campaigns/{campaign_id}/schedule",
    response_model=CampaignResponse,
    summary="Schedule a campaign",
)
async def schedule_campaign(
    campaign_id: UUID,
    data: CampaignScheduleRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    org, _ = org_and_profile
    return await service.schedule(org.id, campaign_id, data)


@router.post(
    "/organizations/{slug}/campaigns/{campaign_id}/cancel",
    response_model=CampaignResponse,
    summary="Cancel a campaign",
)
async def cancel_campaign(
    campaign_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    org, _ = org_and_profile
    return await service.cancel(org.id, campaign_id)


@router.post(
    "/organizations/{slug}/campaigns/{campaign_id}/send",
    response_model=CampaignResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a campaign now",
)
async def send_campaign(
    campaign_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    """Delivery runs in the background; the campaign is ``sending`` until it finishes."""
    org, _ = org_and_profile
    return await service.send(org.id, campaign_id)
