"""
Invitation lookup and acceptance.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_current_user, get_redis
from memberhub.models.user import User
from memberhub.schemas.organization import InvitationAcceptRequest, InvitationInfoResponse
from memberhub.schemas.profile import ProfileResponse
from memberhub.services.organization_service import OrganizationService

router = APIRouter()


def get_org_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> OrganizationService:
    return OrganizationService(db=db, redis=redis)


@router.get(
    "/{token}",
    response_model=InvitationInfoResponse,
    summary="Look up an invitation before accepting it",
)
async def get_invitation(
    token: str,
    service: OrganizationService = Depends(get_org_service),
) -> InvitationInfoResponse:
    return await service.get_invitation_info(token)


@router.post(
    "/{token}/accept",
    response_model=ProfileResponse,
    summary="Accept an invitation",
)
async def accept_invitation(
    token: str,
    data: InvitationAcceptRequest,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_org_service),
) -> ProfileResponse:
    """The signed-in user's email must match the invited address."""
    return await service.accept_invitation(token, current_user, data)
