"""
Automated reminder endpoints.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_redis, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.reminder import (
    ReminderCreateRequest,
    ReminderListResponse,
    ReminderLogListResponse,
    ReminderResponse,
    ReminderRunResponse,
    ReminderStatsResponse,
    ReminderUpdateRequest,
)
from memberhub.services.reminder_service import ReminderService

router = APIRouter()


def get_reminder_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> ReminderService:
    return ReminderService(db=db, redis=redis)


@router.get(
    "/organizations/{slug}/reminders",
    response_model=ReminderListResponse,
    summary="List automated reminders",
)
async def list_reminders(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderListResponse:
    org, _ = org_and_profile
    return await service.list_reminders(org.id)


@router.post(
    "/organizations/{slug}/reminders",
    response_model=ReminderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an automated reminder",
)
async def create_reminder(
    data: ReminderCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderResponse:
    org, _ = org_and_profile
    return await service.create_reminder(org.id, data)


# Declared before /reminders/{reminder_id} so the literal paths win.

@router.get(
    "/organizations/{slug}/reminders/stats",
    response_model=ReminderStatsResponse,
    summary="Reminder delivery stats for the last 30 days",
)
async def reminder_stats(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderStatsResponse:
    org, _ = org_and_profile
    return await service.get_stats(org.id)


@router.get(
    "/organizations/{slug}/reminders/logs",
    response_model=ReminderLogListResponse,
    summary="Recent reminder sends",
)
async def reminder_logs(
    reminder_id: UUID | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderLogListResponse:
    org, _ = org_and_profile
    return await service.list_logs(org.id, reminder_id=reminder_id, limit=limit)


@router.get(
    "/organizations/{slug}/reminders/{reminder_id}",
    response_model=ReminderResponse,
    summary="Get an automated reminder",
)
async def get_reminder(
    reminder_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderResponse:
    org, _ = org_and_profile
    return await service.get_reminder(org.id, reminder_id)


@router.patch(
    "/organizations/{slug}/reminders/{reminder_id}",
    response_model=ReminderResponse,
    summary="Update an automated reminder",
)
async def update_reminder(
    reminder_id: UUID,
    data: ReminderUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderResponse:
    org, _ = org_and_profile
    return await service.update_reminder(org.id, reminder_id, data)


@router.post(
    "/organizations/{slug}/reminders/{reminder_id}/toggle",
    response_model=ReminderResponse,
    summary="Turn a reminder on or off",
)
async def toggle_reminder(
    reminder_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderResponse:
    org, _ = org_and_profile
    return await service.toggle_reminder(org.id, reminder_id)


@router.delete(
    "/organizations/{slug}/reminders/{reminder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an automated reminder",
)
async def delete_reminder(
    reminder_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_reminder(org.id, reminder_id)


@router.post(
    "/organizations/{slug}/reminders/{reminder_id}/run",
    response_model=ReminderRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Run a reminder now",
)
async def run_reminder(
    reminder_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderRunResponse:
    org, _ = org_and_profile
    return await service.run_now(org.id, reminder_id)
