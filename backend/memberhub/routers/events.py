"""
Event and registration endpoints.

Members browse published events and manage their own registrations;
admins run the events and their attendance.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, Response, status
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
from memberhub.models.profile import Profile, ProfileRole
from memberhub.models.user import User
from memberhub.schemas.event import (
    BulkCheckInRequest,
    BulkCheckInResponse,
    EventCreateRequest,
    EventListResponse,
    EventResponse,
    EventUpdateRequest,
    RegistrationListResponse,
    RegistrationRequest,
    RegistrationResponse,
)
from memberhub.services.event_service import EventService
from memberhub.services.export_service import ExportService

router = APIRouter()


def get_event_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> EventService:
    return EventService(db=db, redis=redis)


def get_export_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> ExportService:
    return ExportService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/public-events",
    response_model=EventListResponse,
    summary="Upcoming public events",
)
async def list_public_events(
    org: Organization = Depends(get_public_org),
    service: EventService = Depends(get_event_service),
) -> EventListResponse:
    return await service.list_public_events(org.id)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/events",
    response_model=EventListResponse,
    summary="List events",
)
async def list_events(
    upcoming: bool = Query(default=True),
    include_unpublished: bool = Query(default=False),
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    Published events, upcoming only by default.

    Admins may include unpublished drafts. Each event carries the
    caller's own registration status.
    """
    org, profile = org_and_profile
    return await service.list_events(
        org.id,
        upcoming=upcoming,
        include_unpublished=include_unpublished and profile.role == ProfileRole.admin,
        profile_id=profile.id,
    )


@router.post(
    "/organizations/{slug}/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
)
async def create_event(
    data: EventCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    org, _ = org_and_profile
    return await service.create_event(org.id, data, current_user)


@router.get(
    "/organizations/{slug}/events/{event_id}",
    response_model=EventResponse,
    summary="Get an event",
)
async def get_event(
    event_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    org, profile = org_and_profile
    return await service.get_event(
        org.id, event_id, published_only=profile.role != ProfileRole.admin
    )


@router.patch(
    "/organizations/{slug}/events/{event_id}",
    response_model=EventResponse,
    summary="Update an event",
)
async def update_event(
    event_id: UUID,
    data: EventUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    org, _ = org_and_profile
    return await service.update_event(org.id, event_id, data)


@router.delete(
    "/organizations/{slug}/events/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an event",
)
async def delete_event(
    event_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_event(org.id, event_id)


# ---------------------------------------------------------------------------
# Own registration
# ---------------------------------------------------------------------------

@router.post(
    "/organizations/{slug}/events/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register for an event",
)
async def register(
    event_id: UUID,
    data: RegistrationRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    """
    Register the caller.

    - Rejected after the registration deadline
    - Events needing approval give ``pending_approval``
    - Full events waitlist when allowed, otherwise reject
    """
    org, profile = org_and_profile
    return await service.register(org.id, event_id, profile, data)


@router.post(
    "/organizations/{slug}/events/{event_id}/cancel",
    response_model=RegistrationResponse,
    summary="Cancel my registration",
)
async def cancel_registration(
    event_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    org, profile = org_and_profile
    return await service.cancel(org.id, event_id, profile)


# ---------------------------------------------------------------------------
# Attendance (admin)
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/events/{event_id}/registrations",
    response_model=RegistrationListResponse,
    summary="List registrations",
)
async def list_registrations(
    event_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> RegistrationListResponse:
    org, _ = org_and_profile
    return await service.list_registrations(org.id, event_id)


@router.get(
    "/organizations/{slug}/events/{event_id}/registrations/export",
    summary="Export registrations as CSV",
    response_class=Response,
)
async def export_registrations(
    event_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: ExportService = Depends(get_export_service),
) -> Response:
    org, _ = org_and_profile
    content = await service.registrations_csv(org.id, event_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="event-{event_id}-registrations.csv"'
        },
    )


@router.post(
    "/organizations/{slug}/events/{event_id}/registrations/{registration_id}/approve",
    response_model=RegistrationResponse,
    summary="Approve a pending registration",
)
async def approve_registration(
    event_id: UUID,
    registration_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    org, _ = org_and_profile
    return await service.approve_registration(org.id, event_id, registration_id)


@router.post(
    "/organizations/{slug}/events/{event_id}/registrations/{registration_id}/check-in",
    response_model=RegistrationResponse,
    summary="Check in an attendee",
)
async def check_in(
    event_id: UUID,
    registration_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    org, _ = org_and_profile
    return await service.check_in(org.id, event_id, registration_id)


@router.post(
    "/organizations/{slug}/events/{event_id}/check-in",
    response_model=BulkCheckInResponse,
    summary="Check in several attendees",
)
async def bulk_check_in(
    event_id: UUID,
    data: BulkCheckInRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> BulkCheckInResponse:
    org, _ = org_and_profile
    return await service.bulk_check_in(org.id, event_id, data)
