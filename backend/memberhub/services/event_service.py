"""
Event and registration business logic.

``current_attendees`` always equals the number of registered plus
checked-in registrations and is recomputed after every change.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import ensure_aware, utcnow
from memberhub.models.event import (
    ATTENDING_STATUSES,
    Event,
    EventRegistration,
    EventType,
    RegistrationStatus,
)
from memberhub.models.profile import Profile
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

logger = logging.getLogger(__name__)

DATETIME_FIELDS = ("start_datetime", "end_datetime", "registration_deadline")


def to_utc(value: datetime | None) -> datetime | None:
    """Store every timestamp in UTC; naive input is taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _registration_response(
    registration: EventRegistration, profile: Profile | None = None
) -> RegistrationResponse:
    response = RegistrationResponse.model_validate(registration)
    if profile is not None:
        response.name = profile.full_name or profile.email
        response.email = profile.email
    return response


class EventService:
    """Handles events and registrations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Events
    # -----------------------------------------------------------------------

    async def list_events(
        self,
        org_id: UUID,
        upcoming: bool = True,
        include_unpublished: bool = False,
        profile_id: UUID | None = None,
    ) -> EventListResponse:
        query = select(Event).where(Event.org_id == org_id)
        if not include_unpublished:
            query = query.where(Event.is_published.is_(True))
        if upcoming:
            query = query.where(Event.start_datetime >= utcnow())

        result = await self.db.execute(query.order_by(Event.start_datetime))
        events = [EventResponse.model_validate(e) for e in result.scalars().all()]

        if profile_id is not None and events:
            regs = await self.db.execute(
                select(EventRegistration.event_id, EventRegistration.status).where(
                    EventRegistration.profile_id == profile_id,
                    EventRegistration.event_id.in_([e.id for e in events]),
                )
            )
            mine = {event_id: reg_status for event_id, reg_status in regs.all()}
            for event in events:
                if event.id in mine:
                    event.my_registration_status = mine[event.id].value

        return EventListResponse(events=events, total=len(events))

    async def list_public_events(self, org_id: UUID) -> EventListResponse:
        result = await self.db.execute(
            select(Event)
            .where(
                Event.org_id == org_id,
                Event.is_published.is_(True),
                Event.is_public.is_(True),
                Event.start_datetime >= utcnow(),
            )
            .order_by(Event.start_datetime)
        )
        events = [EventResponse.model_validate(e) for e in result.scalars().all()]
        return EventListResponse(events=events, total=len(events))

    async def get_event_model(
        self, org_id: UUID, event_id: UUID, published_only: bool = False
    ) -> Event:
        query = select(Event).where(Event.id == event_id, Event.org_id == org_id)
        if published_only:
            query = query.where(Event.is_published.is_(True))
        event = (await self.db.execute(query)).scalar_one_or_none()
        if event is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "EVENT_NOT_FOUND", "message": "Event not found"},
            )
        return event

    async def get_event(
        self, org_id: UUID, event_id: UUID, published_only: bool = False
    ) -> EventResponse:
        return EventResponse.model_validate(
            await self.get_event_model(org_id, event_id, published_only)
        )

    async def create_event(
        self, org_id: UUID, data: EventCreateRequest, creator: User
    ) -> EventResponse:
        values = data.model_dump()
        values["event_type"] = EventType(data.event_type)
        for key in DATETIME_FIELDS:
            values[key] = to_utc(values[key])

        event = Event(org_id=org_id, created_by=creator.id, current_attendees=0, **values)
        self.db.add(event)
        await self.db.flush()
        await self.db.refresh(event)
        logger.info("Created event %s in org %s", event.id, org_id)
        return EventResponse.model_validate(event)

    async def update_event(
        self, org_id: UUID, event_id: UUID, data: EventUpdateRequest
    ) -> EventResponse:
        event = await self.get_event_model(org_id, event_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if key in DATETIME_FIELDS:
                if key == "start_datetime" and value is None:
                    continue
                value = to_utc(value)
            elif key == "event_type":
                if value is None:
                    continue
                value = EventType(value)
            elif value is None and key not in ("description", "location", "max_attendees"):
                continue
            setattr(event, key, value)

        if event.end_datetime is not None and ensure_aware(event.end_datetime) < ensure_aware(
            event.start_datetime
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_DATES", "message": "end_datetime must be after start_datetime"},
            )

        await self.db.flush()
        await self.db.refresh(event)
        return EventResponse.model_validate(event)

    async def delete_event(self, org_id: UUID, event_id: UUID) -> None:
        event = await self.get_event_model(org_id, event_id)
        await self.db.delete(event)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Member registration
    # -----------------------------------------------------------------------

    async def register(
        self, org_id: UUID, event_id: UUID, profile: Profile, data: RegistrationRequest
    ) -> RegistrationResponse:
        """
        Register a member.

        Past the deadline is rejected. Events needing approval give
        pending_approval. Full events waitlist when allowed and reject
        otherwise. A cancelled registration is reused.
        """
        event = await self.get_event_model(org_id, event_id, published_only=True)

        deadline = ensure_aware(event.registration_deadline)
        if deadline is not None and deadline < utcnow():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "REGISTRATION_CLOSED", "message": "Registration deadline has passed"},
            )

        result = await self.db.execute(
            select(EventRegistration).where(
                EventRegistration.event_id == event.id,
                EventRegistration.profile_id == profile.id,
            )
        )
        registration = result.scalar_one_or_none()
        if registration is not None and registration.status != RegistrationStatus.cancelled:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_REGISTERED", "message": "You are already registered for this event"},
            )

        if event.require_approval:
            new_status = RegistrationStatus.pending_approval
        elif event.max_attendees is not None and await self._attending(event.id) >= event.max_attendees:
            if not event.allow_waitlist:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail={"code": "EVENT_FULL", "message": "This event is full"},
                )
            new_status = RegistrationStatus.waitlist
        else:
            new_status = RegistrationStatus.registered

        now = utcnow()
        if registration is None:
            registration = EventRegistration(
                org_id=org_id,
                event_id=event.id,
                profile_id=profile.id,
            )
            self.db.add(registration)
        registration.status = new_status
        registration.registered_at = now
        registration.cancelled_at = None
        registration.checked_in_at = None
        registration.notes = data.notes

        await self.db.flush()
        await self._recount(event)
        await self.db.refresh(registration)
        logger.info("Profile %s registered for event %s as %s", profile.id, event.id, new_status.value)
        return _registration_response(registration, profile)

    async def cancel(self, org_id: UUID, event_id: UUID, profile: Profile) -> RegistrationResponse:
        event = await self.get_event_model(org_id, event_id)
        result = await self.db.execute(
            select(EventRegistration).where(
                EventRegistration.event_id == event.id,
                EventRegistration.profile_id == profile.id,
                EventRegistration.status != RegistrationStatus.cancelled,
            )
        )
        registration = result.scalar_one_or_none()
        if registration is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "REGISTRATION_NOT_FOUND", "message": "You are not registered for this event"},
            )

        registration.status = RegistrationStatus.cancelled
        registration.cancelled_at = utcnow()
        await self.db.flush()
        await self._recount(event)
        await self.db.refresh(registration)
        return _registration_response(registration, profile)

    # -----------------------------------------------------------------------
    # Admin registration management
    # -----------------------------------------------------------------------

    async def registration_rows(
        self, org_id: UUID, event_id: UUID
    ) -> list[tuple[EventRegistration, Profile]]:
        await self.get_event_model(org_id, event_id)
        result = await self.db.execute(
            select(EventRegistration, Profile)
            .join(Profile, EventRegistration.profile_id == Profile.id)
            .where(EventRegistration.event_id == event_id, EventRegistration.org_id == org_id)
            .order_by(EventRegistration.registered_at)
        )
        return [(registration, profile) for registration, profile in result.all()]

    async def list_registrations(self, org_id: UUID, event_id: UUID) -> RegistrationListResponse:
        rows = await self.registration_rows(org_id, event_id)
        registrations = [_registration_response(r, p) for r, p in rows]
        return RegistrationListResponse(registrations=registrations, total=len(registrations))

    async def approve_registration(
        self, org_id: UUID, event_id: UUID, registration_id: UUID
    ) -> RegistrationResponse:
        event = await self.get_event_model(org_id, event_id)
        registration, profile = await self._get_registration(event.id, registration_id)
        if registration.status not in (RegistrationStatus.pending_approval, RegistrationStatus.waitlist):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_STATUS", "message": "Only pending or waitlisted registrations can be approved"},
            )

        registration.status = RegistrationStatus.registered
        await self.db.flush()
        await self._recount(event)
        await self.db.refresh(registration)
        return _registration_response(registration, profile)

    async def check_in(
        self, org_id: UUID, event_id: UUID, registration_id: UUID
    ) -> RegistrationResponse:
        event = await self.get_event_model(org_id, event_id)
        registration, profile = await self._get_registration(event.id, registration_id)
        if registration.status != RegistrationStatus.registered:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_STATUS", "message": "Only registered attendees can be checked in"},
            )

        registration.status = RegistrationStatus.checked_in
        registration.checked_in_at = utcnow()
        await self.db.flush()
        await self._recount(event)
        await self.db.refresh(registration)
        return _registration_response(registration, profile)

    async def bulk_check_in(
        self, org_id: UUID, event_id: UUID, data: BulkCheckInRequest
    ) -> BulkCheckInResponse:
        """Check in every listed registration that is currently registered."""
        event = await self.get_event_model(org_id, event_id)
        result = await self.db.execute(
            select(EventRegistration).where(
                EventRegistration.event_id == event.id,
                EventRegistration.id.in_(data.registration_ids),
            )
        )
        now = utcnow()
        checked_in = 0
        for registration in result.scalars().all():
            if registration.status == RegistrationStatus.registered:
                registration.status = RegistrationStatus.checked_in
                registration.checked_in_at = now
                checked_in += 1

        await self.db.flush()
        await self._recount(event)
        return BulkCheckInResponse(
            checked_in=checked_in, skipped=len(data.registration_ids) - checked_in
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_registration(
        self, event_id: UUID, registration_id: UUID
    ) -> tuple[EventRegistration, Profile]:
        result = await self.db.execute(
            select(EventRegistration, Profile)
            .join(Profile, EventRegistration.profile_id == Profile.id)
            .where(
                EventRegistration.id == registration_id,
                EventRegistration.event_id == event_id,
            )
        )
        row = result.one_or_none()
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "REGISTRATION_NOT_FOUND", "message": "Registration not found"},
            )
        return row[0], row[1]

    async def _attending(self, event_id: UUID) -> int:
        count = await self.db.scalar(
            select(func.count(EventRegistration.id)).where(
                EventRegistration.event_id == event_id,
                EventRegistration.status.in_(ATTENDING_STATUSES),
            )
        )
        return count or 0

    async def _recount(self, event: Event) -> None:
        event.current_attendees = await self._attending(event.id)
        await self.db.flush()
