"""
Event and registration schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from memberhub.models.base import ensure_aware

EVENT_TYPE_PATTERN = "^(meeting|conference|workshop|social|training|other)$"


class EventCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    event_type: str = Field(default="other", pattern=EVENT_TYPE_PATTERN)
    location: str | None = Field(default=None, max_length=255)
    start_datetime: datetime
    end_datetime: datetime | None = None
    is_public: bool = False
    is_published: bool = False
    max_attendees: int | None = Field(default=None, ge=1)
    registration_deadline: datetime | None = None
    allow_waitlist: bool = False
    require_approval: bool = False

    @model_validator(mode="after")
    def end_after_start(self) -> EventCreateRequest:
        # Naive values are read as UTC, the same as when they are stored
        if self.end_datetime is not None and ensure_aware(self.end_datetime) < ensure_aware(
            self.start_datetime
        ):
            raise ValueError("end_datetime must be after start_datetime")
        return self


class EventUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    event_type: str | None = Field(default=None, pattern=EVENT_TYPE_PATTERN)
    location: str | None = Field(default=None, max_length=255)
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    is_public: bool | None = None
    is_published: bool | None = None
    max_attendees: int | None = Field(default=None, ge=1)
    registration_deadline: datetime | None = None
    allow_waitlist: bool | None = None
    require_approval: bool | None = None


class EventResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    description: str | None
    event_type: str
    location: str | None
    start_datetime: datetime
    end_datetime: datetime | None
    is_public: bool
    is_published: bool
    max_attendees: int | None
    current_attendees: int
    registration_deadline: datetime | None
    allow_waitlist: bool
    require_approval: bool
    created_at: datetime
    my_registration_status: str | None = None

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int


# ---------------------------------------------------------------------------
# Registrations
# ---------------------------------------------------------------------------

class RegistrationRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class BulkCheckInRequest(BaseModel):
    registration_ids: list[UUID] = Field(min_length=1)


class RegistrationResponse(BaseModel):
    id: UUID
    event_id: UUID
    profile_id: UUID
    status: str
    registered_at: datetime
    cancelled_at: datetime | None
    checked_in_at: datetime | None
    notes: str | None
    name: str | None = None
    email: str | None = None

    model_config = {"from_attributes": True}


class RegistrationListResponse(BaseModel):
    registrations: list[RegistrationResponse]
    total: int


class BulkCheckInResponse(BaseModel):
    checked_in: int
    skipped: int
