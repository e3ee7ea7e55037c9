"""
Automated reminder schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

REMINDER_TYPE_PATTERN = (
    "^(membership_renewal|membership_expiry|event_upcoming|event_followup|custom)$"
)


class ReminderCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    reminder_type: str = Field(pattern=REMINDER_TYPE_PATTERN)
    trigger_days: int = Field(default=0, ge=-365, le=365)
    email_subject: str = Field(min_length=1, max_length=255)
    email_body: str = Field(min_length=1)
    is_active: bool = True
    target_audience: dict[str, Any] = Field(default_factory=dict)


class ReminderUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    trigger_days: int | None = Field(default=None, ge=-365, le=365)
    email_subject: str | None = Field(default=None, min_length=1, max_length=255)
    email_body: str | None = Field(default=None, min_length=1)
    is_active: bool | None = None
    target_audience: dict[str, Any] | None = None


class ReminderResponse(BaseModel):
    id: UUID
    org_id: UUID
    name: str
    reminder_type: str
    trigger_days: int
    email_subject: str
    email_body: str
    is_active: bool
    target_audience: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}


class ReminderListResponse(BaseModel):
    reminders: list[ReminderResponse]
    total: int


class ReminderLogResponse(BaseModel):
    id: UUID
    reminder_id: UUID
    profile_id: UUID | None
    reference_id: UUID | None
    recipient_email: str
    status: str
    error_message: str | None
    sent_at: datetime

    model_config = {"from_attributes": True}


class ReminderLogListResponse(BaseModel):
    logs: list[ReminderLogResponse]
    total: int


class ReminderStatsResponse(BaseModel):
    active_reminders: int
    sent_last_30_days: int
    failed_last_30_days: int
    success_rate: float


class ReminderRunResponse(BaseModel):
    queued: bool
    reminder_id: UUID
