"""
Email campaign schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CampaignCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    subject: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    mailing_list_id: UUID | None = None


class CampaignUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    subject: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    mailing_list_id: UUID | None = None


class CampaignScheduleRequest(BaseModel):
    scheduled_at: datetime


class CampaignResponse(BaseModel):
    id: UUID
    org_id: UUID
    mailing_list_id: UUID | None
    title: str
    subject: str
    content: str
    status: str
    scheduled_at: datetime | None
    sent_at: datetime | None
    recipient_count: int
    delivered_count: int
    opened_count: int
    clicked_count: int
    bounced_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CampaignListResponse(BaseModel):
    campaigns: list[CampaignResponse]
    total: int
