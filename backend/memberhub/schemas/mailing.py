"""
Mailing list, subscriber and subscription schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"


# ---------------------------------------------------------------------------
# Mailing lists
# ---------------------------------------------------------------------------

class MailingListCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: str | None = None
    is_active: bool = True


class MailingListUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    is_active: bool | None = None


class MailingListResponse(BaseModel):
    id: UUID
    org_id: UUID
    name: str
    slug: str
    description: str | None
    is_active: bool
    subscriber_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class MailingListListResponse(BaseModel):
    mailing_lists: list[MailingListResponse]
    total: int


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------

class SubscriberResponse(BaseModel):
    id: UUID
    org_id: UUID
    email: str
    first_name: str | None
    last_name: str | None
    status: str
    subscribed_at: datetime
    unsubscribed_at: datetime | None
    subscription_source: str | None

    model_config = {"from_attributes": True}


class SubscriberListResponse(BaseModel):
    subscribers: list[SubscriberResponse]
    total: int


class ListSubscriberAddRequest(BaseModel):
    """Admin adds an address to a list."""

    email: EmailStr
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class PublicSubscribeRequest(BaseModel):
    """Request body for the public subscribe form."""

    email: EmailStr
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    list_id: UUID | None = None


class UnsubscribeResponse(BaseModel):
    email: str
    status: str
    message: str


# ---------------------------------------------------------------------------
# Member subscriptions
# ---------------------------------------------------------------------------

class MySubscriptionResponse(BaseModel):
    list_id: UUID
    name: str
    description: str | None
    subscribed: bool


class MySubscriptionsResponse(BaseModel):
    subscriptions: list[MySubscriptionResponse]
