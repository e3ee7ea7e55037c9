"""
Badge schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

BADGE_TYPE_PATTERN = "^(manual|automatic|milestone)$"


class BadgeCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    badge_type: str = Field(default="manual", pattern=BADGE_TYPE_PATTERN)
    criteria: dict[str, Any] | None = None
    is_active: bool = True
    display_order: int = 0


class BadgeUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    badge_type: str | None = Field(default=None, pattern=BADGE_TYPE_PATTERN)
    criteria: dict[str, Any] | None = None
    display_order: int | None = None


class BadgeResponse(BaseModel):
    id: UUID
    org_id: UUID
    name: str
    description: str | None
    icon: str | None
    color: str | None
    badge_type: str
    criteria: dict[str, Any] | None
    is_active: bool
    display_order: int
    created_at: datetime

    model_config = {"from_attributes": True}


class BadgeListResponse(BaseModel):
    badges: list[BadgeResponse]
    total: int


class BadgeAwardRequest(BaseModel):
    profile_id: UUID
    notes: str | None = Field(default=None, max_length=2000)
    meta: dict[str, Any] | None = None


class MemberBadgeResponse(BaseModel):
    id: UUID
    badge_id: UUID
    profile_id: UUID
    awarded_by: UUID | None
    awarded_at: datetime
    notes: str | None
    meta: dict[str, Any] | None
    badge_name: str | None = None
    badge_icon: str | None = None
    badge_color: str | None = None
    member_name: str | None = None
    member_email: str | None = None


class MemberBadgeListResponse(BaseModel):
    awards: list[MemberBadgeResponse]
    total: int
