"""
Profile schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ProfileResponse(BaseModel):
    id: UUID
    org_id: UUID
    user_id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None
    address: dict[str, Any] | None
    role: str
    status: str
    is_active: bool
    rejection_note: str | None
    status_updated_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfileListResponse(BaseModel):
    profiles: list[ProfileResponse]
    total: int


class ProfileSelfUpdateRequest(BaseModel):
    """Contact details a member may change on their own profile."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    address: dict[str, Any] | None = None


class ProfileAdminUpdateRequest(ProfileSelfUpdateRequest):
    role: str | None = Field(default=None, pattern="^(admin|member)$")


class ProfileApproveRequest(BaseModel):
    role: str = Field(default="member", pattern="^(admin|member)$")


class ProfileRejectRequest(BaseModel):
    rejection_note: str | None = Field(default=None, max_length=2000)
