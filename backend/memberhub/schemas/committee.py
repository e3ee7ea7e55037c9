"""
Committee schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"
COMMITTEE_ROLE_PATTERN = "^(chair|vice_chair|secretary|treasurer|member)$"


class CommitteeCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: str | None = None
    mailing_list_id: UUID | None = None
    is_active: bool = True


class CommitteeUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: str | None = None
    mailing_list_id: UUID | None = None
    is_active: bool | None = None


class CommitteeMemberResponse(BaseModel):
    id: UUID
    committee_id: UUID
    profile_id: UUID
    role: str
    joined_at: datetime
    name: str
    email: str


class CommitteeResponse(BaseModel):
    id: UUID
    org_id: UUID
    name: str
    slug: str
    description: str | None
    mailing_list_id: UUID | None
    is_active: bool
    member_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CommitteeDetailResponse(CommitteeResponse):
    members: list[CommitteeMemberResponse] = Field(default_factory=list)


class CommitteeListResponse(BaseModel):
    committees: list[CommitteeResponse]
    total: int


class CommitteeMemberAddRequest(BaseModel):
    profile_id: UUID
    role: str = Field(default="member", pattern=COMMITTEE_ROLE_PATTERN)


class CommitteeMemberUpdateRequest(BaseModel):
    role: str = Field(pattern=COMMITTEE_ROLE_PATTERN)
