"""
Organization schemas.

Request/response models for organization settings, super admin
management, stats, analytics and invitations.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _check_slug(v: str | None) -> str | None:
    if v is None:
        return v
    if not SLUG_RE.match(v):
        raise ValueError(
            "Slug must be lowercase alphanumeric and hyphens only, "
            "and cannot start or end with a hyphen"
        )
    return v


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------

class OrganizationSettingsUpdate(BaseModel):
    """Fields an organization admin may change."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    logo_url: str | None = Field(default=None, max_length=500)
    primary_color: str | None = Field(default=None, pattern=COLOR_PATTERN)
    secondary_color: str | None = Field(default=None, pattern=COLOR_PATTERN)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    settings: dict[str, Any] | None = None
    membership_year_start_month: int | None = Field(default=None, ge=1, le=12)
    membership_year_end_month: int | None = Field(default=None, ge=1, le=12)
    renewal_enabled: bool | None = None
    renewal_form_schema_id: UUID | None = None


class OrganizationCreateRequest(BaseModel):
    """Request body for POST /admin/organizations."""

    name: str = Field(min_length=2, max_length=100)
    slug: str = Field(min_length=3, max_length=30)
    contact_email: EmailStr | None = None
    admin_email: EmailStr | None = Field(
        default=None, description="Invite this address as the first organization admin"
    )
    membership_year_start_month: int = Field(default=1, ge=1, le=12)

    @field_validator("slug")
    @classmethod
    def slug_must_be_valid(cls, v: str) -> str:
        return _check_slug(v)  # type: ignore[return-value]


class OrganizationAdminUpdateRequest(OrganizationSettingsUpdate):
    """Super admin update: settings plus slug and activation."""

    slug: str | None = Field(default=None, min_length=3, max_length=30)
    is_active: bool | None = None

    @field_validator("slug")
    @classmethod
    def slug_must_be_valid(cls, v: str | None) -> str | None:
        return _check_slug(v)


class OrganizationResponse(BaseModel):
    """Organization detail response."""

    id: UUID
    name: str
    slug: str
    domain: str | None
    logo_url: str | None
    primary_color: str
    secondary_color: str
    contact_email: str | None
    contact_phone: str | None
    address: str | None
    settings: dict[str, Any]
    membership_year_start_month: int
    membership_year_end_month: int
    renewal_enabled: bool
    renewal_form_schema_id: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PublicOrganizationResponse(BaseModel):
    """Branding shown before login."""

    id: UUID
    name: str
    slug: str
    logo_url: str | None
    primary_color: str
    secondary_color: str
    contact_email: str | None
    renewal_enabled: bool

    model_config = {"from_attributes": True}


class OrganizationListResponse(BaseModel):
    organizations: list[OrganizationResponse]
    total: int


class OrganizationStatsResponse(BaseModel):
    member_count: int
    active_memberships: int
    total_revenue: Decimal


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

class MonthlyCount(BaseModel):
    month: str = Field(description="YYYY-MM")
    count: int


class AnalyticsResponse(BaseModel):
    total_members: int
    pending_members: int
    active_memberships: int
    membership_year: int
    upcoming_events: int
    registrations_last_30_days: int
    total_revenue: Decimal
    member_growth: list[MonthlyCount]


# ---------------------------------------------------------------------------
# Tenant
# ---------------------------------------------------------------------------

class TenantResponse(BaseModel):
    """Response for GET /tenant."""

    is_super_admin: bool = False
    is_custom_domain: bool = False
    organization: PublicOrganizationResponse | None = None


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

class InviteRequest(BaseModel):
    """Request body for POST /organizations/{slug}/invite."""

    email: EmailStr
    role: str = Field(default="member", pattern="^(admin|member)$")


class InvitationResponse(BaseModel):
    """Invitation detail response."""

    id: UUID
    org_id: UUID
    email: str
    role: str
    token: str
    expires_at: datetime
    created_at: datetime
    is_expired: bool


class InvitationsListResponse(BaseModel):
    invitations: list[InvitationResponse]
    total: int


class InvitationInfoResponse(BaseModel):
    """Public info about an invitation (shown before accepting)."""

    email: str
    org_name: str
    org_slug: str
    role: str
    expires_at: datetime
    is_expired: bool


class InvitationAcceptRequest(BaseModel):
    """Optional name details for the profile created on accept."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class OrganizationCreateResponse(BaseModel):
    organization: OrganizationResponse
    admin_invitation: InvitationResponse | None = None
