"""
Membership type and membership schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Membership types
# ---------------------------------------------------------------------------

class MembershipTypeCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50, pattern=r"^[a-z0-9_\-]+$")
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_default: bool = False
    display_order: int = 0


class MembershipTypeUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_default: bool | None = None
    is_active: bool | None = None
    display_order: int | None = None


class MembershipTypeReorderRequest(BaseModel):
    type_ids: list[UUID] = Field(min_length=1)


class MembershipTypeResponse(BaseModel):
    id: UUID
    org_id: UUID
    code: str
    name: str
    description: str | None
    price: Decimal
    is_default: bool
    is_active: bool
    display_order: int

    model_config = {"from_attributes": True}


class MembershipTypeListResponse(BaseModel):
    membership_types: list[MembershipTypeResponse]
    total: int


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------

class MembershipCreateRequest(BaseModel):
    profile_id: UUID
    membership_type_id: UUID
    membership_year: int | None = Field(default=None, ge=1900, le=2200)
    status: str = Field(default="pending", pattern="^(pending|active|expired|cancelled)$")
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class MembershipUpdateRequest(BaseModel):
    status: str | None = Field(default=None, pattern="^(pending|active|expired|cancelled)$")
    start_date: date | None = None
    end_date: date | None = None
    amount_paid: Decimal | None = Field(default=None, ge=0)
    payment_method: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class MembershipActivateRequest(BaseModel):
    amount_paid: Decimal | None = Field(default=None, ge=0)
    payment_method: str | None = Field(default=None, max_length=50)


class MembershipResponse(BaseModel):
    id: UUID
    org_id: UUID
    profile_id: UUID
    membership_type_id: UUID | None
    membership_type_name: str | None = None
    membership_type_code: str | None = None
    membership_year: int
    status: str
    start_date: date | None
    end_date: date | None
    amount_paid: Decimal
    payment_method: str | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class MembershipListResponse(BaseModel):
    memberships: list[MembershipResponse]
    total: int
