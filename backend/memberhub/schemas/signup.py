"""
Signup and renewal schemas.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from memberhub.schemas.auth import Password, TokenResponse
from memberhub.schemas.form import FormSchemaResponse
from memberhub.schemas.membership import MembershipResponse, MembershipTypeResponse
from memberhub.schemas.organization import PublicOrganizationResponse
from memberhub.schemas.profile import ProfileResponse


class SignupFormResponse(BaseModel):
    """Everything the public signup page needs to render."""

    organization: PublicOrganizationResponse
    form: FormSchemaResponse | None
    membership_types: list[MembershipTypeResponse]


class SignupRequest(BaseModel):
    """Request body for POST /organizations/{slug}/signup."""

    email: EmailStr
    password: Password
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    response_data: dict[str, Any] = Field(default_factory=dict)


class SignupResponse(BaseModel):
    profile: ProfileResponse
    total_amount: Decimal
    selected_membership_types: list[str]
    tokens: TokenResponse


class RenewalFormResponse(BaseModel):
    membership_year: int
    form: FormSchemaResponse | None
    membership_types: list[MembershipTypeResponse]
    current_memberships: list[MembershipResponse]
    previous_response: dict[str, Any] | None = None


class RenewalRequest(BaseModel):
    response_data: dict[str, Any]


class RenewalResponse(BaseModel):
    membership_year: int
    memberships: list[MembershipResponse]
    total_amount: Decimal
    selected_membership_types: list[UUID]
