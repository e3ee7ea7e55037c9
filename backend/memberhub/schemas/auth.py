"""
Account and session schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, EmailStr, Field


def _has_digit(value: str) -> str:
    if not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one number")
    return value


# 8-128 characters with at least one digit; shared by every endpoint that sets a password
Password = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(_has_digit)]
DisplayName = Annotated[str, Field(min_length=2, max_length=100)]


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    display_name: DisplayName
    email: EmailStr
    password: Password


class AccountUpdateRequest(BaseModel):
    display_name: DisplayName


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: Password


class MeOrganization(BaseModel):
    """One organization the current user holds a profile in."""

    org_id: UUID
    slug: str
    name: str
    profile_id: UUID
    role: str
    status: str
    is_active: bool


class MeResponse(BaseModel):
    id: UUID
    email: str
    display_name: str
    email_verified: bool
    is_super_admin: bool
    created_at: datetime
    organizations: list[MeOrganization] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """Token pair returned by register, login, refresh and signup."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token TTL in seconds")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: Password
