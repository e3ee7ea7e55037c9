"""
Public signup and member renewal endpoints.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_active_profile, get_public_org, get_redis, rate_limit
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.signup import (
    RenewalFormResponse,
    RenewalRequest,
    RenewalResponse,
    SignupFormResponse,
    SignupRequest,
    SignupResponse,
)
from memberhub.services.signup_service import SignupService

router = APIRouter()


def get_signup_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> SignupService:
    return SignupService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/signup-form",
    response_model=SignupFormResponse,
    summary="Active signup form and membership types",
)
async def get_signup_form(
    org: Organization = Depends(get_public_org),
    service: SignupService = Depends(get_signup_service),
) -> SignupFormResponse:
    return await service.get_signup_form(org)


@router.post(
    "/organizations/{slug}/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up as a member",
    dependencies=[Depends(rate_limit("signup", per_minute=10))],
)
async def signup(
    data: SignupRequest,
    org: Organization = Depends(get_public_org),
    service: SignupService = Depends(get_signup_service),
) -> SignupResponse:
    """
    Create the account, a pending profile and the form response at once.

    - Existing users must give their current password
    - Form answers are validated against the active signup form
    - Returns tokens so the new member is signed in straight away
    """
    return await service.signup(org, data)


# ---------------------------------------------------------------------------
# Renewal
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/renewal",
    response_model=RenewalFormResponse,
    summary="Renewal form for the current membership year",
)
async def get_renewal_form(
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: SignupService = Depends(get_signup_service),
) -> RenewalFormResponse:
    org, profile = org_and_profile
    return await service.get_renewal_form(org, profile)


@router.post(
    "/organizations/{slug}/renewal",
    response_model=RenewalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Renew for the current membership year",
)
async def renew(
    data: RenewalRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: SignupService = Depends(get_signup_service),
) -> RenewalResponse:
    """Creates a pending membership per selected type not already held this year."""
    org, profile = org_and_profile
    return await service.renew(org, profile, data)
