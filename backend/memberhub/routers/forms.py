"""
Form schema endpoints.

Admins version the organization's signup and renewal forms. Every save
creates a new version; older versions stay readable.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_current_user, get_redis, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.models.user import User
from memberhub.schemas.form import (
    FormSchemaCreateRequest,
    FormSchemaListResponse,
    FormSchemaResponse,
    FormValidateRequest,
    FormValidateResponse,
)
from memberhub.services.form_service import FormService

router = APIRouter()


def get_form_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> FormService:
    return FormService(db=db, redis=redis)


@router.get(
    "/organizations/{slug}/forms",
    response_model=FormSchemaListResponse,
    summary="List form versions",
)
async def list_forms(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: FormService = Depends(get_form_service),
) -> FormSchemaListResponse:
    org, _ = org_and_profile
    return await service.list_forms(org.id)


@router.post(
    "/organizations/{slug}/forms",
    response_model=FormSchemaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a new form version",
)
async def create_form(
    data: FormSchemaCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    current_user: User = Depends(get_current_user),
    service: FormService = Depends(get_form_service),
) -> FormSchemaResponse:
    """
    Store the schema as version ``latest + 1``.

    With ``activate`` set, every other version is deactivated.
    """
    org, _ = org_and_profile
    return await service.create_form(org.id, data, current_user)


@router.get(
    "/organizations/{slug}/forms/{form_id}",
    response_model=FormSchemaResponse,
    summary="Get a form version",
)
async def get_form(
    form_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: FormService = Depends(get_form_service),
) -> FormSchemaResponse:
    org, _ = org_and_profile
    return await service.get_form(org.id, form_id)


@router.post(
    "/organizations/{slug}/forms/{form_id}/activate",
    response_model=FormSchemaResponse,
    summary="Make a form version the active one",
)
async def activate_form(
    form_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: FormService = Depends(get_form_service),
) -> FormSchemaResponse:
    org, _ = org_and_profile
    return await service.activate_form(org.id, form_id)


@router.post(
    "/organizations/{slug}/forms/{form_id}/validate",
    response_model=FormValidateResponse,
    summary="Check a sample submission against a form version",
)
async def validate_form_response(
    form_id: UUID,
    data: FormValidateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: FormService = Depends(get_form_service),
) -> FormValidateResponse:
    org, _ = org_and_profile
    return await service.validate_response(org.id, form_id, data.response_data)
