"""
Email workflow endpoints and the templated email send endpoint.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_current_user, get_redis, rate_limit, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.models.user import User
from memberhub.schemas.workflow import (
    SendEmailRequest,
    SendEmailResponse,
    WorkflowCreateRequest,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowTestRequest,
    WorkflowTestResponse,
    WorkflowUpdateRequest,
)
from memberhub.services.workflow_service import WorkflowService

router = APIRouter()


def get_workflow_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> WorkflowService:
    return WorkflowService(db=db, redis=redis)


@router.get(
    "/organizations/{slug}/workflows",
    response_model=WorkflowListResponse,
    summary="List email workflows",
)
async def list_workflows(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowListResponse:
    org, _ = org_and_profile
    return await service.list_workflows(org.id)


@router.post(
    "/organizations/{slug}/workflows",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an email workflow",
)
async def create_workflow(
    data: WorkflowCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    org, _ = org_and_profile
    return await service.create_workflow(org.id, data)


@router.get(
    "/organizations/{slug}/workflows/{workflow_id}",
    response_model=WorkflowResponse,
    summary="Get an email workflow",
)
async def get_workflow(
    workflow_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    org, _ = org_and_profile
    return await service.get_workflow(org.id, workflow_id)


@router.patch(
    "/organizations/{slug}/workflows/{workflow_id}",
    response_model=WorkflowResponse,
    summary="Update an email workflow",
)
async def update_workflow(
    workflow_id: UUID,
    data: WorkflowUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    org, _ = org_and_profile
    return await service.update_workflow(org.id, workflow_id, data)


@router.delete(
    "/organizations/{slug}/workflows/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an email workflow",
)
async def delete_workflow(
    workflow_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: WorkflowService = Depends(get_workflow_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_workflow(org.id, workflow_id)


@router.post(
    "/organizations/{slug}/workflows/{workflow_id}/test",
    response_model=WorkflowTestResponse,
    summary="Send a sample of a workflow email",
)
async def test_workflow(
    workflow_id: UUID,
    data: WorkflowTestRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowTestResponse:
    """Rendered with sample member values; goes to ``to`` or the caller."""
    org, profile = org_and_profile
    return await service.test_workflow(org, workflow_id, data, profile)


# ---------------------------------------------------------------------------
# Templated email send
# ---------------------------------------------------------------------------

@router.post(
    "/email/send",
    response_model=SendEmailResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a rendered workflow email",
    dependencies=[Depends(rate_limit("email-send", per_minute=30))],
)
async def send_email(
    data: SendEmailRequest,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
) -> SendEmailResponse:
    """
    Queue an email on behalf of a workflow.

    The caller must be an admin of ``organization_id`` and the workflow
    must belong to that organization.
    """
    return await service.send_templated_email(data, current_user)
