"""
Committee endpoints.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_active_profile, get_redis, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.committee import (
    CommitteeCreateRequest,
    CommitteeDetailResponse,
    CommitteeListResponse,
    CommitteeMemberAddRequest,
    CommitteeMemberResponse,
    CommitteeMemberUpdateRequest,
    CommitteeResponse,
    CommitteeUpdateRequest,
)
from memberhub.services.committee_service import CommitteeService

router = APIRouter()


def get_committee_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> CommitteeService:
    return CommitteeService(db=db, redis=redis)


@router.get(
    "/organizations/{slug}/committees",
    response_model=CommitteeListResponse,
    summary="List committees",
)
async def list_committees(
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: CommitteeService = Depends(get_committee_service),
) -> CommitteeListResponse:
    org, _ = org_and_profile
    return await service.list_committees(org.id)


@router.post(
    "/organizations/{slug}/committees",
    response_model=CommitteeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a committee",
)
async def create_committee(
    data: CommitteeCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CommitteeService = Depends(get_committee_service),
) -> CommitteeResponse:
    org, _ = org_and_profile
    return await service.create_committee(org.id, data)


@router.get(
    "/organizations/{slug}/committees/{committee_id}",
    response_model=CommitteeDetailResponse,
    summary="Get a committee and its members",
)
async def get_committee(
    committee_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: CommitteeService = Depends(get_committee_service),
) -> CommitteeDetailResponse:
    org, _ = org_and_profile
    return await service.get_committee(org.id, committee_id)


@router.patch(
    "/organizations/{slug}/committees/{committee_id}",
    response_model=CommitteeResponse,
    summary="Update a committee",
)
async def update_committee(
    committee_id: UUID,
    data: CommitteeUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CommitteeService = Depends(get_committee_service),
) -> CommitteeResponse:
    org, _ = org_and_profile
    return await service.update_committee(org.id, committee_id, data)


@router.delete(
    "/organizations/{slug}/committees/{committee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a committee",
)
async def delete_committee(
    committee_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CommitteeService = Depends(get_committee_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_committee(org.id, committee_id)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.post(
    "/organizations/{slug}/committees/{committee_id}/members",
    response_model=CommitteeMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member to a committee",
)
async def add_committee_member(
    committee_id: UUID,
    data: CommitteeMemberAddRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CommitteeService = Depends(get_committee_service),
) -> CommitteeMemberResponse:
    """Also subscribes the member to the committee's mailing list, if it has one."""
    org, _ = org_and_profile
    return await service.add_member(org.id, committee_id, data)


@router.patch(
    "/organizations/{slug}/committees/{committee_id}/members/{member_id}",
    response_model=CommitteeMemberResponse,
    summary="Change a committee member's role",
)
async def update_committee_member(
    committee_id: UUID,
    member_id: UUID,
    data: CommitteeMemberUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CommitteeService = Depends(get_committee_service),
) -> CommitteeMemberResponse:
    org, _ = org_and_profile
    return await service.update_member(org.id, committee_id, member_id, data)


@router.delete(
    "/organizations/{slug}/committees/{committee_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member from a committee",
)
async def remove_committee_member(
    committee_id: UUID,
    member_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: CommitteeService = Depends(get_committee_service),
) -> None:
    org, _ = org_and_profile
    await service.remove_member(org.id, committee_id, member_id)
