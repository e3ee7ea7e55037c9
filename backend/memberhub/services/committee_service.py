"""
Committee business logic.

Committees can mirror their membership to a mailing list: adding a member
subscribes their email to the list, removing one unsubscribes it.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import utcnow
from memberhub.models.committee import Committee, CommitteeMember, CommitteeRole
from memberhub.models.mailing import MailingList, Subscriber
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
from memberhub.services.mailing_service import (
    get_or_create_subscriber,
    subscribe_to_list,
    unsubscribe_from_list,
)

logger = logging.getLogger(__name__)


def _member_response(member: CommitteeMember, profile: Profile) -> CommitteeMemberResponse:
    return CommitteeMemberResponse(
        id=member.id,
        committee_id=member.committee_id,
        profile_id=member.profile_id,
        role=member.role.value,
        joined_at=member.joined_at,
        name=profile.full_name or profile.email,
        email=profile.email,
    )


class CommitteeService:
    """Handles committees and their members."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Committees
    # -----------------------------------------------------------------------

    async def list_committees(self, org_id: UUID) -> CommitteeListResponse:
        result = await self.db.execute(
            select(Committee).where(Committee.org_id == org_id).order_by(Committee.name)
        )
        committees = [CommitteeResponse.model_validate(c) for c in result.scalars().all()]
        return CommitteeListResponse(committees=committees, total=len(committees))

    async def get_committee_model(self, org_id: UUID, committee_id: UUID) -> Committee:
        result = await self.db.execute(
            select(Committee).where(Committee.id == committee_id, Committee.org_id == org_id)
        )
        committee = result.scalar_one_or_none()
        if committee is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "COMMITTEE_NOT_FOUND", "message": "Committee not found"},
            )
        return committee

    async def get_committee(self, org_id: UUID, committee_id: UUID) -> CommitteeDetailResponse:
        committee = await self.get_committee_model(org_id, committee_id)
        result = await self.db.execute(
            select(CommitteeMember, Profile)
            .join(Profile, CommitteeMember.profile_id == Profile.id)
            .where(CommitteeMember.committee_id == committee.id)
            .order_by(CommitteeMember.joined_at)
        )
        members = [_member_response(m, p) for m, p in result.all()]
        return CommitteeDetailResponse(
            **CommitteeResponse.model_validate(committee).model_dump(), members=members
        )

    async def create_committee(
        self, org_id: UUID, data: CommitteeCreateRequest
    ) -> CommitteeResponse:
        await self._ensure_slug_free(org_id, data.slug)
        if data.mailing_list_id is not None:
            await self._check_list(org_id, data.mailing_list_id)

        committee = Committee(org_id=org_id, member_count=0, **data.model_dump())
        self.db.add(committee)
        await self.db.flush()
        await self.db.refresh(committee)
        return CommitteeResponse.model_validate(committee)

    async def update_committee(
        self, org_id: UUID, committee_id: UUID, data: CommitteeUpdateRequest
    ) -> CommitteeResponse:
        committee = await self.get_committee_model(org_id, committee_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("slug") and changes["slug"] != committee.slug:
            await self._ensure_slug_free(org_id, changes["slug"])
        if changes.get("mailing_list_id") is not None:
            await self._check_list(org_id, changes["mailing_list_id"])

        for key, value in changes.items():
            if value is None and key in ("name", "slug", "is_active"):
                continue
            setattr(committee, key, value)

        await self.db.flush()
        await self.db.refresh(committee)
        return CommitteeResponse.model_validate(committee)

    async def delete_committee(self, org_id: UUID, committee_id: UUID) -> None:
        committee = await self.get_committee_model(org_id, committee_id)
        await self.db.delete(committee)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    async def add_member(
        self, org_id: UUID, committee_id: UUID, data: CommitteeMemberAddRequest
    ) -> CommitteeMemberResponse:
        committee = await self.get_committee_model(org_id, committee_id)
        profile = await self.db.scalar(
            select(Profile).where(Profile.id == data.profile_id, Profile.org_id == org_id)
        )
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "PROFILE_NOT_FOUND", "message": "Profile not found"},
            )

        existing = await self.db.scalar(
            select(CommitteeMember.id).where(
                CommitteeMember.committee_id == committee.id,
                CommitteeMember.profile_id == profile.id,
            )
        )
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_MEMBER", "message": "Profile is already on this committee"},
            )

        member = CommitteeMember(
            org_id=org_id,
            committee_id=committee.id,
            profile_id=profile.id,
            role=CommitteeRole(data.role),
            joined_at=utcnow(),
        )
        self.db.add(member)
        await self.db.flush()

        if committee.mailing_list_id is not None:
            subscriber = await get_or_create_subscriber(
                self.db,
                org_id,
                profile.email,
                profile.first_name,
                profile.last_name,
                source="committee",
            )
            await subscribe_to_list(self.db, subscriber, committee.mailing_list_id)

        await self._recount(committee)
        await self.db.refresh(member)
        logger.info("Profile %s joined committee %s", profile.id, committee.id)
        return _member_response(member, profile)

    async def update_member(
        self, org_id: UUID, committee_id: UUID, member_id: UUID, data: CommitteeMemberUpdateRequest
    ) -> CommitteeMemberResponse:
        committee = await self.get_committee_model(org_id, committee_id)
        member, profile = await self._get_member(committee.id, member_id)
        member.role = CommitteeRole(data.role)
        await self.db.flush()
        return _member_response(member, profile)

    async def remove_member(self, org_id: UUID, committee_id: UUID, member_id: UUID) -> None:
        committee = await self.get_committee_model(org_id, committee_id)
        member, profile = await self._get_member(committee.id, member_id)

        await self.db.delete(member)
        await self.db.flush()

        if committee.mailing_list_id is not None:
            subscriber_id = await self.db.scalar(
                select(Subscriber.id).where(
                    Subscriber.org_id == org_id,
                    Subscriber.email == profile.email.lower(),
                )
            )
            if subscriber_id is not None:
                await unsubscribe_from_list(self.db, subscriber_id, committee.mailing_list_id)

        await self._recount(committee)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_member(
        self, committee_id: UUID, member_id: UUID
    ) -> tuple[CommitteeMember, Profile]:
        result = await self.db.execute(
            select(CommitteeMember, Profile)
            .join(Profile, CommitteeMember.profile_id == Profile.id)
            .where(
                CommitteeMember.id == member_id,
                CommitteeMember.committee_id == committee_id,
            )
        )
        row = result.one_or_none()
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "COMMITTEE_MEMBER_NOT_FOUND", "message": "Committee member not found"},
            )
        return row[0], row[1]

    async def _recount(self, committee: Committee) -> None:
        count = await self.db.scalar(
            select(func.count(CommitteeMember.id)).where(
                CommitteeMember.committee_id == committee.id
            )
        )
        committee.member_count = count or 0
        await self.db.flush()

    async def _ensure_slug_free(self, org_id: UUID, slug: str) -> None:
        existing = await self.db.scalar(
            select(Committee.id).where(Committee.org_id == org_id, Committee.slug == slug)
        )
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "SLUG_TAKEN", "message": "A committee with this slug already exists"},
            )

    async def _check_list(self, org_id: UUID, list_id: UUID) -> None:
        found = await self.db.scalar(
            select(MailingList.id).where(MailingList.id == list_id, MailingList.org_id == org_id)
        )
        if found is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "MAILING_LIST_NOT_FOUND", "message": "Mailing list not found"},
            )
