"""
Badge business logic.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.badge import Badge, BadgeType, MemberBadge
from memberhub.models.base import utcnow
from memberhub.models.profile import Profile
from memberhub.models.user import User
from memberhub.schemas.badge import (
    BadgeAwardRequest,
    BadgeCreateRequest,
    BadgeListResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    MemberBadgeListResponse,
    MemberBadgeResponse,
)

logger = logging.getLogger(__name__)


def _award_response(
    award: MemberBadge, badge: Badge, profile: Profile | None = None
) -> MemberBadgeResponse:
    return MemberBadgeResponse(
        id=award.id,
        badge_id=award.badge_id,
        profile_id=award.profile_id,
        awarded_by=award.awarded_by,
        awarded_at=award.awarded_at,
        notes=award.notes,
        meta=award.meta,
        badge_name=badge.name,
        badge_icon=badge.icon,
        badge_color=badge.color,
        member_name=(profile.full_name or profile.email) if profile else None,
        member_email=profile.email if profile else None,
    )


class BadgeService:
    """Handles badge definitions and awards."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Badges
    # -----------------------------------------------------------------------

    async def list_badges(self, org_id: UUID, include_inactive: bool = True) -> BadgeListResponse:
        query = select(Badge).where(Badge.org_id == org_id)
        if not include_inactive:
            query = query.where(Badge.is_active.is_(True))
        result = await self.db.execute(query.order_by(Badge.display_order, Badge.name))
        badges = [BadgeResponse.model_validate(b) for b in result.scalars().all()]
        return BadgeListResponse(badges=badges, total=len(badges))

    async def get_badge_model(self, org_id: UUID, badge_id: UUID) -> Badge:
        result = await self.db.execute(
            select(Badge).where(Badge.id == badge_id, Badge.org_id == org_id)
        )
        badge = result.scalar_one_or_none()
        if badge is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "BADGE_NOT_FOUND", "message": "Badge not found"},
            )
        return badge

    async def get_badge(self, org_id: UUID, badge_id: UUID) -> BadgeResponse:
        return BadgeResponse.model_validate(await self.get_badge_model(org_id, badge_id))

    async def create_badge(self, org_id: UUID, data: BadgeCreateRequest) -> BadgeResponse:
        values = data.model_dump()
        values["badge_type"] = BadgeType(data.badge_type)
        badge = Badge(org_id=org_id, **values)
        self.db.add(badge)
        await self.db.flush()
        await self.db.refresh(badge)
        return BadgeResponse.model_validate(badge)

    async def update_badge(
        self, org_id: UUID, badge_id: UUID, data: BadgeUpdateRequest
    ) -> BadgeResponse:
        badge = await self.get_badge_model(org_id, badge_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key in ("name", "badge_type", "display_order"):
                continue
            if key == "badge_type":
                value = BadgeType(value)
            setattr(badge, key, value)
        return await self._save(badge)

    async def toggle_badge(self, org_id: UUID, badge_id: UUID) -> BadgeResponse:
        badge = await self.get_badge_model(org_id, badge_id)
        badge.is_active = not badge.is_active
        return await self._save(badge)

    async def delete_badge(self, org_id: UUID, badge_id: UUID) -> None:
        badge = await self.get_badge_model(org_id, badge_id)
        await self.db.delete(badge)
        await self.db.flush()

    async def _save(self, badge: Badge) -> BadgeResponse:
        await self.db.flush()
        await self.db.refresh(badge)
        return BadgeResponse.model_validate(badge)

    # -----------------------------------------------------------------------
    # Awards
    # -----------------------------------------------------------------------

    async def list_holders(self, org_id: UUID, badge_id: UUID) -> MemberBadgeListResponse:
        badge = await self.get_badge_model(org_id, badge_id)
        result = await self.db.execute(
            select(MemberBadge, Profile)
            .join(Profile, MemberBadge.profile_id == Profile.id)
            .where(MemberBadge.badge_id == badge.id)
            .order_by(MemberBadge.awarded_at.desc())
        )
        awards = [_award_response(a, badge, p) for a, p in result.all()]
        return MemberBadgeListResponse(awards=awards, total=len(awards))

    async def list_profile_badges(self, org_id: UUID, profile_id: UUID) -> MemberBadgeListResponse:
        """Active badges a profile holds."""
        result = await self.db.execute(
            select(MemberBadge, Badge)
            .join(Badge, MemberBadge.badge_id == Badge.id)
            .where(
                MemberBadge.org_id == org_id,
                MemberBadge.profile_id == profile_id,
                Badge.is_active.is_(True),
            )
            .order_by(Badge.display_order, Badge.name)
        )
        awards = [_award_response(a, b) for a, b in result.all()]
        return MemberBadgeListResponse(awards=awards, total=len(awards))

    async def award(
        self, org_id: UUID, badge_id: UUID, data: BadgeAwardRequest, awarded_by: User
    ) -> MemberBadgeResponse:
        badge = await self.get_badge_model(org_id, badge_id)
        if not badge.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "BADGE_INACTIVE", "message": "Inactive badges cannot be awarded"},
            )

        profile = await self.db.scalar(
            select(Profile).where(Profile.id == data.profile_id, Profile.org_id == org_id)
        )
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "PROFILE_NOT_FOUND", "message": "Profile not found"},
            )

        existing = await self.db.scalar(
            select(MemberBadge.id).where(
                MemberBadge.badge_id == badge.id,
                MemberBadge.profile_id == profile.id,
            )
        )
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_AWARDED", "message": "This member already has the badge"},
            )

        award = MemberBadge(
            org_id=org_id,
            badge_id=badge.id,
            profile_id=profile.id,
            awarded_by=awarded_by.id,
            awarded_at=utcnow(),
            notes=data.notes,
            meta=data.meta,
        )
        self.db.add(award)
        await self.db.flush()
        await self.db.refresh(award)
        logger.info("Badge %s awarded to profile %s", badge.id, profile.id)
        return _award_response(award, badge, profile)

    async def revoke(self, org_id: UUID, badge_id: UUID, profile_id: UUID) -> None:
        result = await self.db.execute(
            select(MemberBadge).where(
                MemberBadge.org_id == org_id,
                MemberBadge.badge_id == badge_id,
                MemberBadge.profile_id == profile_id,
            )
        )
        award = result.scalar_one_or_none()
        if award is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "AWARD_NOT_FOUND", "message": "This member does not have the badge"},
            )
        await self.db.delete(award)
        await self.db.flush()
