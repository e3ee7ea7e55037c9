"""
Profile business logic.

Admin approval, rejection, role changes and deactivation, plus members
editing their own contact details.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import utcnow
from memberhub.models.profile import Profile, ProfileRole, ProfileStatus
from memberhub.schemas.profile import (
    ProfileAdminUpdateRequest,
    ProfileApproveRequest,
    ProfileListResponse,
    ProfileRejectRequest,
    ProfileResponse,
    ProfileSelfUpdateRequest,
)

logger = logging.getLogger(__name__)


class ProfileService:
    """Handles profile management inside one organization."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def list_profiles(
        self,
        org_id: UUID,
        status_filter: str | None = None,
        search: str | None = None,
    ) -> ProfileListResponse:
        query = select(Profile).where(Profile.org_id == org_id)
        if status_filter:
            query = query.where(Profile.status == ProfileStatus(status_filter))
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(Profile.first_name).like(pattern),
                    func.lower(Profile.last_name).like(pattern),
                    func.lower(Profile.email).like(pattern),
                )
            )

        result = await self.db.execute(query.order_by(Profile.last_name, Profile.first_name))
        profiles = [ProfileResponse.model_validate(p) for p in result.scalars().all()]
        return ProfileListResponse(profiles=profiles, total=len(profiles))

    async def get_profile_model(self, org_id: UUID, profile_id: UUID) -> Profile:
        result = await self.db.execute(
            select(Profile).where(Profile.id == profile_id, Profile.org_id == org_id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "PROFILE_NOT_FOUND", "message": "Profile not found"},
            )
        return profile

    async def get_profile(self, org_id: UUID, profile_id: UUID) -> ProfileResponse:
        return ProfileResponse.model_validate(await self.get_profile_model(org_id, profile_id))

    # -----------------------------------------------------------------------
    # Updates
    # -----------------------------------------------------------------------

    async def update_own_profile(
        self, profile: Profile, data: ProfileSelfUpdateRequest
    ) -> ProfileResponse:
        for key, value in data.model_dump(exclude_unset=True).items():
            if key in ("first_name", "last_name") and value is None:
                continue
            setattr(profile, key, value)
        return await self._save(profile)

    async def update_profile(
        self,
        org_id: UUID,
        profile_id: UUID,
        data: ProfileAdminUpdateRequest,
        acting: Profile,
    ) -> ProfileResponse:
        profile = await self.get_profile_model(org_id, profile_id)
        changes = data.model_dump(exclude_unset=True)

        new_role = changes.pop("role", None)
        if new_role is not None:
            await self._check_role_change(profile, ProfileRole(new_role), acting)
            profile.role = ProfileRole(new_role)

        for key, value in changes.items():
            if key in ("first_name", "last_name") and value is None:
                continue
            setattr(profile, key, value)
        return await self._save(profile)

    async def approve(
        self, org_id: UUID, profile_id: UUID, data: ProfileApproveRequest, acting: Profile
    ) -> ProfileResponse:
        profile = await self.get_profile_model(org_id, profile_id)
        role = ProfileRole(data.role)
        await self._check_role_change(profile, role, acting)

        profile.status = ProfileStatus.active
        profile.is_active = True
        profile.role = role
        profile.rejection_note = None
        profile.status_updated_at = utcnow()
        logger.info("Profile %s approved in org %s", profile.id, org_id)
        return await self._save(profile)

    async def reject(
        self, org_id: UUID, profile_id: UUID, data: ProfileRejectRequest, acting: Profile
    ) -> ProfileResponse:
        profile = await self.get_profile_model(org_id, profile_id)
        self._forbid_self(profile, acting, "reject")
        if profile.role == ProfileRole.admin:
            await self._ensure_other_admin(profile)

        profile.status = ProfileStatus.rejected
        profile.is_active = False
        profile.rejection_note = data.rejection_note
        profile.status_updated_at = utcnow()
        logger.info("Profile %s rejected in org %s", profile.id, org_id)
        return await self._save(profile)

    async def toggle_active(
        self, org_id: UUID, profile_id: UUID, acting: Profile
    ) -> ProfileResponse:
        profile = await self.get_profile_model(org_id, profile_id)
        self._forbid_self(profile, acting, "deactivate")
        if profile.is_active and profile.role == ProfileRole.admin:
            await self._ensure_other_admin(profile)

        profile.is_active = not profile.is_active
        return await self._save(profile)

    async def delete_profile(self, org_id: UUID, profile_id: UUID, acting: Profile) -> None:
        profile = await self.get_profile_model(org_id, profile_id)
        self._forbid_self(profile, acting, "delete")
        if profile.role == ProfileRole.admin:
            await self._ensure_other_admin(profile)

        await self.db.delete(profile)
        await self.db.flush()
        logger.info("Profile %s deleted from org %s", profile_id, org_id)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _save(self, profile: Profile) -> ProfileResponse:
        await self.db.flush()
        await self.db.refresh(profile)
        return ProfileResponse.model_validate(profile)

    @staticmethod
    def _forbid_self(profile: Profile, acting: Profile, action: str) -> None:
        if profile.id == acting.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "CANNOT_MODIFY_SELF", "message": f"You cannot {action} yourself"},
            )

    async def _check_role_change(
        self, profile: Profile, new_role: ProfileRole, acting: Profile
    ) -> None:
        if profile.role != ProfileRole.admin or new_role == ProfileRole.admin:
            return
        self._forbid_self(profile, acting, "demote")
        await self._ensure_other_admin(profile)

    async def _ensure_other_admin(self, profile: Profile) -> None:
        """An organization always keeps at least one active admin."""
        if profile.status != ProfileStatus.active or not profile.is_active:
            return
        others = await self.db.scalar(
            select(func.count(Profile.id)).where(
                Profile.org_id == profile.org_id,
                Profile.id != profile.id,
                Profile.role == ProfileRole.admin,
                Profile.status == ProfileStatus.active,
                Profile.is_active.is_(True),
            )
        )
        if not others:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "LAST_ADMIN", "message": "The organization must keep at least one admin"},
            )
