"""
Membership type and membership business logic.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import utcnow
from memberhub.models.membership import Membership, MembershipStatus, MembershipType
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.membership import (
    MembershipActivateRequest,
    MembershipCreateRequest,
    MembershipListResponse,
    MembershipResponse,
    MembershipTypeCreateRequest,
    MembershipTypeListResponse,
    MembershipTypeReorderRequest,
    MembershipTypeResponse,
    MembershipTypeUpdateRequest,
    MembershipUpdateRequest,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Membership year
# ---------------------------------------------------------------------------

def current_membership_year(start_month: int, today: date | None = None) -> int:
    """
    The membership year ``today`` falls in.

    A year is named after the calendar year it starts in, so before the
    start month we are still in last year's membership year.
    """
    today = today or utcnow().date()
    return today.year if today.month >= start_month else today.year - 1


def membership_period(start_month: int, year: int) -> tuple[date, date]:
    """First and last day of a membership year."""
    start = date(year, start_month, 1)
    end = date(year + 1, start_month, 1) - timedelta(days=1)
    return start, end


def membership_response(membership: Membership, mtype: MembershipType | None) -> MembershipResponse:
    response = MembershipResponse.model_validate(membership)
    if mtype is not None:
        response.membership_type_name = mtype.name
        response.membership_type_code = mtype.code
    return response


async def expire_memberships(db: AsyncSession, today: date | None = None) -> int:
    """Mark active memberships whose end date has passed as expired."""
    today = today or utcnow().date()
    result = await db.execute(
        update(Membership)
        .where(
            Membership.status == MembershipStatus.active,
            Membership.end_date.is_not(None),
            Membership.end_date < today,
        )
        .values(status=MembershipStatus.expired)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


class MembershipService:
    """Handles membership types and yearly memberships."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Membership types
    # -----------------------------------------------------------------------

    async def list_types(self, org_id: UUID, include_inactive: bool = False) -> MembershipTypeListResponse:
        query = select(MembershipType).where(MembershipType.org_id == org_id)
        if not include_inactive:
            query = query.where(MembershipType.is_active.is_(True))
        result = await self.db.execute(
            query.order_by(MembershipType.display_order, MembershipType.name)
        )
        types = [MembershipTypeResponse.model_validate(t) for t in result.scalars().all()]
        return MembershipTypeListResponse(membership_types=types, total=len(types))

    async def get_type_model(self, org_id: UUID, type_id: UUID) -> MembershipType:
        result = await self.db.execute(
            select(MembershipType).where(
                MembershipType.id == type_id,
                MembershipType.org_id == org_id,
            )
        )
        mtype = result.scalar_one_or_none()
        if mtype is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "MEMBERSHIP_TYPE_NOT_FOUND", "message": "Membership type not found"},
            )
        return mtype

    async def create_type(
        self, org_id: UUID, data: MembershipTypeCreateRequest
    ) -> MembershipTypeResponse:
        existing = await self.db.execute(
            select(MembershipType.id).where(
                MembershipType.org_id == org_id,
                MembershipType.code == data.code,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "CODE_TAKEN", "message": "A membership type with this code already exists"},
            )

        if data.is_default:
            await self._clear_default(org_id)

        mtype = MembershipType(org_id=org_id, is_active=True, **data.model_dump())
        self.db.add(mtype)
        await self.db.flush()
        await self.db.refresh(mtype)
        return MembershipTypeResponse.model_validate(mtype)

    async def update_type(
        self, org_id: UUID, type_id: UUID, data: MembershipTypeUpdateRequest
    ) -> MembershipTypeResponse:
        mtype = await self.get_type_model(org_id, type_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("is_default"):
            await self._clear_default(org_id)

        for key, value in changes.items():
            if value is None and key not in ("description",):
                continue
            setattr(mtype, key, value)

        await self.db.flush()
        await self.db.refresh(mtype)
        return MembershipTypeResponse.model_validate(mtype)

    async def deactivate_type(self, org_id: UUID, type_id: UUID) -> None:
        """Soft delete: memberships keep pointing at the type."""
        mtype = await self.get_type_model(org_id, type_id)
        mtype.is_active = False
        mtype.is_default = False
        await self.db.flush()

    async def reorder_types(
        self, org_id: UUID, data: MembershipTypeReorderRequest
    ) -> MembershipTypeListResponse:
        result = await self.db.execute(
            select(MembershipType).where(MembershipType.org_id == org_id)
        )
        types = {t.id: t for t in result.scalars().all()}

        unknown = [str(type_id) for type_id in data.type_ids if type_id not in types]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "MEMBERSHIP_TYPE_NOT_FOUND", "message": f"Unknown membership types: {unknown}"},
            )

        for order, type_id in enumerate(data.type_ids):
            types[type_id].display_order = order
        await self.db.flush()
        return await self.list_types(org_id, include_inactive=True)

    async def _clear_default(self, org_id: UUID) -> None:
        await self.db.execute(
            update(MembershipType)
            .where(MembershipType.org_id == org_id, MembershipType.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    # -----------------------------------------------------------------------
    # Memberships
    # -----------------------------------------------------------------------

    async def list_memberships(
        self,
        org_id: UUID,
        year: int | None = None,
        status_filter: str | None = None,
        profile_id: UUID | None = None,
    ) -> MembershipListResponse:
        query = (
            select(Membership, MembershipType)
            .outerjoin(MembershipType, Membership.membership_type_id == MembershipType.id)
            .where(Membership.org_id == org_id)
        )
        if year is not None:
            query = query.where(Membership.membership_year == year)
        if status_filter:
            query = query.where(Membership.status == MembershipStatus(status_filter))
        if profile_id is not None:
            query = query.where(Membership.profile_id == profile_id)

        result = await self.db.execute(
            query.order_by(Membership.membership_year.desc(), Membership.created_at)
        )
        memberships = [membership_response(m, t) for m, t in result.all()]
        return MembershipListResponse(memberships=memberships, total=len(memberships))

    async def get_membership_model(self, org_id: UUID, membership_id: UUID) -> Membership:
        result = await self.db.execute(
            select(Membership).where(
                Membership.id == membership_id,
                Membership.org_id == org_id,
            )
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "MEMBERSHIP_NOT_FOUND", "message": "Membership not found"},
            )
        return membership

    async def create_membership(
        self, org: Organization, data: MembershipCreateRequest
    ) -> MembershipResponse:
        profile = await self.db.scalar(
            select(Profile).where(Profile.id == data.profile_id, Profile.org_id == org.id)
        )
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "PROFILE_NOT_FOUND", "message": "Profile not found"},
            )
        mtype = await self.get_type_model(org.id, data.membership_type_id)

        year = data.membership_year or current_membership_year(org.membership_year_start_month)
        existing = await self.db.execute(
            select(Membership.id).where(
                Membership.profile_id == profile.id,
                Membership.membership_type_id == mtype.id,
                Membership.membership_year == year,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "MEMBERSHIP_EXISTS", "message": "This membership already exists for the year"},
            )

        membership = Membership(
            org_id=org.id,
            profile_id=profile.id,
            membership_type_id=mtype.id,
            membership_year=year,
            status=MembershipStatus(data.status),
            amount_paid=data.amount_paid,
            payment_method=data.payment_method,
            notes=data.notes,
        )
        if membership.status == MembershipStatus.active:
            membership.start_date, membership.end_date = membership_period(
                org.membership_year_start_month, year
            )

        self.db.add(membership)
        await self.db.flush()
        await self.db.refresh(membership)
        return membership_response(membership, mtype)

    async def update_membership(
        self, org_id: UUID, membership_id: UUID, data: MembershipUpdateRequest
    ) -> MembershipResponse:
        membership = await self.get_membership_model(org_id, membership_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key in ("status", "amount_paid"):
                continue
            if key == "status":
                value = MembershipStatus(value)
            setattr(membership, key, value)
        return await self._reload(membership)

    async def activate_membership(
        self, org: Organization, membership_id: UUID, data: MembershipActivateRequest
    ) -> MembershipResponse:
        """Set status active and the dates of the membership year."""
        membership = await self.get_membership_model(org.id, membership_id)
        membership.status = MembershipStatus.active
        membership.start_date, membership.end_date = membership_period(
            org.membership_year_start_month, membership.membership_year
        )
        if data.amount_paid is not None:
            membership.amount_paid = data.amount_paid
        if data.payment_method is not None:
            membership.payment_method = data.payment_method
        logger.info("Membership %s activated", membership.id)
        return await self._reload(membership)

    async def _reload(self, membership: Membership) -> MembershipResponse:
        await self.db.flush()
        await self.db.refresh(membership)
        mtype = None
        if membership.membership_type_id is not None:
            mtype = await self.db.get(MembershipType, membership.membership_type_id)
        return membership_response(membership, mtype)
