"""
Organization dashboard analytics.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

import redis.asyncio as aioredis
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import ensure_aware, utcnow
from memberhub.models.event import Event, EventRegistration, RegistrationStatus
from memberhub.models.membership import Membership, MembershipStatus
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileStatus
from memberhub.schemas.organization import AnalyticsResponse, MonthlyCount
from memberhub.services.membership_service import current_membership_year

GROWTH_MONTHS = 12


def month_keys(today: date, months: int = GROWTH_MONTHS) -> list[str]:
    """``YYYY-MM`` keys for the last ``months`` months, oldest first."""
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


class AnalyticsService:
    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    async def get_analytics(self, org: Organization) -> AnalyticsResponse:
        now = utcnow()
        year = current_membership_year(org.membership_year_start_month, now.date())

        async def count(query) -> int:  # type: ignore[no-untyped-def]
            return (await self.db.scalar(query)) or 0

        total_members = await count(
            select(func.count(Profile.id)).where(
                Profile.org_id == org.id, Profile.status == ProfileStatus.active
            )
        )
        pending_members = await count(
            select(func.count(Profile.id)).where(
                Profile.org_id == org.id, Profile.status == ProfileStatus.pending
            )
        )
        active_memberships = await count(
            select(func.count(Membership.id)).where(
                Membership.org_id == org.id,
                Membership.status == MembershipStatus.active,
                Membership.membership_year == year,
            )
        )
        upcoming_events = await count(
            select(func.count(Event.id)).where(
                Event.org_id == org.id,
                Event.is_published.is_(True),
                Event.start_datetime >= now,
            )
        )
        recent_registrations = await count(
            select(func.count(EventRegistration.id)).where(
                EventRegistration.org_id == org.id,
                EventRegistration.status != RegistrationStatus.cancelled,
                EventRegistration.registered_at >= now - timedelta(days=30),
            )
        )
        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Membership.amount_paid), 0)).where(
                Membership.org_id == org.id
            )
        )

        return AnalyticsResponse(
            total_members=total_members,
            pending_members=pending_members,
            active_memberships=active_memberships,
            membership_year=year,
            upcoming_events=upcoming_events,
            registrations_last_30_days=recent_registrations,
            total_revenue=Decimal(str(revenue or 0)).quantize(Decimal("0.01")),
            member_growth=await self._member_growth(org.id, now.date()),
        )

    async def _member_growth(self, org_id: UUID, today: date) -> list[MonthlyCount]:
        """New profiles per month; bucketed in Python to stay dialect neutral."""
        keys = month_keys(today)
        first_year, first_month = (int(part) for part in keys[0].split("-"))
        since = datetime.combine(date(first_year, first_month, 1), time.min, tzinfo=UTC)

        result = await self.db.execute(
            select(Profile.created_at).where(
                Profile.org_id == org_id,
                Profile.created_at >= since,
            )
        )
        buckets = dict.fromkeys(keys, 0)
        for (created_at,) in result.all():
            key = ensure_aware(created_at).strftime("%Y-%m")
            if key in buckets:
                buckets[key] += 1
        return [MonthlyCount(month=key, count=buckets[key]) for key in keys]
