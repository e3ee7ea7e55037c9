"""
CSV exports for members and event registrations.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import datetime
from uuid import UUID

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import ensure_aware
from memberhub.models.profile import Profile
from memberhub.services.event_service import EventService

MEMBER_HEADERS = ("Name", "Email", "Phone", "Role", "Status", "Active", "Joined Date")
REGISTRATION_HEADERS = ("Name", "Email", "Status", "Registered Date", "Checked In Date")

# Spreadsheet tools evaluate cells starting with these as formulas
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _format_dt(value: datetime | None) -> str:
    if value is None:
        return ""
    return ensure_aware(value).strftime("%Y-%m-%d %H:%M")


def _safe_cell(value: object) -> object:
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def to_csv(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    writer.writerows([_safe_cell(cell) for cell in row] for row in rows)
    return buffer.getvalue()


class ExportService:
    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    async def members_csv(self, org_id: UUID) -> str:
        result = await self.db.execute(
            select(Profile)
            .where(Profile.org_id == org_id)
            .order_by(Profile.last_name, Profile.first_name, Profile.email)
        )
        rows = (
            (
                p.full_name,
                p.email,
                p.phone or "",
                p.role.value,
                p.status.value,
                "Yes" if p.is_active else "No",
                _format_dt(p.created_at),
            )
            for p in result.scalars().all()
        )
        return to_csv(MEMBER_HEADERS, rows)

    async def registrations_csv(self, org_id: UUID, event_id: UUID) -> str:
        pairs = await EventService(self.db, self.redis).registration_rows(org_id, event_id)
        rows = (
            (
                profile.full_name or profile.email,
                profile.email,
                reg.status.value,
                _format_dt(reg.registered_at),
                _format_dt(reg.checked_in_at),
            )
            for reg, profile in pairs
        )
        return to_csv(REGISTRATION_HEADERS, rows)
