"""
Automated reminder business logic.

A reminder fires relative to a date: the end of a membership or the start
of an event, shifted by ``trigger_days`` (negative means before). The
daily beat run checks every active reminder against today's date and
mails each matching member once per membership or event.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core import email as mailer
from memberhub.models.base import utcnow
from memberhub.models.event import ATTENDING_STATUSES, Event, EventRegistration
from memberhub.models.membership import Membership, MembershipStatus, MembershipType
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileStatus
from memberhub.models.reminder import (
    AutomatedReminder,
    ReminderLog,
    ReminderLogStatus,
    ReminderType,
)
from memberhub.schemas.reminder import (
    ReminderCreateRequest,
    ReminderListResponse,
    ReminderLogListResponse,
    ReminderLogResponse,
    ReminderResponse,
    ReminderRunResponse,
    ReminderStatsResponse,
    ReminderUpdateRequest,
)
from memberhub.services.workflow_service import render_template

logger = logging.getLogger(__name__)

MEMBERSHIP_REMINDER_STATUSES = {
    ReminderType.membership_renewal: (MembershipStatus.active,),
    ReminderType.membership_expiry: (MembershipStatus.active, MembershipStatus.expired),
}
EVENT_REMINDER_TYPES = (ReminderType.event_upcoming, ReminderType.event_followup)


@dataclass
class ReminderTarget:
    """One member to remind, and what about."""

    profile: Profile
    reference_id: UUID | None
    context: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Target selection
# ---------------------------------------------------------------------------

def _base_context(org: Organization, profile: Profile) -> dict[str, Any]:
    return {
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "full_name": profile.full_name,
        "email": profile.email,
        "organization_name": org.name,
    }


async def _membership_targets(
    db: AsyncSession, org: Organization, reminder: AutomatedReminder, today: date
) -> list[ReminderTarget]:
    end_date = today - timedelta(days=reminder.trigger_days)
    query = (
        select(Membership, Profile, MembershipType)
        .join(Profile, Membership.profile_id == Profile.id)
        .outerjoin(MembershipType, Membership.membership_type_id == MembershipType.id)
        .where(
            Membership.org_id == org.id,
            Membership.status.in_(MEMBERSHIP_REMINDER_STATUSES[reminder.reminder_type]),
            Membership.end_date == end_date,
        )
    )
    codes = (reminder.target_audience or {}).get("membership_types") or []
    if codes:
        query = query.where(MembershipType.code.in_(codes))

    targets = []
    for membership, profile, mtype in (await db.execute(query)).all():
        context = _base_context(org, profile)
        context.update(
            membership_type=mtype.name if mtype else "",
            membership_year=membership.membership_year,
            end_date=membership.end_date.isoformat() if membership.end_date else "",
        )
        targets.append(ReminderTarget(profile, membership.id, context))
    return targets


async def _event_targets(
    db: AsyncSession, org: Organization, reminder: AutomatedReminder, today: date
) -> list[ReminderTarget]:
    event_day = today - timedelta(days=reminder.trigger_days)
    day_start = datetime.combine(event_day, time.min, tzinfo=UTC)
    query = (
        select(Event, Profile)
        .join(EventRegistration, EventRegistration.event_id == Event.id)
        .join(Profile, EventRegistration.profile_id == Profile.id)
        .where(
            Event.org_id == org.id,
            Event.is_published.is_(True),
            Event.start_datetime >= day_start,
            Event.start_datetime < day_start + timedelta(days=1),
            EventRegistration.status.in_(ATTENDING_STATUSES),
        )
    )

    targets = []
    for event, profile in (await db.execute(query)).all():
        context = _base_context(org, profile)
        context.update(
            event_title=event.title,
            event_date=event_day.isoformat(),
            event_location=event.location or "",
        )
        targets.append(ReminderTarget(profile, event.id, context))
    return targets


async def _custom_targets(db: AsyncSession, org: Organization) -> list[ReminderTarget]:
    result = await db.execute(
        select(Profile).where(
            Profile.org_id == org.id,
            Profile.status == ProfileStatus.active,
            Profile.is_active.is_(True),
        )
    )
    return [ReminderTarget(p, None, _base_context(org, p)) for p in result.scalars().all()]


async def find_targets(
    db: AsyncSession, org: Organization, reminder: AutomatedReminder, today: date
) -> list[ReminderTarget]:
    if reminder.reminder_type in MEMBERSHIP_REMINDER_STATUSES:
        return await _membership_targets(db, org, reminder, today)
    if reminder.reminder_type in EVENT_REMINDER_TYPES:
        return await _event_targets(db, org, reminder, today)
    return await _custom_targets(db, org)


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------

async def _already_sent(db: AsyncSession, reminder_id: UUID, target: ReminderTarget) -> bool:
    query = select(ReminderLog.id).where(
        ReminderLog.reminder_id == reminder_id,
        ReminderLog.profile_id == target.profile.id,
        ReminderLog.status == ReminderLogStatus.sent,
    )
    if target.reference_id is None:
        query = query.where(ReminderLog.reference_id.is_(None))
    else:
        query = query.where(ReminderLog.reference_id == target.reference_id)
    return await db.scalar(query.limit(1)) is not None


async def send_reminder(
    db: AsyncSession,
    reminder: AutomatedReminder,
    today: date | None = None,
    send: Callable[..., str] | None = None,
) -> dict[str, int]:
    """
    Mail one reminder to everyone it currently targets.

    Returns counts of sent, failed and skipped (already reminded) members.
    """
    send = send or mailer.send_email
    today = today or utcnow().date()
    counts = {"sent": 0, "failed": 0, "skipped": 0}

    org = await db.get(Organization, reminder.org_id)
    if org is None or not org.is_active:
        return counts

    for target in await find_targets(db, org, reminder, today):
        if await _already_sent(db, reminder.id, target):
            counts["skipped"] += 1
            continue

        log = ReminderLog(
            org_id=org.id,
            reminder_id=reminder.id,
            profile_id=target.profile.id,
            reference_id=target.reference_id,
            recipient_email=target.profile.email,
            meta={"reminder_type": reminder.reminder_type.value},
            sent_at=utcnow(),
        )
        try:
            send(
                to=target.profile.email,
                subject=render_template(reminder.email_subject, target.context),
                html=render_template(reminder.email_body, target.context),
            )
            log.status = ReminderLogStatus.sent
            counts["sent"] += 1
        except Exception as exc:
            logger.exception("Reminder %s failed for %s", reminder.id, target.profile.email)
            log.status = ReminderLogStatus.failed
            log.error_message = str(exc)
            counts["failed"] += 1
        db.add(log)

    await db.flush()
    logger.info(
        "Reminder %s (%s): %d sent, %d failed, %d skipped",
        reminder.id,
        reminder.reminder_type.value,
        counts["sent"],
        counts["failed"],
        counts["skipped"],
    )
    return counts


async def run_due_reminders(
    db: AsyncSession,
    today: date | None = None,
    send: Callable[..., str] | None = None,
) -> dict[str, int]:
    """Daily run over every active reminder except custom ones."""
    today = today or utcnow().date()
    result = await db.execute(
        select(AutomatedReminder).where(
            AutomatedReminder.is_active.is_(True),
            AutomatedReminder.reminder_type != ReminderType.custom,
        )
    )
    totals = {"reminders": 0, "sent": 0, "failed": 0, "skipped": 0}
    for reminder in result.scalars().all():
        counts = await send_reminder(db, reminder, today, send)
        totals["reminders"] += 1
        for key, value in counts.items():
            totals[key] += value
    return totals


class ReminderService:
    """Handles automated reminder configuration, stats and logs."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def list_reminders(self, org_id: UUID) -> ReminderListResponse:
        result = await self.db.execute(
            select(AutomatedReminder)
            .where(AutomatedReminder.org_id == org_id)
            .order_by(AutomatedReminder.created_at.desc())
        )
        reminders = [ReminderResponse.model_validate(r) for r in result.scalars().all()]
        return ReminderListResponse(reminders=reminders, total=len(reminders))

    async def get_reminder_model(self, org_id: UUID, reminder_id: UUID) -> AutomatedReminder:
        result = await self.db.execute(
            select(AutomatedReminder).where(
                AutomatedReminder.id == reminder_id,
                AutomatedReminder.org_id == org_id,
            )
        )
        reminder = result.scalar_one_or_none()
        if reminder is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "REMINDER_NOT_FOUND", "message": "Reminder not found"},
            )
        return reminder

    async def get_reminder(self, org_id: UUID, reminder_id: UUID) -> ReminderResponse:
        return ReminderResponse.model_validate(await self.get_reminder_model(org_id, reminder_id))

    async def create_reminder(self, org_id: UUID, data: ReminderCreateRequest) -> ReminderResponse:
        values = data.model_dump()
        values["reminder_type"] = ReminderType(data.reminder_type)
        reminder = AutomatedReminder(org_id=org_id, **values)
        self.db.add(reminder)
        return await self._save(reminder)

    async def update_reminder(
        self, org_id: UUID, reminder_id: UUID, data: ReminderUpdateRequest
    ) -> ReminderResponse:
        reminder = await self.get_reminder_model(org_id, reminder_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(reminder, key, value)
        return await self._save(reminder)

    async def toggle_reminder(self, org_id: UUID, reminder_id: UUID) -> ReminderResponse:
        reminder = await self.get_reminder_model(org_id, reminder_id)
        reminder.is_active = not reminder.is_active
        return await self._save(reminder)

    async def delete_reminder(self, org_id: UUID, reminder_id: UUID) -> None:
        reminder = await self.get_reminder_model(org_id, reminder_id)
        await self.db.delete(reminder)
        await self.db.flush()

    async def _save(self, reminder: AutomatedReminder) -> ReminderResponse:
        await self.db.flush()
        await self.db.refresh(reminder)
        return ReminderResponse.model_validate(reminder)

    # -----------------------------------------------------------------------
    # Stats, logs and manual runs
    # -----------------------------------------------------------------------

    async def get_stats(self, org_id: UUID) -> ReminderStatsResponse:
        active = await self.db.scalar(
            select(func.count(AutomatedReminder.id)).where(
                AutomatedReminder.org_id == org_id,
                AutomatedReminder.is_active.is_(True),
            )
        )

        since = utcnow() - timedelta(days=30)
        rows = await self.db.execute(
            select(ReminderLog.status, func.count(ReminderLog.id))
            .where(ReminderLog.org_id == org_id, ReminderLog.sent_at >= since)
            .group_by(ReminderLog.status)
        )
        by_status = {row[0]: row[1] for row in rows.all()}
        sent = by_status.get(ReminderLogStatus.sent, 0)
        failed = by_status.get(ReminderLogStatus.failed, 0)
        attempted = sent + failed

        return ReminderStatsResponse(
            active_reminders=active or 0,
            sent_last_30_days=sent,
            failed_last_30_days=failed,
            success_rate=round(sent / attempted * 100, 1) if attempted else 0.0,
        )

    async def list_logs(
        self, org_id: UUID, reminder_id: UUID | None = None, limit: int = 100
    ) -> ReminderLogListResponse:
        query = select(ReminderLog).where(ReminderLog.org_id == org_id)
        if reminder_id is not None:
            query = query.where(ReminderLog.reminder_id == reminder_id)
        result = await self.db.execute(query.order_by(ReminderLog.sent_at.desc()).limit(limit))
        logs = [ReminderLogResponse.model_validate(log) for log in result.scalars().all()]
        return ReminderLogListResponse(logs=logs, total=len(logs))

    async def run_now(self, org_id: UUID, reminder_id: UUID) -> ReminderRunResponse:
        """Queue a one-off run of a reminder, including custom ones."""
        reminder = await self.get_reminder_model(org_id, reminder_id)

        from memberhub.workers.reminder_tasks import run_reminder
        run_reminder.delay(reminder_id=str(reminder.id))
        logger.info("Reminder %s queued for a manual run", reminder.id)
        return ReminderRunResponse(queued=True, reminder_id=reminder.id)
