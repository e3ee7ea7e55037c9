"""
Automated reminder and membership housekeeping tasks.
"""

from __future__ import annotations

import logging
from uuid import UUID

from memberhub.workers.celery_app import celery_app, run_async

logger = logging.getLogger(__name__)


async def _process_all() -> dict[str, int]:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.services.reminder_service import run_due_reminders

    async with AsyncSessionLocal() as session:
        totals = await run_due_reminders(session)
        await session.commit()
        return totals


async def _run_one(reminder_id: str) -> dict[str, int]:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.models.reminder import AutomatedReminder
    from memberhub.services.reminder_service import send_reminder

    async with AsyncSessionLocal() as session:
        reminder = await session.get(AutomatedReminder, UUID(reminder_id))
        if reminder is None:
            logger.warning("Reminder %s no longer exists", reminder_id)
            return {"sent": 0, "failed": 0, "skipped": 0}
        counts = await send_reminder(session, reminder)
        await session.commit()
        return counts


async def _expire() -> int:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.services.membership_service import expire_memberships as expire

    async with AsyncSessionLocal() as session:
        expired = await expire(session)
        await session.commit()
        return expired


@celery_app.task(name="memberhub.workers.reminder_tasks.process_reminders", bind=True, max_retries=3)
def process_reminders(self) -> dict[str, int]:  # type: ignore[no-untyped-def]
    """Daily run of every active membership and event reminder."""
    try:
        totals = run_async(_process_all)
        logger.info("Reminder run finished: %s", totals)
        return totals
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="memberhub.workers.reminder_tasks.run_reminder", bind=True, max_retries=3)
def run_reminder(self, reminder_id: str) -> dict[str, int]:  # type: ignore[no-untyped-def]
    """Manual run of one reminder, custom reminders included."""
    try:
        return run_async(lambda: _run_one(reminder_id))
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="memberhub.workers.reminder_tasks.expire_memberships", bind=True, max_retries=3)
def expire_memberships(self) -> dict[str, int]:  # type: ignore[no-untyped-def]
    """Mark active memberships past their end date as expired."""
    try:
        expired = run_async(_expire)
        logger.info("Expired %d memberships", expired)
        return {"expired": expired}
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
