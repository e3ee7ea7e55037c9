"""
Email campaign background tasks.

Delivery of a single campaign, and the beat job that starts scheduled
campaigns once they are due.
"""

from __future__ import annotations

import logging
from uuid import UUID

from memberhub.workers.celery_app import celery_app, run_async

logger = logging.getLogger(__name__)


async def _deliver(campaign_id: str) -> dict[str, int]:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.services.campaign_service import deliver_campaign

    async with AsyncSessionLocal() as session:
        counts = await deliver_campaign(session, UUID(campaign_id))
        await session.commit()
        return counts


async def _claim_due() -> list[UUID]:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.services.campaign_service import claim_due_campaigns

    async with AsyncSessionLocal() as session:
        ids = await claim_due_campaigns(session)
        await session.commit()
        return ids


@celery_app.task(name="memberhub.workers.campaign_tasks.send_campaign", bind=True, max_retries=3)
def send_campaign(self, campaign_id: str) -> dict[str, int]:  # type: ignore[no-untyped-def]
    """
    Mail a campaign to every subscribed recipient.

    Per-recipient failures are counted as bounces, so a retry only
    happens when the run itself fails (database unavailable and so on).
    """
    try:
        return run_async(lambda: _deliver(campaign_id))
    except Exception as exc:
        logger.warning("Campaign %s delivery failed: %s", campaign_id, exc)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(
    name="memberhub.workers.campaign_tasks.send_scheduled_campaigns", bind=True, max_retries=3
)
def send_scheduled_campaigns(self) -> dict[str, int]:  # type: ignore[no-untyped-def]
    """Queue delivery for every scheduled campaign whose time has come."""
    try:
        due = run_async(_claim_due)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    for campaign_id in due:
        send_campaign.delay(campaign_id=str(campaign_id))
    if due:
        logger.info("Queued %d scheduled campaigns", len(due))
    return {"queued": len(due)}
