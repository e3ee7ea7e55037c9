"""
Email campaign business logic.

Campaigns can be edited while draft or scheduled. Sending flips the
status to ``sending`` and hands delivery to a worker, which mails every
subscribed recipient with a personal unsubscribe link.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core import email as mailer
from memberhub.core.config import settings
from memberhub.models.base import ensure_aware, utcnow
from memberhub.models.campaign import EDITABLE_CAMPAIGN_STATUSES, CampaignStatus, EmailCampaign
from memberhub.models.mailing import (
    ListSubscriptionStatus,
    MailingList,
    Subscriber,
    SubscriberList,
    SubscriberStatus,
)
from memberhub.models.user import User
from memberhub.schemas.campaign import (
    CampaignCreateRequest,
    CampaignListResponse,
    CampaignResponse,
    CampaignScheduleRequest,
    CampaignUpdateRequest,
)

logger = logging.getLogger(__name__)


def unsubscribe_url(subscriber_id: UUID) -> str:
    return f"{settings.PUBLIC_API_URL.rstrip('/')}/api/v1/unsubscribe/{subscriber_id}"


def render_campaign_html(content: str, subscriber_id: UUID) -> str:
    link = unsubscribe_url(subscriber_id)
    return (
        f"{content}"
        '<hr style="margin-top:32px;border:none;border-top:1px solid #e5e7eb;">'
        '<p style="font-size:12px;color:#6b7280;">'
        f'Don\'t want these emails? <a href="{link}">Unsubscribe</a>.'
        "</p>"
    )


async def campaign_recipients(db: AsyncSession, campaign: EmailCampaign) -> list[Subscriber]:
    """Subscribed subscribers of the campaign's list, or of the whole org."""
    query = select(Subscriber).where(
        Subscriber.org_id == campaign.org_id,
        Subscriber.status == SubscriberStatus.subscribed,
    )
    if campaign.mailing_list_id is not None:
        query = query.join(SubscriberList, SubscriberList.subscriber_id == Subscriber.id).where(
            SubscriberList.list_id == campaign.mailing_list_id,
            SubscriberList.status == ListSubscriptionStatus.subscribed,
        )
    result = await db.execute(query.order_by(Subscriber.email))
    return list(result.scalars().all())


async def deliver_campaign(
    db: AsyncSession,
    campaign_id: UUID,
    send: Callable[..., str] | None = None,
) -> dict[str, int]:
    """
    Mail a campaign to its recipients and record the counts.

    Individual send failures are counted as bounces and logged; the
    campaign still ends up ``sent``.
    """
    send = send or mailer.send_email
    campaign = await db.get(EmailCampaign, campaign_id)
    if campaign is None:
        logger.warning("Campaign %s vanished before delivery", campaign_id)
        return {"recipients": 0, "delivered": 0, "bounced": 0}
    if campaign.status not in (CampaignStatus.sending, CampaignStatus.scheduled):
        logger.info("Campaign %s is %s, not delivering", campaign.id, campaign.status.value)
        return {"recipients": 0, "delivered": 0, "bounced": 0}

    campaign.status = CampaignStatus.sending
    recipients = await campaign_recipients(db, campaign)

    delivered = 0
    bounced = 0
    for subscriber in recipients:
        try:
            send(
                to=subscriber.email,
                subject=campaign.subject,
                html=render_campaign_html(campaign.content, subscriber.id),
                headers={"List-Unsubscribe": f"<{unsubscribe_url(subscriber.id)}>"},
            )
            delivered += 1
        except Exception:
            bounced += 1
            logger.exception("Campaign %s failed for %s", campaign.id, subscriber.email)

    campaign.recipient_count = len(recipients)
    campaign.delivered_count = delivered
    campaign.bounced_count = bounced
    campaign.status = CampaignStatus.sent
    campaign.sent_at = utcnow()
    await db.flush()

    logger.info(
        "Campaign %s sent: %d recipients, %d delivered, %d bounced",
        campaign.id,
        len(recipients),
        delivered,
        bounced,
    )
    return {"recipients": len(recipients), "delivered": delivered, "bounced": bounced}


async def claim_due_campaigns(db: AsyncSession, now: datetime | None = None) -> list[UUID]:
    """Move scheduled campaigns that are due to ``sending`` and return their ids."""
    now = now or utcnow()
    result = await db.execute(
        select(EmailCampaign).where(
            EmailCampaign.status == CampaignStatus.scheduled,
            EmailCampaign.scheduled_at.is_not(None),
            EmailCampaign.scheduled_at <= now,
        )
    )
    due = list(result.scalars().all())
    for campaign in due:
        campaign.status = CampaignStatus.sending
    await db.flush()
    return [campaign.id for campaign in due]


class CampaignService:
    """Handles email campaigns."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def list_campaigns(self, org_id: UUID) -> CampaignListResponse:
        result = await self.db.execute(
            select(EmailCampaign)
            .where(EmailCampaign.org_id == org_id)
            .order_by(EmailCampaign.created_at.desc())
        )
        campaigns = [CampaignResponse.model_validate(c) for c in result.scalars().all()]
        return CampaignListResponse(campaigns=campaigns, total=len(campaigns))

    async def get_campaign_model(self, org_id: UUID, campaign_id: UUID) -> EmailCampaign:
        result = await self.db.execute(
            select(EmailCampaign).where(
                EmailCampaign.id == campaign_id,
                EmailCampaign.org_id == org_id,
            )
        )
        campaign = result.scalar_one_or_none()
        if campaign is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "CAMPAIGN_NOT_FOUND", "message": "Campaign not found"},
            )
        return campaign

    async def get_campaign(self, org_id: UUID, campaign_id: UUID) -> CampaignResponse:
        return CampaignResponse.model_validate(await self.get_campaign_model(org_id, campaign_id))

    async def create_campaign(
        self, org_id: UUID, data: CampaignCreateRequest, creator: User
    ) -> CampaignResponse:
        if data.mailing_list_id is not None:
            await self._check_list(org_id, data.mailing_list_id)

        campaign = EmailCampaign(
            org_id=org_id,
            status=CampaignStatus.draft,
            created_by=creator.id,
            **data.model_dump(),
        )
        self.db.add(campaign)
        return await self._save(campaign)

    async def update_campaign(
        self, org_id: UUID, campaign_id: UUID, data: CampaignUpdateRequest
    ) -> CampaignResponse:
        campaign = await self._editable(org_id, campaign_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("mailing_list_id") is not None:
            await self._check_list(org_id, changes["mailing_list_id"])

        for key, value in changes.items():
            if value is None and key != "mailing_list_id":
                continue
            setattr(campaign, key, value)
        return await self._save(campaign)

    async def delete_campaign(self, org_id: UUID, campaign_id: UUID) -> None:
        campaign = await self._editable(org_id, campaign_id)
        await self.db.delete(campaign)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Status transitions
    # -----------------------------------------------------------------------

    async def schedule(
        self, org_id: UUID, campaign_id: UUID, data: CampaignScheduleRequest
    ) -> CampaignResponse:
        campaign = await self._editable(org_id, campaign_id)
        scheduled_at = ensure_aware(data.scheduled_at)
        if scheduled_at <= utcnow():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_SCHEDULE", "message": "scheduled_at must be in the future"},
            )

        campaign.status = CampaignStatus.scheduled
        campaign.scheduled_at = scheduled_at
        return await self._save(campaign)

    async def cancel(self, org_id: UUID, campaign_id: UUID) -> CampaignResponse:
        campaign = await self._editable(org_id, campaign_id)
        campaign.status = CampaignStatus.cancelled
        return await self._save(campaign)

    async def send(self, org_id: UUID, campaign_id: UUID) -> CampaignResponse:
        """Mark as sending and queue delivery."""
        campaign = await self._editable(org_id, campaign_id)
        campaign.status = CampaignStatus.sending
        response = await self._save(campaign)

        from memberhub.workers.campaign_tasks import send_campaign
        send_campaign.delay(campaign_id=str(campaign.id))
        logger.info("Campaign %s queued for delivery", campaign.id)
        return response

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _editable(self, org_id: UUID, campaign_id: UUID) -> EmailCampaign:
        campaign = await self.get_campaign_model(org_id, campaign_id)
        if campaign.status not in EDITABLE_CAMPAIGN_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "CAMPAIGN_LOCKED",
                    "message": f"Campaign is {campaign.status.value} and can no longer be changed",
                },
            )
        return campaign

    async def _save(self, campaign: EmailCampaign) -> CampaignResponse:
        await self.db.flush()
        await self.db.refresh(campaign)
        return CampaignResponse.model_validate(campaign)

    async def _check_list(self, org_id: UUID, list_id: UUID) -> None:
        found = await self.db.scalar(
            select(MailingList.id).where(MailingList.id == list_id, MailingList.org_id == org_id)
        )
        if found is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "MAILING_LIST_NOT_FOUND", "message": "Mailing list not found"},
            )
