"""
Mailing list and subscriber business logic.

``mailing_lists.subscriber_count`` always equals the number of subscribed
rows in ``subscriber_lists`` for that list and is recomputed after every
change.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import utcnow
from memberhub.models.mailing import (
    ListSubscriptionStatus,
    MailingList,
    Subscriber,
    SubscriberList,
    SubscriberStatus,
)
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.mailing import (
    ListSubscriberAddRequest,
    MailingListCreateRequest,
    MailingListListResponse,
    MailingListResponse,
    MailingListUpdateRequest,
    MySubscriptionResponse,
    MySubscriptionsResponse,
    PublicSubscribeRequest,
    SubscriberListResponse,
    SubscriberResponse,
    UnsubscribeResponse,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared subscription helpers (also used by committees)
# ---------------------------------------------------------------------------

async def get_or_create_subscriber(
    db: AsyncSession,
    org_id: UUID,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
    source: str | None = None,
) -> Subscriber:
    """
    Find the org's subscriber for ``email`` or create one.

    A previously unsubscribed address is subscribed again.
    """
    email = email.strip().lower()
    result = await db.execute(
        select(Subscriber).where(Subscriber.org_id == org_id, Subscriber.email == email)
    )
    subscriber = result.scalar_one_or_none()

    if subscriber is None:
        subscriber = Subscriber(
            org_id=org_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            status=SubscriberStatus.subscribed,
            subscribed_at=utcnow(),
            subscription_source=source,
        )
        db.add(subscriber)
        await db.flush()
        return subscriber

    if subscriber.status != SubscriberStatus.subscribed:
        subscriber.status = SubscriberStatus.subscribed
        subscriber.subscribed_at = utcnow()
        subscriber.unsubscribed_at = None
    if first_name and not subscriber.first_name:
        subscriber.first_name = first_name
    if last_name and not subscriber.last_name:
        subscriber.last_name = last_name
    await db.flush()
    return subscriber


async def recount_list(db: AsyncSession, list_id: UUID) -> int:
    count = await db.scalar(
        select(func.count(SubscriberList.id)).where(
            SubscriberList.list_id == list_id,
            SubscriberList.status == ListSubscriptionStatus.subscribed,
        )
    )
    mailing_list = await db.get(MailingList, list_id)
    if mailing_list is not None:
        mailing_list.subscriber_count = count or 0
        await db.flush()
    return count or 0


async def subscribe_to_list(db: AsyncSession, subscriber: Subscriber, list_id: UUID) -> bool:
    """
    Subscribe to a list; re-subscribing clears unsubscribed_at.

    Returns False if the subscription was already active.
    """
    result = await db.execute(
        select(SubscriberList).where(
            SubscriberList.subscriber_id == subscriber.id,
            SubscriberList.list_id == list_id,
        )
    )
    link = result.scalar_one_or_none()

    if link is not None and link.status == ListSubscriptionStatus.subscribed:
        return False

    if link is None:
        db.add(
            SubscriberList(
                subscriber_id=subscriber.id,
                list_id=list_id,
                status=ListSubscriptionStatus.subscribed,
                subscribed_at=utcnow(),
            )
        )
    else:
        link.status = ListSubscriptionStatus.subscribed
        link.subscribed_at = utcnow()
        link.unsubscribed_at = None

    await db.flush()
    await recount_list(db, list_id)
    return True


async def unsubscribe_from_list(db: AsyncSession, subscriber_id: UUID, list_id: UUID) -> bool:
    result = await db.execute(
        select(SubscriberList).where(
            SubscriberList.subscriber_id == subscriber_id,
            SubscriberList.list_id == list_id,
            SubscriberList.status == ListSubscriptionStatus.subscribed,
        )
    )
    link = result.scalar_one_or_none()
    if link is None:
        return False

    link.status = ListSubscriptionStatus.unsubscribed
    link.unsubscribed_at = utcnow()
    await db.flush()
    await recount_list(db, list_id)
    return True


async def unsubscribe_everywhere(db: AsyncSession, subscriber: Subscriber) -> None:
    """Mark the subscriber and every one of its list subscriptions unsubscribed."""
    now = utcnow()
    subscriber.status = SubscriberStatus.unsubscribed
    subscriber.unsubscribed_at = now

    result = await db.execute(
        select(SubscriberList).where(
            SubscriberList.subscriber_id == subscriber.id,
            SubscriberList.status == ListSubscriptionStatus.subscribed,
        )
    )
    touched: list[UUID] = []
    for link in result.scalars().all():
        link.status = ListSubscriptionStatus.unsubscribed
        link.unsubscribed_at = now
        touched.append(link.list_id)

    await db.flush()
    for list_id in touched:
        await recount_list(db, list_id)


class MailingService:
    """Handles mailing lists, subscribers and member subscriptions."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Mailing lists
    # -----------------------------------------------------------------------

    async def list_lists(self, org_id: UUID) -> MailingListListResponse:
        result = await self.db.execute(
            select(MailingList).where(MailingList.org_id == org_id).order_by(MailingList.name)
        )
        lists = [MailingListResponse.model_validate(m) for m in result.scalars().all()]
        return MailingListListResponse(mailing_lists=lists, total=len(lists))

    async def get_list_model(self, org_id: UUID, list_id: UUID) -> MailingList:
        result = await self.db.execute(
            select(MailingList).where(MailingList.id == list_id, MailingList.org_id == org_id)
        )
        mailing_list = result.scalar_one_or_none()
        if mailing_list is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "MAILING_LIST_NOT_FOUND", "message": "Mailing list not found"},
            )
        return mailing_list

    async def get_list(self, org_id: UUID, list_id: UUID) -> MailingListResponse:
        return MailingListResponse.model_validate(await self.get_list_model(org_id, list_id))

    async def create_list(self, org_id: UUID, data: MailingListCreateRequest) -> MailingListResponse:
        existing = await self.db.scalar(
            select(MailingList.id).where(
                MailingList.org_id == org_id, MailingList.slug == data.slug
            )
        )
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "SLUG_TAKEN", "message": "A mailing list with this slug already exists"},
            )

        mailing_list = MailingList(org_id=org_id, subscriber_count=0, **data.model_dump())
        self.db.add(mailing_list)
        await self.db.flush()
        await self.db.refresh(mailing_list)
        return MailingListResponse.model_validate(mailing_list)

    async def update_list(
        self, org_id: UUID, list_id: UUID, data: MailingListUpdateRequest
    ) -> MailingListResponse:
        mailing_list = await self.get_list_model(org_id, list_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key != "description":
                continue
            setattr(mailing_list, key, value)
        await self.db.flush()
        await self.db.refresh(mailing_list)
        return MailingListResponse.model_validate(mailing_list)

    async def delete_list(self, org_id: UUID, list_id: UUID) -> None:
        mailing_list = await self.get_list_model(org_id, list_id)
        await self.db.delete(mailing_list)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # List subscribers (admin)
    # -----------------------------------------------------------------------

    async def list_list_subscribers(self, org_id: UUID, list_id: UUID) -> SubscriberListResponse:
        await self.get_list_model(org_id, list_id)
        result = await self.db.execute(
            select(Subscriber)
            .join(SubscriberList, SubscriberList.subscriber_id == Subscriber.id)
            .where(
                SubscriberList.list_id == list_id,
                SubscriberList.status == ListSubscriptionStatus.subscribed,
            )
            .order_by(Subscriber.email)
        )
        subscribers = [SubscriberResponse.model_validate(s) for s in result.scalars().all()]
        return SubscriberListResponse(subscribers=subscribers, total=len(subscribers))

    async def add_list_subscriber(
        self, org_id: UUID, list_id: UUID, data: ListSubscriberAddRequest
    ) -> SubscriberResponse:
        await self.get_list_model(org_id, list_id)
        subscriber = await get_or_create_subscriber(
            self.db, org_id, str(data.email), data.first_name, data.last_name, source="admin"
        )
        await subscribe_to_list(self.db, subscriber, list_id)
        await self.db.refresh(subscriber)
        return SubscriberResponse.model_validate(subscriber)

    async def remove_list_subscriber(self, org_id: UUID, list_id: UUID, subscriber_id: UUID) -> None:
        await self.get_list_model(org_id, list_id)
        if not await unsubscribe_from_list(self.db, subscriber_id, list_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "SUBSCRIPTION_NOT_FOUND", "message": "Subscriber is not on this list"},
            )

    # -----------------------------------------------------------------------
    # Subscribers (admin)
    # -----------------------------------------------------------------------

    async def list_subscribers(
        self, org_id: UUID, status_filter: str | None = None
    ) -> SubscriberListResponse:
        query = select(Subscriber).where(Subscriber.org_id == org_id)
        if status_filter:
            query = query.where(Subscriber.status == SubscriberStatus(status_filter))
        result = await self.db.execute(query.order_by(Subscriber.email))
        subscribers = [SubscriberResponse.model_validate(s) for s in result.scalars().all()]
        return SubscriberListResponse(subscribers=subscribers, total=len(subscribers))

    async def get_subscriber_model(self, org_id: UUID, subscriber_id: UUID) -> Subscriber:
        result = await self.db.execute(
            select(Subscriber).where(Subscriber.id == subscriber_id, Subscriber.org_id == org_id)
        )
        subscriber = result.scalar_one_or_none()
        if subscriber is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "SUBSCRIBER_NOT_FOUND", "message": "Subscriber not found"},
            )
        return subscriber

    async def admin_unsubscribe(self, org_id: UUID, subscriber_id: UUID) -> SubscriberResponse:
        subscriber = await self.get_subscriber_model(org_id, subscriber_id)
        await unsubscribe_everywhere(self.db, subscriber)
        await self.db.refresh(subscriber)
        return SubscriberResponse.model_validate(subscriber)

    # -----------------------------------------------------------------------
    # Public subscribe / unsubscribe
    # -----------------------------------------------------------------------

    async def public_subscribe(
        self, org: Organization, data: PublicSubscribeRequest
    ) -> SubscriberResponse:
        """
        Subscribe an address from the public form.

        Already subscribed addresses get a 409; unsubscribed ones are
        subscribed again.
        """
        mailing_list = None
        if data.list_id is not None:
            mailing_list = await self.get_list_model(org.id, data.list_id)
            if not mailing_list.is_active:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail={"code": "MAILING_LIST_NOT_FOUND", "message": "Mailing list not found"},
                )

        email = str(data.email).lower()
        result = await self.db.execute(
            select(Subscriber).where(Subscriber.org_id == org.id, Subscriber.email == email)
        )
        existing = result.scalar_one_or_none()

        if existing is not None and existing.status == SubscriberStatus.subscribed:
            on_list = mailing_list is None or await self.db.scalar(
                select(SubscriberList.id).where(
                    SubscriberList.subscriber_id == existing.id,
                    SubscriberList.list_id == mailing_list.id,
                    SubscriberList.status == ListSubscriptionStatus.subscribed,
                )
            )
            if on_list:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail={"code": "ALREADY_SUBSCRIBED", "message": "This email is already subscribed"},
                )

        subscriber = await get_or_create_subscriber(
            self.db, org.id, email, data.first_name, data.last_name, source="website"
        )
        if mailing_list is not None:
            await subscribe_to_list(self.db, subscriber, mailing_list.id)

        await self.db.refresh(subscriber)
        logger.info("Public subscription %s to org %s", subscriber.id, org.slug)
        return SubscriberResponse.model_validate(subscriber)

    async def public_unsubscribe(self, subscriber_id: UUID) -> UnsubscribeResponse:
        subscriber = await self.db.get(Subscriber, subscriber_id)
        if subscriber is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "SUBSCRIBER_NOT_FOUND", "message": "Subscriber not found"},
            )

        await unsubscribe_everywhere(self.db, subscriber)
        logger.info("Subscriber %s unsubscribed", subscriber.id)
        return UnsubscribeResponse(
            email=subscriber.email,
            status=SubscriberStatus.unsubscribed.value,
            message="You have been unsubscribed from all mailing lists",
        )

    # -----------------------------------------------------------------------
    # Member subscriptions
    # -----------------------------------------------------------------------

    async def my_subscriptions(self, org_id: UUID, profile: Profile) -> MySubscriptionsResponse:
        lists = await self.db.execute(
            select(MailingList)
            .where(MailingList.org_id == org_id, MailingList.is_active.is_(True))
            .order_by(MailingList.name)
        )
        subscribed = await self._subscribed_list_ids(org_id, profile.email)
        return MySubscriptionsResponse(
            subscriptions=[
                MySubscriptionResponse(
                    list_id=m.id,
                    name=m.name,
                    description=m.description,
                    subscribed=m.id in subscribed,
                )
                for m in lists.scalars().all()
            ]
        )

    async def toggle_my_subscription(
        self, org_id: UUID, profile: Profile, list_id: UUID
    ) -> MySubscriptionResponse:
        mailing_list = await self.get_list_model(org_id, list_id)
        subscribed = await self._subscribed_list_ids(org_id, profile.email)

        if list_id in subscribed:
            subscriber = await get_or_create_subscriber(self.db, org_id, profile.email)
            await unsubscribe_from_list(self.db, subscriber.id, list_id)
            now_subscribed = False
        else:
            subscriber = await get_or_create_subscriber(
                self.db,
                org_id,
                profile.email,
                profile.first_name,
                profile.last_name,
                source="member",
            )
            await subscribe_to_list(self.db, subscriber, list_id)
            now_subscribed = True

        return MySubscriptionResponse(
            list_id=mailing_list.id,
            name=mailing_list.name,
            description=mailing_list.description,
            subscribed=now_subscribed,
        )

    async def _subscribed_list_ids(self, org_id: UUID, email: str) -> set[UUID]:
        result = await self.db.execute(
            select(SubscriberList.list_id)
            .join(Subscriber, SubscriberList.subscriber_id == Subscriber.id)
            .where(
                Subscriber.org_id == org_id,
                Subscriber.email == email.lower(),
                Subscriber.status == SubscriberStatus.subscribed,
                SubscriberList.status == ListSubscriptionStatus.subscribed,
            )
        )
        return set(result.scalars().all())
