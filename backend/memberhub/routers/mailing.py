"""
Mailing list and subscriber endpoints.

Includes the public subscribe form and the unsubscribe link that every
campaign email carries.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import (
    get_active_profile,
    get_public_org,
    get_redis,
    rate_limit,
    require_admin,
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
from memberhub.services.mailing_service import MailingService

router = APIRouter()


def get_mailing_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> MailingService:
    return MailingService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Mailing lists (admin)
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/mailing-lists",
    response_model=MailingListListResponse,
    summary="List mailing lists",
)
async def list_mailing_lists(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> MailingListListResponse:
    org, _ = org_and_profile
    return await service.list_lists(org.id)


@router.post(
    "/organizations/{slug}/mailing-lists",
    response_model=MailingListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a mailing list",
)
async def create_mailing_list(
    data: MailingListCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> MailingListResponse:
    org, _ = org_and_profile
    return await service.create_list(org.id, data)


@router.get(
    "/organizations/{slug}/mailing-lists/{list_id}",
    response_model=MailingListResponse,
    summary="Get a mailing list",
)
async def get_mailing_list(
    list_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> MailingListResponse:
    org, _ = org_and_profile
    return await service.get_list(org.id, list_id)


@router.patch(
    "/organizations/{slug}/mailing-lists/{list_id}",
    response_model=MailingListResponse,
    summary="Update a mailing list",
)
async def update_mailing_list(
    list_id: UUID,
    data: MailingListUpdateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> MailingListResponse:
    org, _ = org_and_profile
    return await service.update_list(org.id, list_id, data)


@router.delete(
    "/organizations/{slug}/mailing-lists/{list_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a mailing list",
)
async def delete_mailing_list(
    list_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_list(org.id, list_id)


@router.get(
    "/organizations/{slug}/mailing-lists/{list_id}/subscribers",
    response_model=SubscriberListResponse,
    summary="Subscribers of a list",
)
async def list_list_subscribers(
    list_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> SubscriberListResponse:
    org, _ = org_and_profile
    return await service.list_list_subscribers(org.id, list_id)


@router.post(
    "/organizations/{slug}/mailing-lists/{list_id}/subscribers",
    response_model=SubscriberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an address to a list",
)
async def add_list_subscriber(
    list_id: UUID,
    data: ListSubscriberAddRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> SubscriberResponse:
    org, _ = org_and_profile
    return await service.add_list_subscriber(org.id, list_id, data)


@router.delete(
    "/organizations/{slug}/mailing-lists/{list_id}/subscribers/{subscriber_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an address from a list",
)
async def remove_list_subscriber(
    list_id: UUID,
    subscriber_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> None:
    org, _ = org_and_profile
    await service.remove_list_subscriber(org.id, list_id, subscriber_id)


# ---------------------------------------------------------------------------
# Subscribers (admin)
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/subscribers",
    response_model=SubscriberListResponse,
    summary="List subscribers",
)
async def list_subscribers(
    status_filter: str | None = Query(
        default=None, alias="status", pattern="^(subscribed|unsubscribed|bounced)$"
    ),
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> SubscriberListResponse:
    org, _ = org_and_profile
    return await service.list_subscribers(org.id, status_filter)


@router.post(
    "/organizations/{slug}/subscribers/{subscriber_id}/unsubscribe",
    response_model=SubscriberResponse,
    summary="Unsubscribe an address from everything",
)
async def admin_unsubscribe(
    subscriber_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: MailingService = Depends(get_mailing_service),
) -> SubscriberResponse:
    org, _ = org_and_profile
    return await service.admin_unsubscribe(org.id, subscriber_id)


# ---------------------------------------------------------------------------
# Member subscriptions
# ---------------------------------------------------------------------------

@router.get(
    "/organizations/{slug}/me/subscriptions",
    response_model=MySubscriptionsResponse,
    summary="My mailing list subscriptions",
)
async def my_subscriptions(
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: MailingService = Depends(get_mailing_service),
) -> MySubscriptionsResponse:
    org, profile = org_and_profile
    return await service.my_subscriptions(org.id, profile)


@router.post(
    "/organizations/{slug}/me/subscriptions/{list_id}/toggle",
    response_model=MySubscriptionResponse,
    summary="Subscribe to or leave a mailing list",
)
async def toggle_my_subscription(
    list_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    service: MailingService = Depends(get_mailing_service),
) -> MySubscriptionResponse:
    org, profile = org_and_profile
    return await service.toggle_my_subscription(org.id, profile, list_id)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@router.post(
    "/organizations/{slug}/subscribe",
    response_model=SubscriberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe from the public website",
    dependencies=[Depends(rate_limit("subscribe", per_minute=10))],
)
async def public_subscribe(
    data: PublicSubscribeRequest,
    org: Organization = Depends(get_public_org),
    service: MailingService = Depends(get_mailing_service),
) -> SubscriberResponse:
    """
    Subscribe an email address.

    Already subscribed addresses get a 409; unsubscribed ones are
    subscribed again.
    """
    return await service.public_subscribe(org, data)


@router.get(
    "/unsubscribe/{subscriber_id}",
    response_model=UnsubscribeResponse,
    summary="Unsubscribe link target",
)
async def unsubscribe_link(
    subscriber_id: UUID,
    service: MailingService = Depends(get_mailing_service),
) -> UnsubscribeResponse:
    return await service.public_unsubscribe(subscriber_id)


@router.post(
    "/unsubscribe/{subscriber_id}",
    response_model=UnsubscribeResponse,
    summary="One-click unsubscribe",
)
async def unsubscribe_one_click(
    subscriber_id: UUID,
    service: MailingService = Depends(get_mailing_service),
) -> UnsubscribeResponse:
    return await service.public_unsubscribe(subscriber_id)
