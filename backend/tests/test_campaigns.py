"""
Tests for email campaigns: editing rules, scheduling and delivery.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from memberhub.models import CampaignStatus, EmailCampaign, MailingList, SubscriberStatus
from memberhub.services.campaign_service import (
    claim_due_campaigns,
    deliver_campaign,
    render_campaign_html,
    unsubscribe_url,
)
from memberhub.services.mailing_service import get_or_create_subscriber, subscribe_to_list


def campaigns_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/campaigns{suffix}"


async def create_campaign(client, org, admin, **overrides) -> dict:
    body = {"title": "Autumn news", "subject": "Autumn newsletter", "content": "<p>Hello</p>"}
    body.update(overrides)
    resp = await client.post(campaigns_url(org), json=body, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def newsletter(db, org) -> MailingList:
    mailing_list = MailingList(org_id=org.id, name="Newsletter", slug="newsletter", subscriber_count=0)
    db.add(mailing_list)
    await db.flush()

    for email in ("a@example.com", "b@example.com"):
        subscriber = await get_or_create_subscriber(db, org.id, email)
        await subscribe_to_list(db, subscriber, mailing_list.id)
    # On the org but not on the list
    await get_or_create_subscriber(db, org.id, "c@example.com")
    # On the list but unsubscribed globally
    gone = await get_or_create_subscriber(db, org.id, "gone@example.com")
    await subscribe_to_list(db, gone, mailing_list.id)
    gone.status = SubscriberStatus.unsubscribed

    await db.commit()
    return mailing_list


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def test_rendered_html_carries_unsubscribe_link():
    html = render_campaign_html("<p>Hi</p>", "3f1c6b52-0d55-4f33-9d0e-4d3b0c1d2e3f")
    assert html.startswith("<p>Hi</p>")
    assert "/api/v1/unsubscribe/3f1c6b52-0d55-4f33-9d0e-4d3b0c1d2e3f" in html
    assert unsubscribe_url("x").endswith("/api/v1/unsubscribe/x")


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_edit_draft(client, org, admin, newsletter):
    campaign = await create_campaign(client, org, admin, mailing_list_id=str(newsletter.id))
    assert campaign["status"] == "draft"
    assert campaign["mailing_list_id"] == str(newsletter.id)

    resp = await client.patch(
        campaigns_url(org, f"/{campaign['id']}"),
        json={"subject": "Updated subject", "mailing_list_id": None},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["subject"] == "Updated subject"
    assert resp.json()["mailing_list_id"] is None


@pytest.mark.asyncio
async def test_unknown_list_rejected(client, org, admin):
    resp = await client.post(
        campaigns_url(org),
        json={
            "title": "x",
            "subject": "x",
            "content": "x",
            "mailing_list_id": "00000000-0000-0000-0000-000000000000",
        },
        headers=admin.headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "MAILING_LIST_NOT_FOUND"


@pytest.mark.asyncio
async def test_schedule_requires_future_time(client, org, admin):
    campaign = await create_campaign(client, org, admin)
    url = campaigns_url(org, f"/{campaign['id']}/schedule")

    past = (datetime.now(UTC) - timedelta(hours=1)).isoformat()
    resp = await client.post(url, json={"scheduled_at": past}, headers=admin.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_SCHEDULE"

    future = (datetime.now(UTC) + timedelta(days=1)).isoformat()
    resp = await client.post(url, json={"scheduled_at": future}, headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "scheduled"


@pytest.mark.asyncio
async def test_send_queues_delivery_and_locks(client, org, admin, queued):
    campaign = await create_campaign(client, org, admin)

    resp = await client.post(campaigns_url(org, f"/{campaign['id']}/send"), headers=admin.headers)
    assert resp.status_code == 202
    assert resp.json()["status"] == "sending"
    assert queued.named("send_campaign") == [{"campaign_id": campaign["id"]}]

    for method, suffix in (("patch", ""), ("delete", ""), ("post", "/cancel")):
        kwargs = {"headers": admin.headers}
        if method == "patch":
            kwargs["json"] = {"title": "Too late"}
        resp = await getattr(client, method)(campaigns_url(org, f"/{campaign['id']}{suffix}"), **kwargs)
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "CAMPAIGN_LOCKED"


@pytest.mark.asyncio
async def test_cancel_and_delete_draft(client, org, admin):
    first = await create_campaign(client, org, admin)
    second = await create_campaign(client, org, admin, title="Second")

    resp = await client.post(campaigns_url(org, f"/{first['id']}/cancel"), headers=admin.headers)
    assert resp.json()["status"] == "cancelled"

    resp = await client.delete(campaigns_url(org, f"/{second['id']}"), headers=admin.headers)
    assert resp.status_code == 204

    listing = await client.get(campaigns_url(org), headers=admin.headers)
    assert [c["id"] for c in listing.json()["campaigns"]] == [first["id"]]


@pytest.mark.asyncio
async def test_member_cannot_see_campaigns(client, org, member):
    resp = await client.get(campaigns_url(org), headers=member.headers)
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_deliver_to_list_counts_bounces(db, org, newsletter):
    campaign = EmailCampaign(
        org_id=org.id,
        mailing_list_id=newsletter.id,
        title="News",
        subject="News",
        content="<p>News</p>",
        status=CampaignStatus.sending,
    )
    db.add(campaign)
    await db.commit()

    sent: list[dict] = []

    def fake_send(**kwargs):
        if kwargs["to"] == "b@example.com":
            raise RuntimeError("mailbox full")
        sent.append(kwargs)
        return "msg-1"

    counts = await deliver_campaign(db, campaign.id, send=fake_send)
    assert counts == {"recipients": 2, "delivered": 1, "bounced": 1}

    assert [m["to"] for m in sent] == ["a@example.com"]
    assert sent[0]["headers"]["List-Unsubscribe"].startswith("<")
    assert "Unsubscribe" in sent[0]["html"]

    await db.refresh(campaign)
    assert campaign.status == CampaignStatus.sent
    assert campaign.sent_at is not None
    assert (campaign.recipient_count, campaign.delivered_count, campaign.bounced_count) == (2, 1, 1)


@pytest.mark.asyncio
async def test_deliver_without_list_goes_to_whole_org(db, org, newsletter):
    campaign = EmailCampaign(org_id=org.id, title="All", subject="All", content="x", status=CampaignStatus.sending)
    db.add(campaign)
    await db.commit()

    sent: list[str] = []
    counts = await deliver_campaign(db, campaign.id, send=lambda **kw: sent.append(kw["to"]))
    assert counts["recipients"] == 3
    assert sent == ["a@example.com", "b@example.com", "c@example.com"]


@pytest.mark.asyncio
async def test_deliver_skips_cancelled(db, org):
    campaign = EmailCampaign(org_id=org.id, title="x", subject="x", content="x", status=CampaignStatus.cancelled)
    db.add(campaign)
    await db.commit()

    counts = await deliver_campaign(db, campaign.id, send=lambda **kw: pytest.fail("sent"))
    assert counts == {"recipients": 0, "delivered": 0, "bounced": 0}


def scheduled_campaign(org, title: str, when: datetime) -> EmailCampaign:
    return EmailCampaign(
        org_id=org.id,
        title=title,
        subject=title,
        content="x",
        status=CampaignStatus.scheduled,
        scheduled_at=when,
    )


@pytest.mark.asyncio
async def test_claim_due_campaigns(db, org):
    now = datetime.now(UTC)
    due = scheduled_campaign(org, "due", now - timedelta(minutes=5))
    later = scheduled_campaign(org, "later", now + timedelta(hours=5))
    db.add_all([due, later])
    await db.commit()

    assert await claim_due_campaigns(db, now=now) == [due.id]
    await db.refresh(later)
    assert due.status == CampaignStatus.sending
    assert later.status == CampaignStatus.scheduled
