"""
Tests for mailing lists, subscribers and the public subscribe and
unsubscribe endpoints.
"""

import pytest


def lists_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/mailing-lists{suffix}"


async def create_list(client, org, admin, slug: str = "newsletter", **overrides) -> dict:
    body = {"name": slug.title(), "slug": slug}
    body.update(overrides)
    resp = await client.post(lists_url(org), json=body, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def list_count(client, org, admin, list_id: str) -> int:
    resp = await client.get(lists_url(org, f"/{list_id}"), headers=admin.headers)
    return resp.json()["subscriber_count"]


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_list_and_duplicate_slug(client, org, admin):
    created = await create_list(client, org, admin)
    assert created["subscriber_count"] == 0

    resp = await client.post(
        lists_url(org), json={"name": "Other", "slug": "newsletter"}, headers=admin.headers
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "SLUG_TAKEN"


@pytest.mark.asyncio
async def test_member_cannot_manage_lists(client, org, member):
    resp = await client.get(lists_url(org), headers=member.headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_adds_and_removes_subscribers(client, org, admin):
    newsletter = await create_list(client, org, admin)
    url = lists_url(org, f"/{newsletter['id']}/subscribers")

    resp = await client.post(url, json={"email": "Reader@Example.com", "first_name": "Rita"}, headers=admin.headers)
    assert resp.status_code == 201
    subscriber = resp.json()
    assert subscriber["email"] == "reader@example.com"
    assert subscriber["subscription_source"] == "admin"

    # Adding twice keeps a single subscription
    await client.post(url, json={"email": "reader@example.com"}, headers=admin.headers)
    assert await list_count(client, org, admin, newsletter["id"]) == 1

    resp = await client.delete(f"{url}/{subscriber['id']}", headers=admin.headers)
    assert resp.status_code == 204
    assert await list_count(client, org, admin, newsletter["id"]) == 0

    resp = await client.delete(f"{url}/{subscriber['id']}", headers=admin.headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "SUBSCRIPTION_NOT_FOUND"


# ---------------------------------------------------------------------------
# Public subscribe / unsubscribe
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_public_subscribe(client, org, admin):
    newsletter = await create_list(client, org, admin)
    url = f"/api/v1/organizations/{org.slug}/subscribe"

    resp = await client.post(url, json={"email": "fan@example.com", "list_id": newsletter["id"]})
    assert resp.status_code == 201
    assert resp.json()["subscription_source"] == "website"
    assert await list_count(client, org, admin, newsletter["id"]) == 1

    again = await client.post(url, json={"email": "fan@example.com", "list_id": newsletter["id"]})
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "ALREADY_SUBSCRIBED"


@pytest.mark.asyncio
async def test_public_subscribe_is_rate_limited(client, org, admin, monkeypatch):
    # Pin the clock so all attempts land in one window
    monkeypatch.setattr("memberhub.core.dependencies.time.time", lambda: 1_800_000_000.0)
    newsletter = await create_list(client, org, admin)
    url = f"/api/v1/organizations/{org.slug}/subscribe"

    codes = [
        (await client.post(url, json={"email": f"fan{i}@example.com", "list_id": newsletter["id"]})).status_code
        for i in range(11)
    ]
    assert codes[:10] == [201] * 10
    assert codes[10] == 429


@pytest.mark.asyncio
async def test_public_subscribe_to_inactive_list(client, org, admin):
    hidden = await create_list(client, org, admin, slug="hidden", is_active=False)
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/subscribe",
        json={"email": "fan@example.com", "list_id": hidden["id"]},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unsubscribe_link_leaves_every_list(client, org, admin):
    first = await create_list(client, org, admin, slug="news")
    second = await create_list(client, org, admin, slug="events")
    for mailing_list in (first, second):
        resp = await client.post(
            lists_url(org, f"/{mailing_list['id']}/subscribers"),
            json={"email": "fan@example.com"},
            headers=admin.headers,
        )
    subscriber_id = resp.json()["id"]

    resp = await client.get(f"/api/v1/unsubscribe/{subscriber_id}")
    assert resp.status_code == 200
    assert resp.json()["status"] == "unsubscribed"
    assert await list_count(client, org, admin, first["id"]) == 0
    assert await list_count(client, org, admin, second["id"]) == 0

    resp = await client.get(
        f"/api/v1/organizations/{org.slug}/subscribers",
        params={"status": "unsubscribed"},
        headers=admin.headers,
    )
    assert [s["email"] for s in resp.json()["subscribers"]] == ["fan@example.com"]

    # Subscribing again from the public form re-activates the address
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/subscribe",
        json={"email": "fan@example.com", "list_id": first["id"]},
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == "subscribed"
    assert resp.json()["unsubscribed_at"] is None


@pytest.mark.asyncio
async def test_one_click_unsubscribe_unknown(client):
    resp = await client.post("/api/v1/unsubscribe/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "SUBSCRIBER_NOT_FOUND"


# ---------------------------------------------------------------------------
# Member subscriptions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_member_toggles_subscription(client, org, admin, member):
    newsletter = await create_list(client, org, admin)
    await create_list(client, org, admin, slug="archive", is_active=False)

    resp = await client.get(f"/api/v1/organizations/{org.slug}/me/subscriptions", headers=member.headers)
    assert resp.status_code == 200
    assert resp.json()["subscriptions"] == [
        {
            "list_id": newsletter["id"],
            "name": "Newsletter",
            "description": None,
            "subscribed": False,
        }
    ]

    toggle = f"/api/v1/organizations/{org.slug}/me/subscriptions/{newsletter['id']}/toggle"
    resp = await client.post(toggle, headers=member.headers)
    assert resp.json()["subscribed"] is True
    assert await list_count(client, org, admin, newsletter["id"]) == 1

    resp = await client.post(toggle, headers=member.headers)
    assert resp.json()["subscribed"] is False
    assert await list_count(client, org, admin, newsletter["id"]) == 0
