"""
Tests for committees and their mailing list sync.
"""

import pytest

from conftest import make_actor, make_org


def committees_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/committees{suffix}"


async def create_committee(client, org, admin, **overrides) -> dict:
    body = {"name": "Tower Committee", "slug": "tower"}
    body.update(overrides)
    resp = await client.post(committees_url(org), json=body, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_and_list(client, org, admin, member):
    created = await create_committee(client, org, admin)
    assert created["member_count"] == 0

    resp = await client.get(committees_url(org), headers=member.headers)
    assert resp.status_code == 200
    assert [c["slug"] for c in resp.json()["committees"]] == ["tower"]

    dup = await client.post(
        committees_url(org), json={"name": "Again", "slug": "tower"}, headers=admin.headers
    )
    assert dup.status_code == 409
    assert dup.json()["detail"]["code"] == "SLUG_TAKEN"


@pytest.mark.asyncio
async def test_member_cannot_create(client, org, member):
    resp = await client.post(
        committees_url(org), json={"name": "Mine", "slug": "mine"}, headers=member.headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_unknown_mailing_list(client, org, admin):
    resp = await client.post(
        committees_url(org),
        json={"name": "Tower", "slug": "tower", "mailing_list_id": "00000000-0000-0000-0000-000000000000"},
        headers=admin.headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "MAILING_LIST_NOT_FOUND"


@pytest.mark.asyncio
async def test_members_roles_and_counts(client, org, admin, member):
    committee = await create_committee(client, org, admin)
    members_url = committees_url(org, f"/{committee['id']}/members")

    resp = await client.post(
        members_url, json={"profile_id": str(member.profile.id), "role": "chair"}, headers=admin.headers
    )
    assert resp.status_code == 201
    seat = resp.json()
    assert seat["role"] == "chair"
    assert seat["name"] == "Mia Member"

    dup = await client.post(members_url, json={"profile_id": str(member.profile.id)}, headers=admin.headers)
    assert dup.status_code == 409
    assert dup.json()["detail"]["code"] == "ALREADY_MEMBER"

    resp = await client.patch(f"{members_url}/{seat['id']}", json={"role": "treasurer"}, headers=admin.headers)
    assert resp.json()["role"] == "treasurer"

    detail = await client.get(committees_url(org, f"/{committee['id']}"), headers=member.headers)
    assert detail.json()["member_count"] == 1
    assert [m["email"] for m in detail.json()["members"]] == ["member@example.com"]

    resp = await client.delete(f"{members_url}/{seat['id']}", headers=admin.headers)
    assert resp.status_code == 204
    detail = await client.get(committees_url(org, f"/{committee['id']}"), headers=member.headers)
    assert detail.json()["member_count"] == 0


@pytest.mark.asyncio
async def test_profile_from_other_org_rejected(client, db, org, admin):
    committee = await create_committee(client, org, admin)
    choir = await make_org(db, slug="choir", name="Choir")
    outsider = await make_actor(db, choir, "singer@example.com")

    resp = await client.post(
        committees_url(org, f"/{committee['id']}/members"),
        json={"profile_id": str(outsider.profile.id)},
        headers=admin.headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "PROFILE_NOT_FOUND"


@pytest.mark.asyncio
async def test_committee_members_follow_mailing_list(client, org, admin, member):
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/mailing-lists",
        json={"name": "Tower", "slug": "tower"},
        headers=admin.headers,
    )
    list_id = resp.json()["id"]
    committee = await create_committee(client, org, admin, mailing_list_id=list_id)
    members_url = committees_url(org, f"/{committee['id']}/members")
    list_url = f"/api/v1/organizations/{org.slug}/mailing-lists/{list_id}/subscribers"

    seat = await client.post(members_url, json={"profile_id": str(member.profile.id)}, headers=admin.headers)
    subscribers = await client.get(list_url, headers=admin.headers)
    assert [s["email"] for s in subscribers.json()["subscribers"]] == ["member@example.com"]
    assert subscribers.json()["subscribers"][0]["subscription_source"] == "committee"

    await client.delete(f"{members_url}/{seat.json()['id']}", headers=admin.headers)
    subscribers = await client.get(list_url, headers=admin.headers)
    assert subscribers.json()["total"] == 0


@pytest.mark.asyncio
async def test_delete_committee(client, org, admin, member):
    committee = await create_committee(client, org, admin)
    resp = await client.delete(committees_url(org, f"/{committee['id']}"), headers=admin.headers)
    assert resp.status_code == 204

    resp = await client.get(committees_url(org, f"/{committee['id']}"), headers=member.headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "COMMITTEE_NOT_FOUND"
