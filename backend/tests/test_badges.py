"""
Tests for badge definitions and awards.
"""

import pytest


def badges_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/badges{suffix}"


async def create_badge(client, org, admin, **overrides) -> dict:
    body = {"name": "Peal Ringer", "icon": "bell", "color": "#f59e0b"}
    body.update(overrides)
    resp = await client.post(badges_url(org), json=body, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_inactive_badges_hidden_from_members(client, org, admin, member):
    await create_badge(client, org, admin)
    retired = await create_badge(client, org, admin, name="Retired")
    resp = await client.post(badges_url(org, f"/{retired['id']}/toggle"), headers=admin.headers)
    assert resp.json()["is_active"] is False

    resp = await client.get(badges_url(org), headers=member.headers)
    assert [b["name"] for b in resp.json()["badges"]] == ["Peal Ringer"]

    resp = await client.get(badges_url(org), headers=admin.headers)
    assert resp.json()["total"] == 2


@pytest.mark.asyncio
async def test_award_and_revoke(client, org, admin, member):
    badge = await create_badge(client, org, admin)
    awards_url = badges_url(org, f"/{badge['id']}/awards")

    resp = await client.post(
        awards_url,
        json={"profile_id": str(member.profile.id), "notes": "First quarter peal", "meta": {"peal": 1}},
        headers=admin.headers,
    )
    assert resp.status_code == 201
    award = resp.json()
    assert award["badge_name"] == "Peal Ringer"
    assert award["member_email"] == "member@example.com"
    assert award["awarded_by"] == str(admin.user.id)
    assert award["meta"] == {"peal": 1}

    dup = await client.post(awards_url, json={"profile_id": str(member.profile.id)}, headers=admin.headers)
    assert dup.status_code == 409
    assert dup.json()["detail"]["code"] == "ALREADY_AWARDED"

    mine = await client.get(f"/api/v1/organizations/{org.slug}/me/badges", headers=member.headers)
    assert [a["badge_name"] for a in mine.json()["awards"]] == ["Peal Ringer"]

    holders = await client.get(awards_url, headers=admin.headers)
    assert [a["member_name"] for a in holders.json()["awards"]] == ["Mia Member"]

    resp = await client.delete(f"{awards_url}/{member.profile.id}", headers=admin.headers)
    assert resp.status_code == 204
    resp = await client.delete(f"{awards_url}/{member.profile.id}", headers=admin.headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "AWARD_NOT_FOUND"


@pytest.mark.asyncio
async def test_inactive_badge_cannot_be_awarded(client, org, admin, member):
    badge = await create_badge(client, org, admin, is_active=False)
    resp = await client.post(
        badges_url(org, f"/{badge['id']}/awards"),
        json={"profile_id": str(member.profile.id)},
        headers=admin.headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "BADGE_INACTIVE"


@pytest.mark.asyncio
async def test_profile_badges_skip_deactivated(client, org, admin, member):
    badge = await create_badge(client, org, admin)
    await client.post(
        badges_url(org, f"/{badge['id']}/awards"),
        json={"profile_id": str(member.profile.id)},
        headers=admin.headers,
    )
    await client.post(badges_url(org, f"/{badge['id']}/toggle"), headers=admin.headers)

    resp = await client.get(
        f"/api/v1/organizations/{org.slug}/profiles/{member.profile.id}/badges",
        headers=admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["total"] == 0


@pytest.mark.asyncio
async def test_member_cannot_award(client, org, admin, member):
    badge = await create_badge(client, org, admin)
    resp = await client.post(
        badges_url(org, f"/{badge['id']}/awards"),
        json={"profile_id": str(member.profile.id)},
        headers=member.headers,
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_update_badge(client, org, admin):
    badge = await create_badge(client, org, admin)
    resp = await client.patch(
        badges_url(org, f"/{badge['id']}"),
        json={"badge_type": "milestone", "criteria": {"peals": 10}, "icon": None},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["badge_type"] == "milestone"
    assert body["criteria"] == {"peals": 10}
    assert body["icon"] is None
    assert body["name"] == "Peal Ringer"
