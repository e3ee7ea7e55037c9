"""
Tests for profile management: own profile, approval workflow and the
admin safeguards.
"""

import csv
import io

import pytest
from fastapi import HTTPException

from conftest import make_actor, make_org
from memberhub.models import ProfileRole, ProfileStatus
from memberhub.schemas.profile import ProfileApproveRequest
from memberhub.services.profile_service import ProfileService


def profiles_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/profiles{suffix}"


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_pending_member_sees_own_profile(client, db, org):
    pending = await make_actor(db, org, "pat@example.com", status=ProfileStatus.pending)

    resp = await client.get(f"/api/v1/organizations/{org.slug}/me", headers=pending.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"

    # ...but not anything that needs an approved profile
    resp = await client.get(f"/api/v1/organizations/{org.slug}/renewal", headers=pending.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "PROFILE_NOT_ACTIVE"


@pytest.mark.asyncio
async def test_update_own_contact_details(client, org, member):
    resp = await client.patch(
        f"/api/v1/organizations/{org.slug}/me",
        json={"phone": "+44 1234 567890", "address": {"city": "York"}},
        headers=member.headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["phone"] == "+44 1234 567890"
    assert body["address"] == {"city": "York"}
    assert body["role"] == "member"


@pytest.mark.asyncio
async def test_member_cannot_change_own_role(client, org, member):
    resp = await client.patch(
        f"/api/v1/organizations/{org.slug}/me",
        json={"role": "admin"},
        headers=member.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "member"


@pytest.mark.asyncio
async def test_outsider_is_not_a_member(client, db, org):
    choir = await make_org(db, slug="choir", name="Choir")
    other_org_actor = await make_actor(db, choir, "stranger@example.com")
    resp = await client.get(f"/api/v1/organizations/{org.slug}/me", headers=other_org_actor.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_A_MEMBER"


# ---------------------------------------------------------------------------
# Listing and search
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_filters_by_status_and_search(client, db, org, admin, member):
    await make_actor(db, org, "pat@example.com", status=ProfileStatus.pending, first_name="Pat", last_name="Pending")

    resp = await client.get(profiles_url(org), headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 3

    resp = await client.get(profiles_url(org), params={"status": "pending"}, headers=admin.headers)
    assert [p["email"] for p in resp.json()["profiles"]] == ["pat@example.com"]

    resp = await client.get(profiles_url(org), params={"search": "MIA"}, headers=admin.headers)
    assert [p["email"] for p in resp.json()["profiles"]] == ["member@example.com"]

    resp = await client.get(profiles_url(org), params={"status": "bogus"}, headers=admin.headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_member_cannot_list_profiles(client, org, member):
    resp = await client.get(profiles_url(org), headers=member.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "INSUFFICIENT_ROLE"


@pytest.mark.asyncio
async def test_export_members_csv(client, org, admin, member):
    resp = await client.get(profiles_url(org, "/export"), headers=admin.headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "bell-ringers-members.csv" in resp.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["Name", "Email", "Phone", "Role", "Status", "Active", "Joined Date"]
    assert [row[1] for row in rows[1:]] == ["admin@example.com", "member@example.com"]
    assert rows[1][3] == "admin"
    assert rows[2][5] == "Yes"


@pytest.mark.asyncio
async def test_export_neutralises_formula_cells(client, db, org, admin):
    sneaky = await make_actor(db, org, "sneaky@example.com", first_name="=HYPERLINK(\"x\")", last_name="Zed")
    sneaky.profile.phone = "+44 1904 000000"
    await db.commit()

    resp = await client.get(profiles_url(org, "/export"), headers=admin.headers)
    row = list(csv.reader(io.StringIO(resp.text)))[-1]
    assert row[0] == "'=HYPERLINK(\"x\") Zed"
    assert row[1] == "sneaky@example.com"
    assert row[2] == "'+44 1904 000000"


# ---------------------------------------------------------------------------
# Approval workflow
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_approve_pending_profile(client, db, org, admin):
    pending = await make_actor(db, org, "pat@example.com", status=ProfileStatus.pending)

    resp = await client.post(
        profiles_url(org, f"/{pending.profile.id}/approve"),
        json={},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "active"
    assert body["is_active"] is True
    assert body["role"] == "member"
    assert body["status_updated_at"] is not None


@pytest.mark.asyncio
async def test_reject_keeps_note(client, db, org, admin):
    pending = await make_actor(db, org, "pat@example.com", status=ProfileStatus.pending)

    resp = await client.post(
        profiles_url(org, f"/{pending.profile.id}/reject"),
        json={"rejection_note": "Not a local resident"},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["is_active"] is False
    assert resp.json()["rejection_note"] == "Not a local resident"

    # Approving later clears the note
    resp = await client.post(
        profiles_url(org, f"/{pending.profile.id}/approve"),
        json={"role": "admin"},
        headers=admin.headers,
    )
    assert resp.json()["rejection_note"] is None
    assert resp.json()["role"] == "admin"


@pytest.mark.asyncio
async def test_toggle_active(client, org, admin, member):
    url = profiles_url(org, f"/{member.profile.id}/toggle-active")

    resp = await client.post(url, headers=admin.headers)
    assert resp.json()["is_active"] is False

    # A disabled member loses access to member endpoints
    resp = await client.get(f"/api/v1/organizations/{org.slug}/renewal", headers=member.headers)
    assert resp.status_code == 403

    resp = await client.post(url, headers=admin.headers)
    assert resp.json()["is_active"] is True


@pytest.mark.asyncio
async def test_unknown_profile(client, org, admin):
    resp = await client.post(
        profiles_url(org, "/00000000-0000-0000-0000-000000000000/approve"),
        json={},
        headers=admin.headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "PROFILE_NOT_FOUND"


# ---------------------------------------------------------------------------
# Admin safeguards
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,suffix,body",
    [
        ("post", "/toggle-active", None),
        ("post", "/reject", {}),
        ("patch", "", {"role": "member"}),
        ("delete", "", None),
    ],
)
async def test_admin_cannot_act_on_self(client, org, admin, method, suffix, body):
    url = profiles_url(org, f"/{admin.profile.id}{suffix}")
    kwargs = {"headers": admin.headers}
    if body is not None:
        kwargs["json"] = body

    resp = await getattr(client, method)(url, **kwargs)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "CANNOT_MODIFY_SELF"


@pytest.mark.asyncio
async def test_admin_can_demote_another_admin(client, db, org, admin):
    second = await make_actor(db, org, "second@example.com", ProfileRole.admin)

    resp = await client.patch(
        profiles_url(org, f"/{second.profile.id}"),
        json={"role": "member", "first_name": "Sid"},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "member"
    assert resp.json()["first_name"] == "Sid"


@pytest.mark.asyncio
async def test_last_active_admin_is_kept(db, org, admin, member, fake_redis):
    service = ProfileService(db, fake_redis)

    with pytest.raises(HTTPException) as exc:
        await service.toggle_active(org.id, admin.profile.id, acting=member.profile)
    assert exc.value.status_code == 409
    assert exc.value.detail["code"] == "LAST_ADMIN"

    with pytest.raises(HTTPException) as exc:
        await service.approve(
            org.id, admin.profile.id, ProfileApproveRequest(role="member"), acting=member.profile
        )
    assert exc.value.detail["code"] == "LAST_ADMIN"


@pytest.mark.asyncio
async def test_delete_profile(client, org, admin, member):
    resp = await client.delete(profiles_url(org, f"/{member.profile.id}"), headers=admin.headers)
    assert resp.status_code == 204

    resp = await client.get(profiles_url(org, f"/{member.profile.id}"), headers=admin.headers)
    assert resp.status_code == 404
