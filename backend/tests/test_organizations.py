"""
Organization management: super admin CRUD, settings, invitations and
cross-tenant isolation.
"""

import pytest

from conftest import auth_headers, make_actor, make_org, make_profile, make_user
from memberhub.models import ProfileRole, ProfileStatus


# ---------------------------------------------------------------------------
# Super admin
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_super_admin_creates_org_with_admin_invite(client, super_admin, queued):
    resp = await client.post(
        "/api/v1/admin/organizations",
        json={"name": "Ringing Guild", "slug": "ringing-guild", "admin_email": "chair@example.com"},
        headers=super_admin.headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["organization"]["slug"] == "ringing-guild"
    assert body["admin_invitation"]["email"] == "chair@example.com"
    assert body["admin_invitation"]["role"] == "admin"

    [invite] = queued.named("send_invitation_email")
    assert invite["to_email"] == "chair@example.com"

    listing = await client.get("/api/v1/admin/organizations", headers=super_admin.headers)
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_new_org_gets_default_signup_form(client, db, super_admin):
    resp = await client.post(
        "/api/v1/admin/organizations",
        json={"name": "Form Guild", "slug": "form-guild"},
        headers=super_admin.headers,
    )
    assert resp.status_code == 201

    form = await client.get("/api/v1/organizations/form-guild/signup-form")
    assert form.status_code == 200
    assert form.json()["form"]["schema_version"] == 1


@pytest.mark.asyncio
async def test_duplicate_slug_conflicts(client, super_admin, org):
    resp = await client.post(
        "/api/v1/admin/organizations",
        json={"name": "Copy", "slug": org.slug},
        headers=super_admin.headers,
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "SLUG_TAKEN"


@pytest.mark.asyncio
async def test_invalid_slug_rejected(client, super_admin):
    resp = await client.post(
        "/api/v1/admin/organizations",
        json={"name": "Bad", "slug": "-bad-"},
        headers=super_admin.headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_admin_routes_need_super_admin(client, admin):
    resp = await client.get("/api/v1/admin/organizations", headers=admin.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "SUPER_ADMIN_REQUIRED"


@pytest.mark.asyncio
async def test_super_admin_deactivates_org(client, super_admin, org):
    resp = await client.patch(
        f"/api/v1/admin/organizations/{org.id}",
        json={"is_active": False},
        headers=super_admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    public = await client.get(f"/api/v1/organizations/{org.slug}/public")
    assert public.status_code == 404


@pytest.mark.asyncio
async def test_super_admin_deletes_org(client, super_admin, org):
    resp = await client.delete(f"/api/v1/admin/organizations/{org.id}", headers=super_admin.headers)
    assert resp.status_code == 204
    again = await client.get(f"/api/v1/admin/organizations/{org.id}", headers=super_admin.headers)
    assert again.status_code == 404


# ---------------------------------------------------------------------------
# Org admin
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_public_branding(client, org):
    resp = await client.get(f"/api/v1/organizations/{org.slug}/public")
    assert resp.status_code == 200
    assert resp.json()["primary_color"] == "#3B82F6"


@pytest.mark.asyncio
async def test_admin_updates_settings(client, admin, org):
    resp = await client.patch(
        f"/api/v1/organizations/{org.slug}/settings",
        json={"primary_color": "#112233", "membership_year_start_month": 4},
        headers=admin.headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["primary_color"] == "#112233"
    assert body["membership_year_start_month"] == 4
    assert body["name"] == org.name


@pytest.mark.asyncio
async def test_bad_color_rejected(client, admin, org):
    resp = await client.patch(
        f"/api/v1/organizations/{org.slug}/settings",
        json={"primary_color": "blue"},
        headers=admin.headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_member_cannot_update_settings(client, member, org):
    resp = await client.patch(
        f"/api/v1/organizations/{org.slug}/settings",
        json={"name": "Hijacked"},
        headers=member.headers,
    )
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "INSUFFICIENT_ROLE"


@pytest.mark.asyncio
async def test_stats(client, admin, member, org):
    resp = await client.get(f"/api/v1/organizations/{org.slug}/stats", headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["member_count"] == 2


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invite_and_accept(client, db, admin, org, queued):
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/invitations",
        json={"email": "newbie@example.com", "role": "member"},
        headers=admin.headers,
    )
    assert resp.status_code == 201, resp.text
    token = resp.json()["token"]

    info = await client.get(f"/api/v1/invitations/{token}")
    assert info.status_code == 200
    assert info.json()["org_slug"] == org.slug

    invitee = await make_user(db, "newbie@example.com", display_name="New Bie")
    accepted = await client.post(
        f"/api/v1/invitations/{token}/accept", json={}, headers=auth_headers(invitee)
    )
    assert accepted.status_code == 200, accepted.text
    body = accepted.json()
    assert body["status"] == "active"
    assert body["first_name"] == "New"

    reused = await client.post(
        f"/api/v1/invitations/{token}/accept", json={}, headers=auth_headers(invitee)
    )
    assert reused.status_code == 400
    assert reused.json()["detail"]["code"] == "INVITE_USED"


@pytest.mark.asyncio
async def test_invitation_is_bound_to_email(client, db, admin, org):
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/invitations",
        json={"email": "intended@example.com"},
        headers=admin.headers,
    )
    token = resp.json()["token"]

    thief = await make_user(db, "thief@example.com")
    stolen = await client.post(
        f"/api/v1/invitations/{token}/accept", json={}, headers=auth_headers(thief)
    )
    assert stolen.status_code == 403
    assert stolen.json()["detail"]["code"] == "EMAIL_MISMATCH"


@pytest.mark.asyncio
async def test_duplicate_pending_invite(client, admin, org):
    payload = {"email": "twice@example.com"}
    url = f"/api/v1/organizations/{org.slug}/invitations"
    assert (await client.post(url, json=payload, headers=admin.headers)).status_code == 201
    again = await client.post(url, json=payload, headers=admin.headers)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "INVITE_EXISTS"


@pytest.mark.asyncio
async def test_revoke_invitation(client, admin, org):
    url = f"/api/v1/organizations/{org.slug}/invitations"
    created = await client.post(url, json={"email": "gone@example.com"}, headers=admin.headers)
    invitation_id = created.json()["id"]

    resp = await client.delete(f"{url}/{invitation_id}", headers=admin.headers)
    assert resp.status_code == 204
    listing = await client.get(url, headers=admin.headers)
    assert listing.json()["total"] == 0


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cannot_access_other_org(client, db, admin):
    other = await make_org(db, slug="other-guild", name="Other Guild")
    resp = await client.get(f"/api/v1/organizations/{other.slug}", headers=admin.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_A_MEMBER"


@pytest.mark.asyncio
async def test_admin_of_one_org_is_member_of_another(client, db, admin):
    other = await make_org(db, slug="second-guild", name="Second Guild")
    # Same user, member role in the second org
    await make_profile(db, other, admin.user, ProfileRole.member)

    resp = await client.get(f"/api/v1/organizations/{other.slug}/stats", headers=admin.headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_pending_profile_cannot_see_org(client, db, org):
    pending = await make_actor(db, org, "waiting@example.com", status=ProfileStatus.pending)
    resp = await client.get(f"/api/v1/organizations/{org.slug}", headers=pending.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "PROFILE_NOT_ACTIVE"
