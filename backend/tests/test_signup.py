"""
Tests for public signup and member renewal.
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select

from conftest import TEST_PASSWORD, make_user
from memberhub.models import Membership, MembershipType, Profile
from memberhub.models.form import FormResponse
from memberhub.models.workflow import EmailWorkflow, WorkflowTrigger
from memberhub.services.form_service import FormService


@pytest_asyncio.fixture
async def full_type(db, org) -> MembershipType:
    mtype = MembershipType(
        org_id=org.id, code="full", name="Full Member", price=Decimal("25.00"), is_default=True
    )
    db.add(mtype)
    await db.commit()
    return mtype


@pytest_asyncio.fixture
async def signup_form(db, org, fake_redis, full_type):
    await FormService(db, fake_redis).seed_default_form(org.id)
    await db.commit()


def answers(mtype: MembershipType, **overrides) -> dict:
    data = {
        "full_name": "Sam Signup",
        "email": "sam@example.com",
        "membership_selection": str(mtype.id),
        "agree_rules": True,
        "agree_data": True,
    }
    data.update(overrides)
    return data


def signup_body(mtype: MembershipType, email: str = "sam@example.com", **overrides) -> dict:
    return {"email": email, "password": TEST_PASSWORD, "response_data": answers(mtype, **overrides)}


# ---------------------------------------------------------------------------
# Signup form
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signup_form_lists_types(client, org, signup_form, full_type):
    resp = await client.get(f"/api/v1/organizations/{org.slug}/signup-form")
    assert resp.status_code == 200
    body = resp.json()
    assert body["organization"]["slug"] == org.slug
    assert body["form"]["form_type"] == "signup"
    assert [t["code"] for t in body["membership_types"]] == ["full"]


@pytest.mark.asyncio
async def test_signup_form_without_form(client, org):
    resp = await client.get(f"/api/v1/organizations/{org.slug}/signup-form")
    assert resp.status_code == 200
    assert resp.json()["form"] is None


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signup_creates_pending_profile(client, org, signup_form, full_type, session_factory):
    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=signup_body(full_type))
    assert resp.status_code == 201, resp.text
    body = resp.json()

    assert body["profile"]["status"] == "pending"
    assert body["profile"]["is_active"] is False
    assert body["profile"]["first_name"] == "Sam"
    assert body["profile"]["last_name"] == "Signup"
    assert Decimal(body["total_amount"]) == Decimal("25.00")
    assert body["selected_membership_types"] == [str(full_type.id)]
    assert body["tokens"]["access_token"]

    async with session_factory() as session:
        stored = (await session.execute(select(FormResponse))).scalar_one()
        assert stored.response_data["email"] == "sam@example.com"
        assert stored.schema_version == 1
        # Memberships are only created by renewal or an admin
        assert (await session.execute(select(Membership))).first() is None


@pytest.mark.asyncio
async def test_signup_without_form(client, org):
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/signup",
        json={"email": "sam@example.com", "password": TEST_PASSWORD, "response_data": {}},
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "SIGNUP_UNAVAILABLE"


@pytest.mark.asyncio
async def test_signup_reports_field_errors(client, org, signup_form, full_type):
    body = signup_body(full_type, agree_rules=False)
    del body["response_data"]["full_name"]

    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=body)
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["code"] == "FORM_INVALID"
    assert set(detail["errors"]) == {"full_name", "agree_rules"}


@pytest.mark.asyncio
async def test_signup_rejects_unknown_membership_type(client, org, signup_form, full_type):
    body = signup_body(full_type, membership_selection="not-a-type")
    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=body)
    assert resp.status_code == 422
    assert "membership_selection" in resp.json()["detail"]["errors"]


@pytest.mark.asyncio
@pytest.mark.parametrize("donation", ["NaN", "1e40", "Infinity"])
async def test_signup_rejects_unusable_donation(client, org, signup_form, full_type, donation):
    body = signup_body(full_type, donation_amount=donation)
    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=body)
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "FORM_INVALID"
    assert set(resp.json()["detail"]["errors"]) == {"donation_amount"}


@pytest.mark.asyncio
async def test_signup_adds_donation_to_total(client, org, signup_form, full_type):
    body = signup_body(full_type, donation_amount="10")
    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=body)
    assert resp.status_code == 201, resp.text
    assert Decimal(resp.json()["total_amount"]) == Decimal("35.00")


@pytest.mark.asyncio
async def test_existing_user_joins_with_password(client, db, org, signup_form, full_type):
    await make_user(db, "sam@example.com", display_name="Sam Signup")

    wrong = signup_body(full_type)
    wrong["password"] = "different123"
    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=wrong)
    assert resp.status_code == 401

    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=signup_body(full_type))
    assert resp.status_code == 201

    again = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=signup_body(full_type))
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "ALREADY_REGISTERED"


@pytest.mark.asyncio
async def test_signup_queues_matching_workflows(client, db, org, signup_form, full_type, queued):
    db.add_all(
        [
            EmailWorkflow(
                org_id=org.id,
                name="Secretary",
                trigger_event=WorkflowTrigger.signup,
                conditions={"membership_types": ["full"]},
                recipient_email="secretary@example.com",
                email_subject="New {{membership_type}}: {{full_name}}",
                email_template="{{first_name}} joined {{organization_name}}. Phone: {{phone}}",
            ),
            EmailWorkflow(
                org_id=org.id,
                name="Renewals only",
                trigger_event=WorkflowTrigger.renewal,
                recipient_email="treasurer@example.com",
                email_subject="Renewal",
                email_template="Renewed",
            ),
            EmailWorkflow(
                org_id=org.id,
                name="Juniors",
                trigger_event=WorkflowTrigger.both,
                conditions={"membership_types": ["junior"]},
                recipient_email="junior@example.com",
                email_subject="Junior",
                email_template="Junior",
            ),
        ]
    )
    await db.commit()

    resp = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=signup_body(full_type))
    assert resp.status_code == 201

    emails = queued.named("send_workflow_email")
    assert len(emails) == 1
    assert emails[0]["to"] == "secretary@example.com"
    assert emails[0]["subject"] == "New Full Member: Sam Signup"
    # Unknown placeholders are left untouched
    assert emails[0]["text_body"] == "Sam joined Bell Ringers. Phone: {{phone}}"


# ---------------------------------------------------------------------------
# Renewal
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_renewal_creates_pending_memberships(client, org, member, signup_form, full_type, queued):
    url = f"/api/v1/organizations/{org.slug}/renewal"

    form = await client.get(url, headers=member.headers)
    assert form.status_code == 200
    assert form.json()["current_memberships"] == []

    resp = await client.post(url, json={"response_data": answers(full_type)}, headers=member.headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert len(body["memberships"]) == 1
    membership = body["memberships"][0]
    assert membership["status"] == "pending"
    assert membership["membership_type_code"] == "full"
    assert Decimal(membership["amount_paid"]) == Decimal("0")
    assert Decimal(body["total_amount"]) == Decimal("25.00")

    # Renewing twice in the same year does not duplicate the membership
    again = await client.post(url, json={"response_data": answers(full_type)}, headers=member.headers)
    assert again.status_code == 201
    assert again.json()["memberships"] == []

    form = await client.get(url, headers=member.headers)
    assert len(form.json()["current_memberships"]) == 1
    assert form.json()["previous_response"]["full_name"] == "Sam Signup"


@pytest.mark.asyncio
async def test_renewal_requires_a_selection(client, org, member, signup_form, full_type):
    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/renewal",
        json={"response_data": answers(full_type, membership_selection=[])},
        headers=member.headers,
    )
    assert resp.status_code == 422
    assert "membership_selection" in resp.json()["detail"]["errors"]


@pytest.mark.asyncio
async def test_renewal_disabled(client, db, org, member, signup_form, full_type):
    org.renewal_enabled = False
    await db.commit()

    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/renewal",
        json={"response_data": answers(full_type)},
        headers=member.headers,
    )
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "RENEWAL_DISABLED"


@pytest.mark.asyncio
async def test_pending_member_cannot_renew(client, org, signup_form, full_type, session_factory):
    signup = await client.post(f"/api/v1/organizations/{org.slug}/signup", json=signup_body(full_type))
    token = signup.json()["tokens"]["access_token"]

    resp = await client.post(
        f"/api/v1/organizations/{org.slug}/renewal",
        json={"response_data": answers(full_type)},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 403

    async with session_factory() as session:
        profile = (await session.execute(select(Profile).where(Profile.email == "sam@example.com"))).scalar_one()
        assert profile.status.value == "pending"
