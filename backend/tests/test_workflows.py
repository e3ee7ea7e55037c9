"""
Tests for email workflows: template rendering, conditions, CRUD and the
templated email send endpoint.
"""

import pytest

from conftest import make_actor, make_org
from memberhub.models import ProfileRole
from memberhub.services.workflow_service import conditions_match, render_template


def workflows_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/workflows{suffix}"


async def create_workflow(client, org, admin, **overrides) -> dict:
    body = {
        "name": "Notify secretary",
        "trigger_event": "signup",
        "recipient_email": "Secretary@Example.com",
        "email_subject": "New member {{full_name}}",
        "email_template": "{{first_name}} chose {{membership_type}} at {{organization_name}}",
    }
    body.update(overrides)
    resp = await client.post(workflows_url(org), json=body, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Rendering and conditions
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "template,context,expected",
    [
        ("Hello {{first_name}}", {"first_name": "Ada"}, "Hello Ada"),
        ("Hello {{ first_name }}", {"first_name": "Ada"}, "Hello Ada"),
        ("{{missing}} stays", {}, "{{missing}} stays"),
        ("Agreed: {{agree}}", {"agree": True}, "Agreed: Yes"),
        ("Roles: {{roles}}", {"roles": ["tenor", "bass"]}, "Roles: tenor, bass"),
        ("Phone: {{phone}}", {"phone": None}, "Phone: "),
    ],
)
def test_render_template(template, context, expected):
    assert render_template(template, context) == expected


@pytest.mark.parametrize(
    "conditions,answers,codes,expected",
    [
        (None, {}, [], True),
        ({}, {}, ["full"], True),
        ({"membership_types": ["full", "junior"]}, {}, ["junior"], True),
        ({"membership_types": ["full"]}, {}, ["junior"], False),
        ({"membership_types": "full"}, {}, ["full"], True),
        ({"tower": "York"}, {"tower": "York"}, [], True),
        ({"tower": "York"}, {"tower": "Leeds"}, [], False),
        ({"tower": "York", "membership_types": ["full"]}, {"tower": "York"}, ["junior"], False),
    ],
)
def test_conditions_match(conditions, answers, codes, expected):
    assert conditions_match(conditions, answers, codes) is expected


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_workflow_crud(client, org, admin):
    created = await create_workflow(client, org, admin)
    assert created["recipient_email"] == "secretary@example.com"
    assert created["trigger_event"] == "signup"
    assert created["is_active"] is True

    resp = await client.patch(
        workflows_url(org, f"/{created['id']}"),
        json={"trigger_event": "both", "conditions": {"membership_types": ["full"]}},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["trigger_event"] == "both"
    assert resp.json()["conditions"] == {"membership_types": ["full"]}

    listing = await client.get(workflows_url(org), headers=admin.headers)
    assert listing.json()["total"] == 1

    resp = await client.delete(workflows_url(org, f"/{created['id']}"), headers=admin.headers)
    assert resp.status_code == 204
    resp = await client.get(workflows_url(org, f"/{created['id']}"), headers=admin.headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "WORKFLOW_NOT_FOUND"


@pytest.mark.asyncio
async def test_invalid_trigger(client, org, admin):
    resp = await client.post(
        workflows_url(org),
        json={
            "name": "x",
            "trigger_event": "payment",
            "recipient_email": "a@example.com",
            "email_subject": "x",
            "email_template": "x",
        },
        headers=admin.headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_member_cannot_manage_workflows(client, org, member):
    resp = await client.get(workflows_url(org), headers=member.headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_workflow_test_send_uses_sample_data(client, org, admin, queued):
    workflow = await create_workflow(client, org, admin)

    resp = await client.post(
        workflows_url(org, f"/{workflow['id']}/test"),
        json={"sample_data": {"first_name": "Tess"}},
        headers=admin.headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["to"] == "admin@example.com"
    assert body["subject"] == "[TEST] New member Sample Member"
    assert body["body"] == "Tess chose Full Member at Bell Ringers"

    emails = queued.named("send_workflow_email")
    assert len(emails) == 1
    assert emails[0]["to"] == "admin@example.com"
    assert emails[0]["workflow_id"] == workflow["id"]


# ---------------------------------------------------------------------------
# Templated email send
# ---------------------------------------------------------------------------

def send_body(org, workflow: dict, **overrides) -> dict:
    body = {
        "to": "secretary@example.com",
        "subject": "New member",
        "text_body": "Someone joined",
        "workflow_id": workflow["id"],
        "organization_id": str(org.id),
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_email_send_queues(client, org, admin, queued):
    workflow = await create_workflow(client, org, admin)

    resp = await client.post("/api/v1/email/send", json=send_body(org, workflow), headers=admin.headers)
    assert resp.status_code == 202
    assert resp.json() == {"success": True, "queued": True, "to": "secretary@example.com"}

    emails = queued.named("send_workflow_email")
    assert emails[-1]["organization_id"] == str(org.id)
    assert emails[-1]["text_body"] == "Someone joined"
    assert emails[-1]["html_body"] is None


@pytest.mark.asyncio
async def test_email_send_validation(client, org, admin):
    workflow = await create_workflow(client, org, admin)

    resp = await client.post(
        "/api/v1/email/send", json=send_body(org, workflow, text_body=None), headers=admin.headers
    )
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/email/send", json=send_body(org, workflow, to="not-an-email"), headers=admin.headers
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_EMAIL"

    resp = await client.post(
        "/api/v1/email/send", json=send_body(org, workflow, to="x@y..z"), headers=admin.headers
    )
    assert resp.status_code == 400

    resp = await client.post("/api/v1/email/send", json=send_body(org, workflow))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_email_send_requires_org_admin(client, db, org, admin, member):
    workflow = await create_workflow(client, org, admin)

    resp = await client.post("/api/v1/email/send", json=send_body(org, workflow), headers=member.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "INSUFFICIENT_ROLE"

    # Admin elsewhere is not enough, and workflows do not cross organizations
    choir = await make_org(db, slug="choir", name="Choir")
    choir_admin = await make_actor(db, choir, "choir-admin@example.com", role=ProfileRole.admin)
    resp = await client.post("/api/v1/email/send", json=send_body(org, workflow), headers=choir_admin.headers)
    assert resp.status_code == 403

    resp = await client.post(
        "/api/v1/email/send",
        json=send_body(org, workflow, organization_id=str(choir.id)),
        headers=choir_admin.headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "WORKFLOW_NOT_FOUND"
