"""
Tests for automated reminders: target selection, de-duplication and the
admin API.
"""

from datetime import UTC, date, datetime, time, timedelta

import pytest
from sqlalchemy import select

from memberhub.models import (
    AutomatedReminder,
    Event,
    EventRegistration,
    Membership,
    MembershipStatus,
    RegistrationStatus,
    ReminderLog,
    ReminderLogStatus,
    ReminderType,
)
from memberhub.services.reminder_service import run_due_reminders, send_reminder

TODAY = date(2026, 11, 1)


def reminders_url(org, suffix: str = "") -> str:
    return f"/api/v1/organizations/{org.slug}/reminders{suffix}"


def make_reminder(org, reminder_type: ReminderType, trigger_days: int = 0, **overrides) -> AutomatedReminder:
    values = {
        "org_id": org.id,
        "name": reminder_type.value,
        "reminder_type": reminder_type,
        "trigger_days": trigger_days,
        "email_subject": "Hi {{first_name}}",
        "email_body": "<p>{{organization_name}}</p>",
        "is_active": True,
        "target_audience": {},
    }
    values.update(overrides)
    return AutomatedReminder(**values)


class Outbox:
    def __init__(self, fail_for: str | None = None) -> None:
        self.sent: list[dict] = []
        self.fail_for = fail_for

    def __call__(self, **kwargs) -> str:
        if kwargs["to"] == self.fail_for:
            raise RuntimeError("smtp down")
        self.sent.append(kwargs)
        return "msg"


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_renewal_reminder_targets_matching_end_date(db, org, member):
    db.add_all(
        [
            Membership(
                org_id=org.id,
                profile_id=member.profile.id,
                membership_year=2026,
                status=MembershipStatus.active,
                start_date=date(2026, 1, 1),
                end_date=TODAY + timedelta(days=30),
            ),
            # Ends on another day
            Membership(
                org_id=org.id,
                profile_id=member.profile.id,
                membership_year=2025,
                status=MembershipStatus.active,
                start_date=date(2025, 1, 1),
                end_date=TODAY + timedelta(days=31),
            ),
        ]
    )
    reminder = make_reminder(org, ReminderType.membership_renewal, trigger_days=-30)
    db.add(reminder)
    await db.commit()

    outbox = Outbox()
    counts = await send_reminder(db, reminder, today=TODAY, send=outbox)
    await db.commit()

    assert counts == {"sent": 1, "failed": 0, "skipped": 0}
    assert outbox.sent[0]["to"] == "member@example.com"
    assert outbox.sent[0]["subject"] == "Hi Mia"
    assert outbox.sent[0]["html"] == "<p>Bell Ringers</p>"

    # A second run the same day reminds nobody twice
    counts = await send_reminder(db, reminder, today=TODAY, send=outbox)
    assert counts == {"sent": 0, "failed": 0, "skipped": 1}
    assert len(outbox.sent) == 1


@pytest.mark.asyncio
async def test_failed_send_is_logged_and_retried(db, org, admin, member):
    reminder = make_reminder(org, ReminderType.custom)
    db.add(reminder)
    await db.commit()

    counts = await send_reminder(db, reminder, today=TODAY, send=Outbox(fail_for="member@example.com"))
    await db.commit()
    assert counts == {"sent": 1, "failed": 1, "skipped": 0}

    failed = await db.scalar(select(ReminderLog).where(ReminderLog.status == ReminderLogStatus.failed))
    assert failed.recipient_email == "member@example.com"
    assert failed.error_message == "smtp down"

    # Only sent logs count towards de-duplication
    outbox = Outbox()
    counts = await send_reminder(db, reminder, today=TODAY, send=outbox)
    assert counts == {"sent": 1, "failed": 0, "skipped": 1}
    assert [m["to"] for m in outbox.sent] == ["member@example.com"]


@pytest.mark.asyncio
async def test_event_reminder_only_for_attendees(db, org, admin, member):
    event = Event(
        org_id=org.id,
        title="Striking competition",
        location="St Mary's",
        start_datetime=datetime.combine(TODAY + timedelta(days=1), time(18, 0), tzinfo=UTC),
        is_published=True,
    )
    db.add(event)
    await db.flush()
    db.add_all(
        [
            EventRegistration(
                org_id=org.id, event_id=event.id, profile_id=member.profile.id,
                status=RegistrationStatus.registered,
            ),
            EventRegistration(
                org_id=org.id, event_id=event.id, profile_id=admin.profile.id,
                status=RegistrationStatus.cancelled,
            ),
        ]
    )
    reminder = make_reminder(
        org,
        ReminderType.event_upcoming,
        trigger_days=-1,
        email_body="{{event_title}} at {{event_location}} on {{event_date}}",
    )
    db.add(reminder)
    await db.commit()

    outbox = Outbox()
    counts = await send_reminder(db, reminder, today=TODAY, send=outbox)
    assert counts["sent"] == 1
    assert outbox.sent[0]["to"] == "member@example.com"
    assert outbox.sent[0]["html"] == "Striking competition at St Mary's on 2026-11-02"


@pytest.mark.asyncio
async def test_daily_run_skips_custom_and_inactive(db, org, member):
    db.add_all(
        [
            make_reminder(org, ReminderType.custom),
            make_reminder(org, ReminderType.membership_expiry, is_active=False),
            make_reminder(org, ReminderType.membership_renewal, trigger_days=-7),
        ]
    )
    await db.commit()

    totals = await run_due_reminders(db, today=TODAY, send=Outbox())
    assert totals == {"reminders": 1, "sent": 0, "failed": 0, "skipped": 0}


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reminder_crud_and_toggle(client, org, admin):
    resp = await client.post(
        reminders_url(org),
        json={
            "name": "Renewal nudge",
            "reminder_type": "membership_renewal",
            "trigger_days": -14,
            "email_subject": "Renew soon",
            "email_body": "Your membership ends on {{end_date}}",
            "target_audience": {"membership_types": ["full"]},
        },
        headers=admin.headers,
    )
    assert resp.status_code == 201, resp.text
    reminder = resp.json()
    assert reminder["trigger_days"] == -14
    assert reminder["is_active"] is True

    resp = await client.patch(
        reminders_url(org, f"/{reminder['id']}"), json={"trigger_days": -7}, headers=admin.headers
    )
    assert resp.json()["trigger_days"] == -7

    resp = await client.post(reminders_url(org, f"/{reminder['id']}/toggle"), headers=admin.headers)
    assert resp.json()["is_active"] is False

    listing = await client.get(reminders_url(org), headers=admin.headers)
    assert listing.json()["total"] == 1

    resp = await client.delete(reminders_url(org, f"/{reminder['id']}"), headers=admin.headers)
    assert resp.status_code == 204
    resp = await client.get(reminders_url(org, f"/{reminder['id']}"), headers=admin.headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "REMINDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_invalid_reminder_type(client, org, admin):
    resp = await client.post(
        reminders_url(org),
        json={"name": "x", "reminder_type": "birthday", "email_subject": "x", "email_body": "x"},
        headers=admin.headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_member_cannot_manage_reminders(client, org, member):
    resp = await client.get(reminders_url(org), headers=member.headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_run_now_queues_task(client, org, admin, queued):
    resp = await client.post(
        reminders_url(org),
        json={"name": "Hello", "reminder_type": "custom", "email_subject": "Hi", "email_body": "Hi"},
        headers=admin.headers,
    )
    reminder_id = resp.json()["id"]

    resp = await client.post(reminders_url(org, f"/{reminder_id}/run"), headers=admin.headers)
    assert resp.status_code == 202
    assert resp.json() == {"queued": True, "reminder_id": reminder_id}
    assert queued.named("run_reminder") == [{"reminder_id": reminder_id}]


@pytest.mark.asyncio
async def test_stats_and_logs(client, db, org, admin, member):
    reminder = make_reminder(org, ReminderType.custom)
    db.add(reminder)
    await db.commit()
    await send_reminder(db, reminder, today=TODAY, send=Outbox(fail_for="admin@example.com"))
    await db.commit()

    stats = await client.get(reminders_url(org, "/stats"), headers=admin.headers)
    assert stats.status_code == 200
    assert stats.json() == {
        "active_reminders": 1,
        "sent_last_30_days": 1,
        "failed_last_30_days": 1,
        "success_rate": 50.0,
    }

    logs = await client.get(
        reminders_url(org, "/logs"), params={"reminder_id": str(reminder.id)}, headers=admin.headers
    )
    assert logs.json()["total"] == 2
    assert {log["status"] for log in logs.json()["logs"]} == {"sent", "failed"}
