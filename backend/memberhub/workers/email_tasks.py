"""
Email background tasks.

Invitation, password reset and workflow emails. Everything goes out
through ``memberhub.core.email.send_email``.
"""

from __future__ import annotations

import logging

from memberhub.core import email as mailer
from memberhub.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

BUTTON_STYLE = (
    "background:#3B82F6;color:#fff;padding:12px 24px;"
    "border-radius:6px;text-decoration:none;display:inline-block;"
)


@celery_app.task(name="memberhub.workers.email_tasks.send_invitation_email", bind=True, max_retries=3)
def send_invitation_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    org_name: str,
    inviter_name: str,
    role: str,
    invitation_token: str,
    frontend_url: str,
) -> dict[str, str]:
    """
    Send an invitation email.

    Args:
        to_email: Recipient email address.
        org_name: Organization display name.
        inviter_name: Display name of the person who sent the invite.
        role: Role being assigned (admin/member).
        invitation_token: Secure token for the invitation link.
        frontend_url: Frontend base URL for constructing the accept link.

    Returns:
        Dict with status and message_id.
    """
    try:
        accept_url = f"{frontend_url}/invitations/{invitation_token}"
        message_id = mailer.send_email(
            to=to_email,
            subject=f"You've been invited to join {org_name}",
            html=f"""
                <h2>You've been invited to {org_name}</h2>
                <p><strong>{inviter_name}</strong> has invited you to join
                <strong>{org_name}</strong> as a <strong>{role}</strong>.</p>
                <p><a href="{accept_url}" style="{BUTTON_STYLE}">Accept Invitation</a></p>
                <p>This invitation expires in 48 hours.</p>
                <p>If you did not expect this invitation, you can safely ignore this email.</p>
            """,
        )
        return {"status": "sent", "message_id": message_id}

    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="memberhub.workers.email_tasks.send_password_reset_email", bind=True, max_retries=3)
def send_password_reset_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    reset_token: str,
    frontend_url: str,
) -> dict[str, str]:
    """Send a password reset link that is valid for one hour."""
    try:
        reset_url = f"{frontend_url}/reset-password?token={reset_token}"
        message_id = mailer.send_email(
            to=to_email,
            subject="Reset your password",
            html=f"""
                <h2>Reset your password</h2>
                <p>We received a request to reset your password.</p>
                <p><a href="{reset_url}" style="{BUTTON_STYLE}">Reset Password</a></p>
                <p>This link expires in 1 hour.</p>
                <p>If you did not request a password reset, you can safely ignore this email.</p>
            """,
        )
        return {"status": "sent", "message_id": message_id}

    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="memberhub.workers.email_tasks.send_workflow_email", bind=True, max_retries=3)
def send_workflow_email(
    self,  # type: ignore[no-untyped-def]
    to: str,
    subject: str,
    html_body: str | None,
    text_body: str | None,
    workflow_id: str,
    organization_id: str,
    recipient_name: str | None = None,
) -> dict[str, str]:
    """
    Send a rendered workflow notification.

    The HTML part falls back to the text body when only text was given.
    """
    try:
        message_id = mailer.send_email(
            to=to,
            subject=subject,
            html=html_body or text_body,
            text=text_body,
            reply_to=f"{recipient_name} <{to}>" if recipient_name else None,
        )
        logger.info(
            "Workflow email sent workflow=%s org=%s id=%s", workflow_id, organization_id, message_id
        )
        return {"status": "sent", "message_id": message_id}

    except Exception as exc:
        logger.warning("Workflow email to %s failed: %s", to, exc)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
