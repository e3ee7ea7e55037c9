"""
Outbound email through Resend.
"""

from __future__ import annotations

import logging

import resend
from email_validator import EmailNotValidError, validate_email

from memberhub.core.config import settings

logger = logging.getLogger(__name__)


def is_valid_email(address: str) -> bool:
    """Syntax check with the same rules as pydantic's ``EmailStr``; no DNS lookup."""
    try:
        validate_email(address or "", check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def send_email(
    to: str | list[str],
    subject: str,
    html: str | None = None,
    text: str | None = None,
    reply_to: str | None = None,
    headers: dict[str, str] | None = None,
) -> str:
    """
    Send one email and return the provider message id.

    Raises whatever the Resend client raises; callers decide whether to
    retry, log or swallow.
    """
    resend.api_key = settings.RESEND_API_KEY

    params: resend.Emails.SendParams = {
        "from": settings.EMAIL_FROM,
        "to": [to] if isinstance(to, str) else to,
        "subject": subject,
    }
    if html:
        params["html"] = html
    if text:
        params["text"] = text
    if reply_to:
        params["reply_to"] = reply_to
    if headers:
        params["headers"] = headers

    response = resend.Emails.send(params)
    logger.info("Email sent to %s (subject=%r)", params["to"], subject)
    return response["id"]
