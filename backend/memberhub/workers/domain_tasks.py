"""
Custom domain background tasks.

Certificate issuance shells out to certbot and then reloads nginx. The
worker on the ``domains`` queue must run on the host that terminates TLS,
with sudo rights limited to those two commands.
"""

from __future__ import annotations

import logging
import subprocess
from uuid import UUID

from memberhub.workers.celery_app import celery_app, run_async

logger = logging.getLogger(__name__)

CERTBOT_TIMEOUT_SECONDS = 300


def certbot_command(domain: str, email: str) -> list[str]:
    return [
        "sudo",
        "certbot",
        "certonly",
        "--nginx",
        "-d",
        domain,
        "--non-interactive",
        "--agree-tos",
        "--email",
        email,
    ]


async def _load_domain(domain_id: str) -> str | None:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.models.domain import OrganizationDomain, VerificationStatus

    async with AsyncSessionLocal() as session:
        record = await session.get(OrganizationDomain, UUID(domain_id))
        if record is None or record.verification_status != VerificationStatus.verified:
            return None
        return record.domain


async def _record_result(domain_id: str, issued: bool) -> None:
    from memberhub.core.database import AsyncSessionLocal
    from memberhub.models.base import utcnow
    from memberhub.models.domain import OrganizationDomain, SslStatus

    async with AsyncSessionLocal() as session:
        record = await session.get(OrganizationDomain, UUID(domain_id))
        if record is None:
            return
        if issued:
            record.ssl_status = SslStatus.issued
            record.ssl_issued_at = utcnow()
        else:
            record.ssl_status = SslStatus.failed
        await session.commit()


@celery_app.task(name="memberhub.workers.domain_tasks.issue_ssl_certificate", bind=True, max_retries=3)
def issue_ssl_certificate(self, domain_id: str) -> dict[str, str]:  # type: ignore[no-untyped-def]
    """
    Obtain a certificate for a verified domain and reload nginx.

    Args:
        domain_id: Id of the ``organization_domains`` row.

    Returns:
        Dict with status and the domain name.
    """
    from memberhub.core.config import settings

    try:
        domain = run_async(lambda: _load_domain(domain_id))
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    if domain is None:
        logger.warning("Domain %s missing or unverified, skipping certificate", domain_id)
        return {"status": "skipped", "domain": ""}

    email = settings.CERTBOT_EMAIL or f"admin@{domain}"
    try:
        result = subprocess.run(
            certbot_command(domain, email),
            check=True,
            capture_output=True,
            text=True,
            timeout=CERTBOT_TIMEOUT_SECONDS,
        )
        logger.info("certbot output for %s: %s", domain, result.stdout.strip())
        subprocess.run(["sudo", "nginx", "-s", "reload"], check=True, capture_output=True, text=True)
    except (OSError, subprocess.SubprocessError) as exc:
        stderr = getattr(exc, "stderr", None)
        logger.error("Certificate issuance for %s failed: %s %s", domain, exc, stderr or "")
        run_async(lambda: _record_result(domain_id, issued=False))
        return {"status": "failed", "domain": domain}

    run_async(lambda: _record_result(domain_id, issued=True))
    logger.info("Certificate issued for %s", domain)
    return {"status": "issued", "domain": domain}
