"""
Custom domain business logic.

Ownership is proven with a TXT record at
``<DOMAIN_VERIFICATION_PREFIX>.<domain>`` holding the domain's token.
Only verified domains resolve to a tenant or get a certificate.
"""

from __future__ import annotations

import logging
from uuid import UUID

import dns.asyncresolver
import dns.exception
import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import settings
from memberhub.core.security import create_domain_verification_token
from memberhub.models.base import utcnow
from memberhub.models.domain import OrganizationDomain, SslStatus, VerificationStatus
from memberhub.models.organization import Organization
from memberhub.schemas.domain import (
    DnsCheckResponse,
    DomainCreateRequest,
    DomainListResponse,
    DomainResponse,
    DomainVerifyResponse,
    SslRequestResponse,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DNS lookups
# ---------------------------------------------------------------------------

async def lookup_txt_records(name: str) -> list[str]:
    answer = await dns.asyncresolver.resolve(name, "TXT")
    return [b"".join(rdata.strings).decode("utf-8", errors="replace") for rdata in answer]


async def lookup_a_records(name: str) -> list[str]:
    answer = await dns.asyncresolver.resolve(name, "A")
    return [rdata.address for rdata in answer]


async def lookup_cname_records(name: str) -> list[str]:
    answer = await dns.asyncresolver.resolve(name, "CNAME")
    return [rdata.target.to_text().rstrip(".") for rdata in answer]


def verification_record_name(domain: str) -> str:
    return f"{settings.DOMAIN_VERIFICATION_PREFIX}.{domain}"


def domain_response(record: OrganizationDomain) -> DomainResponse:
    return DomainResponse(
        id=record.id,
        org_id=record.org_id,
        domain=record.domain,
        verification_status=record.verification_status.value,
        verification_token=record.verification_token,
        verification_record=verification_record_name(record.domain),
        is_primary=record.is_primary,
        ssl_status=record.ssl_status.value,
        ssl_issued_at=record.ssl_issued_at,
        verified_at=record.verified_at,
        last_checked_at=record.last_checked_at,
        created_at=record.created_at,
    )


class DomainService:
    """Handles custom domains for an organization."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def list_domains(self, org_id: UUID) -> DomainListResponse:
        result = await self.db.execute(
            select(OrganizationDomain)
            .where(OrganizationDomain.org_id == org_id)
            .order_by(OrganizationDomain.is_primary.desc(), OrganizationDomain.domain)
        )
        domains = [domain_response(d) for d in result.scalars().all()]
        return DomainListResponse(domains=domains, total=len(domains))

    async def get_domain_model(self, org_id: UUID, domain_id: UUID) -> OrganizationDomain:
        result = await self.db.execute(
            select(OrganizationDomain).where(
                OrganizationDomain.id == domain_id,
                OrganizationDomain.org_id == org_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "DOMAIN_NOT_FOUND", "message": "Domain not found"},
            )
        return record

    async def add_domain(self, org_id: UUID, data: DomainCreateRequest) -> DomainResponse:
        existing = await self.db.scalar(
            select(OrganizationDomain.id).where(OrganizationDomain.domain == data.domain)
        )
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "DOMAIN_TAKEN", "message": "This domain is already registered"},
            )

        record = OrganizationDomain(
            org_id=org_id,
            domain=data.domain,
            verification_status=VerificationStatus.pending,
            verification_token=create_domain_verification_token(),
            is_primary=False,
            ssl_status=SslStatus.pending,
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)

        logger.info("Domain %s added for org %s", record.domain, org_id)
        return domain_response(record)

    async def delete_domain(self, org_id: UUID, domain_id: UUID) -> None:
        record = await self.get_domain_model(org_id, domain_id)
        if record.is_primary:
            await self._mirror_primary(org_id, None)
        await self.db.delete(record)
        await self.db.flush()

    async def set_primary(self, org_id: UUID, domain_id: UUID) -> DomainResponse:
        """Make one domain primary and copy it to ``organizations.domain``."""
        record = await self.get_domain_model(org_id, domain_id)

        await self.db.execute(
            update(OrganizationDomain)
            .where(
                OrganizationDomain.org_id == org_id,
                OrganizationDomain.id != record.id,
            )
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )
        record.is_primary = True
        await self._mirror_primary(org_id, record.domain)

        await self.db.flush()
        await self.db.refresh(record)
        return domain_response(record)

    async def _mirror_primary(self, org_id: UUID, domain: str | None) -> None:
        org = await self.db.get(Organization, org_id)
        if org is not None:
            org.domain = domain

    # -----------------------------------------------------------------------
    # Verification
    # -----------------------------------------------------------------------

    async def verify(self, org_id: UUID, domain_id: UUID) -> DomainVerifyResponse:
        record = await self.get_domain_model(org_id, domain_id)
        if record.verification_status == VerificationStatus.verified:
            return DomainVerifyResponse(
                verified=True,
                status=record.verification_status.value,
                message="Domain already verified",
                domain=domain_response(record),
            )

        now = utcnow()
        try:
            found = await lookup_txt_records(verification_record_name(record.domain))
        except dns.exception.DNSException as exc:
            logger.info("TXT lookup for %s failed: %s", record.domain, exc.__class__.__name__)
            record.last_checked_at = now
            await self._save(record)
            return DomainVerifyResponse(
                verified=False,
                status=record.verification_status.value,
                message="TXT record not found. Please add the verification record to your DNS.",
                expected=record.verification_token,
                domain=domain_response(record),
            )

        record.last_checked_at = now
        if record.verification_token in found:
            record.verification_status = VerificationStatus.verified
            record.verified_at = now
            await self._save(record)
            logger.info("Domain %s verified for org %s", record.domain, org_id)
            return DomainVerifyResponse(
                verified=True,
                status=record.verification_status.value,
                message="Domain ownership verified",
                domain=domain_response(record),
            )

        record.verification_status = VerificationStatus.failed
        await self._save(record)
        return DomainVerifyResponse(
            verified=False,
            status=record.verification_status.value,
            message="Verification token not found in DNS TXT records",
            expected=record.verification_token,
            found=found,
            domain=domain_response(record),
        )

    async def dns_check(self, org_id: UUID, domain_id: UUID) -> DnsCheckResponse:
        """Report A, CNAME and verification TXT records; lookup errors give empty lists."""
        record = await self.get_domain_model(org_id, domain_id)
        record_name = verification_record_name(record.domain)

        a_records = await self._safe_lookup(lookup_a_records, record.domain)
        cname_records = await self._safe_lookup(lookup_cname_records, record.domain)
        txt_records = await self._safe_lookup(lookup_txt_records, record_name)

        return DnsCheckResponse(
            domain=record.domain,
            a_records=a_records,
            cname_records=cname_records,
            verification_records=txt_records,
            verification_record_name=record_name,
            expected_token=record.verification_token,
            token_found=record.verification_token in txt_records,
        )

    async def _safe_lookup(self, lookup, name: str) -> list[str]:  # type: ignore[no-untyped-def]
        try:
            return await lookup(name)
        except dns.exception.DNSException:
            return []

    # -----------------------------------------------------------------------
    # SSL
    # -----------------------------------------------------------------------

    async def request_ssl(self, org_id: UUID, domain_id: UUID) -> SslRequestResponse:
        if not settings.is_production:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "SSL_UNAVAILABLE",
                    "message": "SSL generation is only available in production",
                },
            )

        record = await self.get_domain_model(org_id, domain_id)
        if record.verification_status != VerificationStatus.verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "DOMAIN_NOT_VERIFIED",
                    "message": "Verify domain ownership before requesting a certificate",
                },
            )

        record.ssl_status = SslStatus.pending
        await self._save(record)

        from memberhub.workers.domain_tasks import issue_ssl_certificate
        issue_ssl_certificate.delay(domain_id=str(record.id))
        logger.info("SSL certificate requested for %s", record.domain)
        return SslRequestResponse(queued=True, domain=record.domain, ssl_status=record.ssl_status.value)

    async def _save(self, record: OrganizationDomain) -> None:
        await self.db.flush()
        await self.db.refresh(record)
