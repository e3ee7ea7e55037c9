"""
Tenant lookup: turns a host resolution into an organization row.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.tenant import HostResolution, resolve_host
from memberhub.models.domain import OrganizationDomain, VerificationStatus
from memberhub.models.organization import Organization
from memberhub.schemas.organization import PublicOrganizationResponse, TenantResponse

logger = logging.getLogger(__name__)


async def find_organization(db: AsyncSession, resolution: HostResolution) -> Organization | None:
    """Load the active organization a resolution points at, if any."""
    if resolution.custom_domain:
        result = await db.execute(
            select(Organization)
            .join(OrganizationDomain, OrganizationDomain.org_id == Organization.id)
            .where(
                OrganizationDomain.domain == resolution.custom_domain,
                OrganizationDomain.verification_status == VerificationStatus.verified,
                Organization.is_active.is_(True),
            )
        )
        return result.scalars().first()

    if resolution.slug:
        result = await db.execute(
            select(Organization).where(
                Organization.slug == resolution.slug,
                Organization.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    return None


async def resolve_tenant(
    db: AsyncSession, hostname: str, org_param: str | None = None
) -> TenantResponse:
    resolution = resolve_host(hostname, org_param)
    if resolution.is_super_admin:
        return TenantResponse(is_super_admin=True)

    org = await find_organization(db, resolution)
    if org is None and (resolution.slug or resolution.custom_domain):
        logger.info(
            "No organization for host=%s slug=%s", hostname, resolution.slug
        )

    return TenantResponse(
        is_custom_domain=resolution.custom_domain is not None and org is not None,
        organization=PublicOrganizationResponse.model_validate(org) if org else None,
    )
