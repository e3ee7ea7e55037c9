"""
Custom domain endpoints: registration, DNS verification and SSL.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_redis, rate_limit, require_admin
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.schemas.domain import (
    DnsCheckResponse,
    DomainCreateRequest,
    DomainListResponse,
    DomainResponse,
    DomainVerifyResponse,
    SslRequestResponse,
)
from memberhub.services.domain_service import DomainService

router = APIRouter()


def get_domain_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> DomainService:
    return DomainService(db=db, redis=redis)


@router.get(
    "/organizations/{slug}/domains",
    response_model=DomainListResponse,
    summary="List custom domains",
)
async def list_domains(
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> DomainListResponse:
    org, _ = org_and_profile
    return await service.list_domains(org.id)


@router.post(
    "/organizations/{slug}/domains",
    response_model=DomainResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a custom domain",
)
async def add_domain(
    data: DomainCreateRequest,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> DomainResponse:
    """The response carries the TXT record name and token to publish."""
    org, _ = org_and_profile
    return await service.add_domain(org.id, data)


@router.delete(
    "/organizations/{slug}/domains/{domain_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a custom domain",
)
async def delete_domain(
    domain_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> None:
    org, _ = org_and_profile
    await service.delete_domain(org.id, domain_id)


@router.post(
    "/organizations/{slug}/domains/{domain_id}/primary",
    response_model=DomainResponse,
    summary="Make a domain the primary domain",
)
async def set_primary_domain(
    domain_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> DomainResponse:
    org, _ = org_and_profile
    return await service.set_primary(org.id, domain_id)


@router.post(
    "/organizations/{slug}/domains/{domain_id}/verify",
    response_model=DomainVerifyResponse,
    summary="Check the verification TXT record",
    dependencies=[Depends(rate_limit("domain-verify", per_minute=10))],
)
async def verify_domain(
    domain_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> DomainVerifyResponse:
    org, _ = org_and_profile
    return await service.verify(org.id, domain_id)


@router.get(
    "/organizations/{slug}/domains/{domain_id}/dns-check",
    response_model=DnsCheckResponse,
    summary="Show the domain's current DNS records",
)
async def dns_check(
    domain_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> DnsCheckResponse:
    org, _ = org_and_profile
    return await service.dns_check(org.id, domain_id)


@router.post(
    "/organizations/{slug}/domains/{domain_id}/ssl",
    response_model=SslRequestResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request an SSL certificate",
)
async def request_ssl(
    domain_id: UUID,
    org_and_profile: tuple[Organization, Profile] = Depends(require_admin),
    service: DomainService = Depends(get_domain_service),
) -> SslRequestResponse:
    org, _ = org_and_profile
    return await service.request_ssl(org.id, domain_id)
