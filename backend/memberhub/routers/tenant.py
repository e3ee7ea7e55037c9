"""
Tenant resolution endpoint.

The frontend calls this on load to learn which organization (if any) the
current hostname belongs to.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.database import get_db
from memberhub.schemas.organization import TenantResponse
from memberhub.services.tenant_service import resolve_tenant

router = APIRouter()


def request_hostname(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-host")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("host", "")


@router.get(
    "/tenant",
    response_model=TenantResponse,
    summary="Resolve the organization for a hostname",
)
async def get_tenant(
    request: Request,
    org: str | None = Query(default=None, description="Organization slug override"),
    host: str | None = Query(default=None, description="Hostname to resolve instead of the request's"),
    db: AsyncSession = Depends(get_db),
) -> TenantResponse:
    return await resolve_tenant(db, host or request_hostname(request), org)
