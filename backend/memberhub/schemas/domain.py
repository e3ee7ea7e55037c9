"""
Custom domain schemas.
"""

from __future__ import annotations

import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

DOMAIN_RE = re.compile(
    r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$"
)


def canonical_domain(value: str) -> str:
    """Trim and lower-case, then check hostname syntax."""
    domain = value.strip().lower()
    if not domain or len(domain) > 255:
        raise ValueError("Domain must be between 1 and 255 characters")
    if "." not in domain or not DOMAIN_RE.match(domain):
        raise ValueError("Invalid domain name")
    return domain


class DomainCreateRequest(BaseModel):
    domain: str = Field(min_length=1, max_length=300)

    @field_validator("domain")
    @classmethod
    def domain_must_be_valid(cls, v: str) -> str:
        return canonical_domain(v)


class DomainResponse(BaseModel):
    id: UUID
    org_id: UUID
    domain: str
    verification_status: str
    verification_token: str
    verification_record: str
    is_primary: bool
    ssl_status: str
    ssl_issued_at: datetime | None
    verified_at: datetime | None
    last_checked_at: datetime | None
    created_at: datetime


class DomainListResponse(BaseModel):
    domains: list[DomainResponse]
    total: int


class DomainVerifyResponse(BaseModel):
    verified: bool
    status: str
    message: str
    expected: str | None = None
    found: list[str] = Field(default_factory=list)
    domain: DomainResponse


class DnsCheckResponse(BaseModel):
    domain: str
    a_records: list[str]
    cname_records: list[str]
    verification_records: list[str]
    verification_record_name: str
    expected_token: str
    token_found: bool


class SslRequestResponse(BaseModel):
    queued: bool
    domain: str
    ssl_status: str
