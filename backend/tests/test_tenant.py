"""
Hostname to tenant resolution.
"""

import pytest

from memberhub.core.tenant import HostResolution, normalize_hostname, resolve_host
from memberhub.models.domain import OrganizationDomain, VerificationStatus

BASES = ["m.ringing.org.uk", "member.ringing.org.uk"]


# ---------------------------------------------------------------------------
# Pure resolution
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "host, expected",
    [
        ("guild.m.ringing.org.uk", HostResolution(slug="guild")),
        ("Guild.Member.Ringing.Org.UK:443", HostResolution(slug="guild")),
        ("admin.m.ringing.org.uk", HostResolution(is_super_admin=True)),
        ("m.ringing.org.uk", HostResolution()),
        ("localhost:5173", HostResolution()),
        ("127.0.0.1", HostResolution()),
        ("10.1.2.3:8000", HostResolution()),
        ("members.example.org.", HostResolution(custom_domain="members.example.org")),
    ],
)
def test_resolve_host(host, expected):
    assert resolve_host(host, base_domains=BASES, super_admin_subdomain="admin") == expected


def test_org_param_wins():
    resolved = resolve_host("members.example.org", "  Guild ", base_domains=BASES)
    assert resolved == HostResolution(slug="guild")
    assert resolve_host("localhost", "admin", base_domains=BASES, super_admin_subdomain="admin").is_super_admin


def test_blank_org_param_falls_back_to_host():
    resolved = resolve_host("guild.m.ringing.org.uk", "   ", base_domains=BASES)
    assert resolved == HostResolution(slug="guild")


def test_normalize_hostname():
    assert normalize_hostname(" Example.COM:8080 ") == "example.com"
    assert normalize_hostname("example.com.") == "example.com"


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tenant_by_org_param(client, org):
    resp = await client.get("/api/v1/tenant", params={"org": org.slug})
    assert resp.status_code == 200
    body = resp.json()
    assert body["organization"]["slug"] == org.slug
    assert body["is_custom_domain"] is False


@pytest.mark.asyncio
async def test_tenant_by_forwarded_host(client, org):
    resp = await client.get(
        "/api/v1/tenant", headers={"X-Forwarded-Host": f"{org.slug}.m.ringing.org.uk"}
    )
    assert resp.json()["organization"]["slug"] == org.slug


@pytest.mark.asyncio
async def test_tenant_unknown_slug(client):
    resp = await client.get("/api/v1/tenant", params={"org": "nobody"})
    assert resp.status_code == 200
    assert resp.json()["organization"] is None


@pytest.mark.asyncio
async def test_tenant_super_admin_host(client):
    resp = await client.get("/api/v1/tenant", params={"host": "admin.m.ringing.org.uk"})
    assert resp.json()["is_super_admin"] is True


@pytest.mark.asyncio
async def test_custom_domain_only_when_verified(client, db, org):
    record = OrganizationDomain(
        org_id=org.id,
        domain="members.example.org",
        verification_status=VerificationStatus.pending,
        verification_token="a" * 64,
    )
    db.add(record)
    await db.commit()

    resp = await client.get("/api/v1/tenant", params={"host": "members.example.org"})
    assert resp.json()["organization"] is None

    record.verification_status = VerificationStatus.verified
    await db.commit()

    resp = await client.get("/api/v1/tenant", params={"host": "members.example.org"})
    body = resp.json()
    assert body["is_custom_domain"] is True
    assert body["organization"]["slug"] == org.slug
