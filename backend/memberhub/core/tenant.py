"""
Tenant resolution from the request host.

Maps a hostname (plus an optional ``org`` override) to an organization
slug, the super admin console, or a custom domain to look up.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass

from memberhub.core.config import settings

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})


@dataclass(frozen=True)
class HostResolution:
    slug: str | None = None
    is_super_admin: bool = False
    custom_domain: str | None = None


def _is_ip_address(hostname: str) -> bool:
    try:
        ipaddress.IPv4Address(hostname)
    except ValueError:
        return False
    return True


def normalize_hostname(hostname: str) -> str:
    """Lower-case, strip the port and any trailing dot."""
    host = hostname.strip().lower()
    if host.startswith("[") or host.count(":") > 1:
        return host
    return host.split(":", 1)[0].rstrip(".")


def resolve_host(
    hostname: str,
    org_param: str | None = None,
    base_domains: list[str] | None = None,
    super_admin_subdomain: str | None = None,
) -> HostResolution:
    """
    Work out which tenant a request is for.

    An explicit ``org`` parameter always wins. Local hosts and bare IPs
    carry no tenant. Hosts under a base domain use their first label as
    the slug. Anything else is treated as a custom domain.
    """
    domains = base_domains if base_domains is not None else settings.BASE_DOMAINS
    admin_label = super_admin_subdomain or settings.SUPER_ADMIN_SUBDOMAIN

    org_param = (org_param or "").strip().lower()
    if org_param:
        if org_param == admin_label:
            return HostResolution(is_super_admin=True)
        return HostResolution(slug=org_param)

    host = normalize_hostname(hostname)
    if not host or host in LOCAL_HOSTS or _is_ip_address(host):
        return HostResolution()

    for base in domains:
        base = base.lower()
        if host == base:
            return HostResolution()
        if host.endswith("." + base):
            label = host[: -len(base) - 1].split(".")[0]
            if label == admin_label:
                return HostResolution(is_super_admin=True)
            return HostResolution(slug=label)

    return HostResolution(custom_domain=host)
