"""
Hyperlink decoration for pools and mapped addresses.

Links depend on the API base URL the host is currently reachable at, so
they are built per request and never stored. Every function returns a
new record; the input is left untouched.
"""

from __future__ import annotations

from dataclasses import replace

from hakufloat.models.enums import LinkRel
from hakufloat.models.external_ip import Link, MappedIP, Pool


def _self_link(href: str) -> list[Link]:
    return [Link(rel=LinkRel.SELF.value, href=href)]


def pool_links(pool: Pool, api_url: str) -> Pool:
    """Return a copy of the pool with links on it, its subnets and its IPs."""
    base = f"{api_url}/pools/{pool.id}"

    subnets = [
        replace(subnet, links=_self_link(f"{base}/subnets/{subnet.id}"))
        for subnet in pool.subnets
    ]
    ips = [
        replace(ip, links=_self_link(f"{base}/external-ips/{ip.id}"))
        for ip in pool.ips
    ]
    return replace(pool, subnets=subnets, ips=ips, links=_self_link(base))


def mapped_ip_links(
    mapped: MappedIP, api_url: str, tenant_id: str | None = None
) -> MappedIP:
    """
    Return a copy of a mapping with links for the caller's scope.

    Tenant scope gets only a self link under the tenant path. Administrator
    scope (no tenant) gets a self link and a link to the owning pool.
    """
    if tenant_id:
        links = _self_link(f"{api_url}/{tenant_id}/external-ips/{mapped.id}")
    else:
        links = _self_link(f"{api_url}/external-ips/{mapped.id}")
        links.append(Link(rel=LinkRel.POOL.value, href=f"{api_url}/pools/{mapped.pool_id}"))

    return replace(mapped, links=links)
