"""
Service-level data types for external address management.

These are plain dataclasses handed between the Store, the pool manager,
the allocator and the HTTP layer. Database rows (hakufloat.db) are
converted into these at the Store boundary so callers never hold peewee
model instances.

Links are never persisted; they are attached per request by
hakufloat.host.services.links, which returns new values instead of
mutating these records.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Link:
    """A hyperlink relation attached to an exposed record."""

    rel: str
    href: str


@dataclass
class Subnet:
    """A CIDR block registered in a pool."""

    id: str
    cidr: str
    pool_id: str
    links: list[Link] = field(default_factory=list)


@dataclass
class ExternalIP:
    """A single allocatable external address."""

    id: str
    address: str
    pool_id: str
    instance_id: str | None = None  # Set while mapped
    links: list[Link] = field(default_factory=list)


@dataclass
class Pool:
    """A named collection of external addresses."""

    id: str
    name: str
    free: int = 0
    total: int = 0
    subnets: list[Subnet] = field(default_factory=list)
    ips: list[ExternalIP] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)


@dataclass
class MappedIP:
    """An active binding of one external address to one instance."""

    id: str  # Same as the backing ExternalIP id
    external_ip: str
    internal_ip: str
    pool_id: str
    pool_name: str
    instance_id: str
    tenant_id: str
    links: list[Link] = field(default_factory=list)


@dataclass
class Instance:
    """A running compute workload, registered by the instance lifecycle."""

    id: str
    tenant_id: str
    ip_address: str = ""
    mac_address: str = ""


@dataclass
class Tenant:
    """
    A customer account and its network agent binding.

    Attributes:
        agent_url: Base URL of the tenant's NAT agent (empty if none yet).
        agent_id: Identifier of the agent instance (concentrator).
        agent_ip: Agent address on the tenant network.
        agent_mac: Agent MAC address on the tenant network.
    """

    id: str
    name: str = ""
    agent_url: str = ""
    agent_id: str = ""
    agent_ip: str = ""
    agent_mac: str = ""
