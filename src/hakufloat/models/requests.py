"""
Pydantic models for API requests and responses.

This module defines the data transfer objects used by the HakuFloat host
API. Service-level dataclasses are converted to response models with the
from_* constructors so the HTTP shape stays independent of them.

Model Categories:
    - Pool Requests: Pool creation and address addition
    - Mapping Requests: External address mapping
    - Responses: Pools, subnets, addresses, mappings
"""

from pydantic import BaseModel, Field

from hakufloat.models.external_ip import ExternalIP, Link, MappedIP, Pool, Subnet


# =============================================================================
# Pool Request Models
# =============================================================================


class AddPoolRequest(BaseModel):
    """Request body for pool creation."""

    name: str = Field(..., min_length=1, description="Unique pool name")
    subnet: str | None = Field(
        default=None,
        description="CIDR whose host addresses are added (e.g. '203.0.113.0/28')",
    )
    ips: list[str] = Field(
        default_factory=list,
        description="Individual addresses, used when no subnet is given",
    )


class AddAddressRequest(BaseModel):
    """Request body for adding addresses to an existing pool."""

    subnet: str | None = Field(default=None, description="CIDR to add")
    ips: list[str] = Field(default_factory=list, description="Addresses to add")


# =============================================================================
# Mapping Request Models
# =============================================================================


class MapAddressRequest(BaseModel):
    """Request body for mapping an external address to an instance."""

    instance_id: str = Field(..., min_length=1, description="Instance to map")
    pool_name: str | None = Field(
        default=None,
        description="Take the address from this pool (None=first pool with space)",
    )


class AddressUnmappedEvent(BaseModel):
    """Agent notification that a translation was removed on the agent side."""

    external_ip: str = Field(..., description="External address no longer mapped")


# =============================================================================
# Response Models
# =============================================================================


class LinkResponse(BaseModel):
    rel: str
    href: str

    @classmethod
    def from_link(cls, link: Link) -> "LinkResponse":
        return cls(rel=link.rel, href=link.href)


class SubnetResponse(BaseModel):
    id: str
    subnet: str
    links: list[LinkResponse] = Field(default_factory=list)

    @classmethod
    def from_subnet(cls, subnet: Subnet) -> "SubnetResponse":
        return cls(
            id=subnet.id,
            subnet=subnet.cidr,
            links=[LinkResponse.from_link(link) for link in subnet.links],
        )


class ExternalIPResponse(BaseModel):
    id: str
    address: str
    links: list[LinkResponse] = Field(default_factory=list)

    @classmethod
    def from_ip(cls, ip: ExternalIP) -> "ExternalIPResponse":
        return cls(
            id=ip.id,
            address=ip.address,
            links=[LinkResponse.from_link(link) for link in ip.links],
        )


class PoolResponse(BaseModel):
    """A pool as shown to administrators."""

    id: str
    name: str
    free: int
    total_ips: int
    subnets: list[SubnetResponse] = Field(default_factory=list)
    ips: list[ExternalIPResponse] = Field(default_factory=list)
    links: list[LinkResponse] = Field(default_factory=list)

    @classmethod
    def from_pool(cls, pool: Pool) -> "PoolResponse":
        return cls(
            id=pool.id,
            name=pool.name,
            free=pool.free,
            total_ips=pool.total,
            subnets=[SubnetResponse.from_subnet(s) for s in pool.subnets],
            ips=[ExternalIPResponse.from_ip(ip) for ip in pool.ips],
            links=[LinkResponse.from_link(link) for link in pool.links],
        )


class MappedIPResponse(BaseModel):
    """An active external address mapping."""

    id: str
    external_ip: str
    internal_ip: str
    instance_id: str
    tenant_id: str
    pool_id: str
    pool_name: str
    links: list[LinkResponse] = Field(default_factory=list)

    @classmethod
    def from_mapped(cls, mapped: MappedIP) -> "MappedIPResponse":
        return cls(
            id=mapped.id,
            external_ip=mapped.external_ip,
            internal_ip=mapped.internal_ip,
            instance_id=mapped.instance_id,
            tenant_id=mapped.tenant_id,
            pool_id=mapped.pool_id,
            pool_name=mapped.pool_name,
            links=[LinkResponse.from_link(link) for link in mapped.links],
        )
