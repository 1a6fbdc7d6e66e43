"""
External address pool database models for HakuFloat.

Three tables back the pool state:
    - pools: named pools
    - subnets: CIDR blocks registered in a pool
    - external_ips: every allocatable address, with its mapping state

An address is mapped when its instance_id column is set. The mapping
columns are only ever changed by a conditional UPDATE in the Store, which
is what makes a claim atomic.
"""

import datetime

import peewee

from hakufloat.db.base import BaseModel


# =============================================================================
# Pool Model
# =============================================================================


class PoolRecord(BaseModel):
    """
    A named collection of external addresses.

    Attributes:
        id: Generated UUID string (primary key).
        name: Pool name, unique across all pools.
    """

    id = peewee.CharField(primary_key=True, max_length=36)
    name = peewee.CharField(unique=True, index=True)
    created_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "pools"


# =============================================================================
# Subnet Model
# =============================================================================


class SubnetRecord(BaseModel):
    """A CIDR block whose host addresses were expanded into a pool."""

    id = peewee.CharField(primary_key=True, max_length=36)
    pool = peewee.ForeignKeyField(PoolRecord, backref="subnets", on_delete="CASCADE")
    cidr = peewee.CharField()
    created_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "subnets"


# =============================================================================
# External IP Model
# =============================================================================


class ExternalIPRecord(BaseModel):
    """
    A single allocatable address.

    Attributes:
        address: The address string, unique across all pools.
        subnet: Owning subnet, or NULL for individually added addresses.
        instance_id: Mapped instance (NULL while free).
        tenant_id: Tenant of the mapped instance (NULL while free).
    """

    id = peewee.CharField(primary_key=True, max_length=36)
    pool = peewee.ForeignKeyField(PoolRecord, backref="ips", on_delete="CASCADE")
    subnet = peewee.ForeignKeyField(
        SubnetRecord, backref="ips", null=True, on_delete="CASCADE"
    )
    address = peewee.CharField(unique=True, index=True)

    # -------------------------------------------------------------------------
    # Mapping State
    # -------------------------------------------------------------------------

    instance_id = peewee.CharField(null=True, index=True)
    tenant_id = peewee.CharField(null=True, index=True)
    mapped_at = peewee.DateTimeField(null=True)

    class Meta:
        table_name = "external_ips"

    def is_mapped(self) -> bool:
        return self.instance_id is not None
