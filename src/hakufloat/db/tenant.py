"""
Tenant and instance database models for HakuFloat.

Tenants and instances are owned by the orchestrator's lifecycle services;
this package only reads them, except for the registration helpers on the
Store that those services (and tests) use to populate them.
"""

import peewee

from hakufloat.db.base import BaseModel


class TenantRecord(BaseModel):
    """A tenant and the binding of its network (NAT) agent."""

    id = peewee.CharField(primary_key=True)
    name = peewee.CharField(default="")
    agent_url = peewee.CharField(default="")  # e.g. http://10.0.0.7:8001
    agent_id = peewee.CharField(default="")
    agent_ip = peewee.CharField(default="")
    agent_mac = peewee.CharField(default="")

    class Meta:
        table_name = "tenants"


class InstanceRecord(BaseModel):
    """A running compute instance owned by a tenant."""

    id = peewee.CharField(primary_key=True)
    tenant_id = peewee.CharField(index=True)
    ip_address = peewee.CharField(default="")
    mac_address = peewee.CharField(default="")

    class Meta:
        table_name = "instances"
