"""
Persistent Store for pools, external addresses and mappings.

Wraps the peewee models in hakufloat.db and hands out the dataclasses from
hakufloat.models.external_ip. Every public method is individually atomic;
atomicity across calls is the caller's responsibility.

The address claim in map_external_ip() is the single source of truth for
exclusive mapping: a conditional UPDATE only succeeds while the row is
still free, so of two callers racing for the last address only one wins.
"""

from __future__ import annotations

import datetime
import ipaddress
import uuid

import peewee

from hakufloat.db.base import db
from hakufloat.db.pool import ExternalIPRecord, PoolRecord, SubnetRecord
from hakufloat.db.tenant import InstanceRecord, TenantRecord
from hakufloat.host.exceptions import (
    AddressInUseError,
    BadRequestError,
    DuplicateAddressError,
    DuplicatePoolNameError,
    NotFoundError,
    PoolEmptyError,
)
from hakufloat.models.external_ip import (
    ExternalIP,
    Instance,
    MappedIP,
    Pool,
    Subnet,
    Tenant,
)
from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)

# Candidate rows re-read before a claim gives up on a contended pool
CLAIM_ATTEMPTS = 8


def _new_id() -> str:
    return str(uuid.uuid4())


class Store:
    """Peewee-backed datastore for the external address subsystem."""

    # =========================================================================
    # Pools
    # =========================================================================

    def get_pools(self) -> list[Pool]:
        """Return all pools in creation order."""
        records = PoolRecord.select().order_by(peewee.SQL("rowid"))
        return [self._pool_from_record(record) for record in records]

    def get_pool(self, pool_id: str) -> Pool:
        return self._pool_from_record(self._get_pool_record(pool_id))

    def add_pool(self, pool: Pool) -> None:
        """
        Insert an empty pool.

        Raises:
            DuplicatePoolNameError: If the name column's unique index rejects
                the insert (a concurrent creation with the same name).
        """
        try:
            PoolRecord.create(id=pool.id, name=pool.name)
        except peewee.IntegrityError:
            raise DuplicatePoolNameError(pool.name)
        logger.debug(f"Stored pool {pool.id} ({pool.name})")

    def delete_pool(self, pool_id: str) -> None:
        """
        Delete a pool with all its subnets and addresses.

        Raises:
            NotFoundError: Unknown pool.
            AddressInUseError: Any address in the pool is mapped.
        """
        with db.atomic():
            record = self._get_pool_record(pool_id)
            mapped = (
                ExternalIPRecord.select()
                .where(
                    (ExternalIPRecord.pool == record)
                    & ExternalIPRecord.instance_id.is_null(False)
                )
                .count()
            )
            if mapped:
                raise AddressInUseError(
                    f"Pool {pool_id} has {mapped} mapped address(es)"
                )

            ExternalIPRecord.delete().where(ExternalIPRecord.pool == record).execute()
            SubnetRecord.delete().where(SubnetRecord.pool == record).execute()
            record.delete_instance()

        logger.debug(f"Deleted pool {pool_id}")

    # =========================================================================
    # Addresses
    # =========================================================================

    def add_external_subnet(self, pool_id: str, cidr: str) -> None:
        """
        Register a subnet and all of its host addresses in a pool.

        Network and broadcast addresses are excluded, so a /30 contributes
        two addresses.

        Raises:
            BadRequestError: Invalid CIDR notation.
            DuplicateAddressError: An address is already registered.
        """
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError as e:
            raise BadRequestError(f"Invalid subnet '{cidr}': {e}")

        addresses = [str(host) for host in network.hosts()]

        with db.atomic():
            record = self._get_pool_record(pool_id)
            self._ensure_unregistered(addresses)
            subnet = SubnetRecord.create(id=_new_id(), pool=record, cidr=str(network))
            self._insert_addresses(record, addresses, subnet)

        logger.debug(
            f"Added subnet {network} ({len(addresses)} addresses) to pool {pool_id}"
        )

    def add_external_ips(self, pool_id: str, ips: list[str]) -> None:
        """
        Register individual addresses in a pool.

        Raises:
            BadRequestError: An entry is not a valid IP address.
            DuplicateAddressError: An address is already registered.
        """
        addresses = []
        for ip in ips:
            try:
                addresses.append(str(ipaddress.ip_address(ip.strip())))
            except ValueError as e:
                raise BadRequestError(f"Invalid address '{ip}': {e}")

        with db.atomic():
            record = self._get_pool_record(pool_id)
            self._ensure_unregistered(addresses)
            self._insert_addresses(record, addresses, None)

        logger.debug(f"Added {len(addresses)} addresses to pool {pool_id}")

    def delete_subnet(self, pool_id: str, subnet_id: str) -> None:
        """Remove a subnet and its addresses from a pool."""
        with db.atomic():
            subnet = SubnetRecord.get_or_none(
                (SubnetRecord.id == subnet_id) & (SubnetRecord.pool == pool_id)
            )
            if subnet is None:
                raise NotFoundError("subnet", subnet_id)

            mapped = (
                ExternalIPRecord.select()
                .where(
                    (ExternalIPRecord.subnet == subnet)
                    & ExternalIPRecord.instance_id.is_null(False)
                )
                .count()
            )
            if mapped:
                raise AddressInUseError(
                    f"Subnet {subnet.cidr} has {mapped} mapped address(es)"
                )

            ExternalIPRecord.delete().where(ExternalIPRecord.subnet == subnet).execute()
            subnet.delete_instance()

    def delete_external_ip(self, pool_id: str, ip_id: str) -> None:
        """Remove a single address from a pool."""
        with db.atomic():
            record = ExternalIPRecord.get_or_none(
                (ExternalIPRecord.id == ip_id) & (ExternalIPRecord.pool == pool_id)
            )
            if record is None:
                raise NotFoundError("external ip", ip_id)
            if record.is_mapped():
                raise AddressInUseError(
                    f"Address {record.address} is mapped to {record.instance_id}"
                )
            record.delete_instance()

    # =========================================================================
    # Mappings
    # =========================================================================

    def get_mapped_ips(self, tenant_id: str | None = None) -> list[MappedIP]:
        """Return active mappings, optionally restricted to one tenant."""
        query = (
            ExternalIPRecord.select(ExternalIPRecord, PoolRecord)
            .join(PoolRecord)
            .where(ExternalIPRecord.instance_id.is_null(False))
        )
        if tenant_id:
            query = query.where(ExternalIPRecord.tenant_id == tenant_id)
        query = query.order_by(ExternalIPRecord.mapped_at, ExternalIPRecord.address)
        return [self._mapped_from_record(record) for record in query]

    def get_mapped_ip(self, address: str) -> MappedIP:
        record = ExternalIPRecord.get_or_none(
            (ExternalIPRecord.address == address)
            & ExternalIPRecord.instance_id.is_null(False)
        )
        if record is None:
            raise NotFoundError("mapping", address)
        return self._mapped_from_record(record)

    def get_mapping(self, mapping_id: str) -> MappedIP:
        """Look up an active mapping by its id (the address record id)."""
        record = ExternalIPRecord.get_or_none(
            (ExternalIPRecord.id == mapping_id)
            & ExternalIPRecord.instance_id.is_null(False)
        )
        if record is None:
            raise NotFoundError("mapping", mapping_id)
        return self._mapped_from_record(record)

    def map_external_ip(self, pool_id: str, instance_id: str) -> MappedIP:
        """
        Atomically claim one free address of a pool for an instance.

        Raises:
            NotFoundError: Unknown pool or instance.
            PoolEmptyError: No free address could be claimed.
        """
        pool = self._get_pool_record(pool_id)
        instance = self._get_instance_record(instance_id)

        for _ in range(CLAIM_ATTEMPTS):
            with db.atomic():
                candidate = (
                    ExternalIPRecord.select(ExternalIPRecord.id)
                    .where(
                        (ExternalIPRecord.pool == pool)
                        & ExternalIPRecord.instance_id.is_null()
                    )
                    .order_by(peewee.SQL("rowid"))
                    .first()
                )
                if candidate is None:
                    raise PoolEmptyError(pool.name)

                claimed = (
                    ExternalIPRecord.update(
                        instance_id=instance.id,
                        tenant_id=instance.tenant_id,
                        mapped_at=datetime.datetime.now(),
                    )
                    .where(
                        (ExternalIPRecord.id == candidate.id)
                        & ExternalIPRecord.instance_id.is_null()
                    )
                    .execute()
                )

            if claimed:
                record = ExternalIPRecord.get_by_id(candidate.id)
                logger.debug(
                    f"Claimed {record.address} from pool {pool.name} "
                    f"for instance {instance.id}"
                )
                return self._mapped_from_record(record)

        raise PoolEmptyError(pool.name)

    def unmap_external_ip(self, address: str, instance_id: str | None = None) -> None:
        """
        Return a mapped address to its pool's free set.

        With instance_id, only a mapping to that instance is dropped, so a
        stale caller cannot release a newer mapping of the same address.
        """
        condition = (ExternalIPRecord.address == address) & (
            ExternalIPRecord.instance_id.is_null(False)
        )
        if instance_id is not None:
            condition &= ExternalIPRecord.instance_id == instance_id

        released = (
            ExternalIPRecord.update(instance_id=None, tenant_id=None, mapped_at=None)
            .where(condition)
            .execute()
        )
        if not released:
            raise NotFoundError("mapping", address)
        logger.debug(f"Unmapped {address}")

    # =========================================================================
    # Tenants & Instances
    # =========================================================================

    def add_tenant(self, tenant: Tenant) -> None:
        """Insert or replace a tenant and its agent binding."""
        TenantRecord.replace(
            id=tenant.id,
            name=tenant.name,
            agent_url=tenant.agent_url,
            agent_id=tenant.agent_id,
            agent_ip=tenant.agent_ip,
            agent_mac=tenant.agent_mac,
        ).execute()

    def get_tenant(self, tenant_id: str) -> Tenant:
        record = TenantRecord.get_or_none(TenantRecord.id == tenant_id)
        if record is None:
            raise NotFoundError("tenant", tenant_id)
        return Tenant(
            id=record.id,
            name=record.name,
            agent_url=record.agent_url,
            agent_id=record.agent_id,
            agent_ip=record.agent_ip,
            agent_mac=record.agent_mac,
        )

    def add_instance(self, instance: Instance) -> None:
        InstanceRecord.replace(
            id=instance.id,
            tenant_id=instance.tenant_id,
            ip_address=instance.ip_address,
            mac_address=instance.mac_address,
        ).execute()

    def get_instance(self, instance_id: str) -> Instance:
        return self._instance_from_record(self._get_instance_record(instance_id))

    def get_tenant_instance(self, tenant_id: str, instance_id: str) -> Instance:
        """Look up an instance, hiding instances owned by other tenants."""
        record = InstanceRecord.get_or_none(
            (InstanceRecord.id == instance_id) & (InstanceRecord.tenant_id == tenant_id)
        )
        if record is None:
            raise NotFoundError("instance", instance_id)
        return self._instance_from_record(record)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_pool_record(self, pool_id: str) -> PoolRecord:
        record = PoolRecord.get_or_none(PoolRecord.id == pool_id)
        if record is None:
            raise NotFoundError("pool", pool_id)
        return record

    def _get_instance_record(self, instance_id: str) -> InstanceRecord:
        record = InstanceRecord.get_or_none(InstanceRecord.id == instance_id)
        if record is None:
            raise NotFoundError("instance", instance_id)
        return record

    def _ensure_unregistered(self, addresses: list[str]) -> None:
        # SQLite caps bound parameters per statement
        for start in range(0, len(addresses), 500):
            chunk = addresses[start : start + 500]
            existing = (
                ExternalIPRecord.select(ExternalIPRecord.address)
                .where(ExternalIPRecord.address.in_(chunk))
                .first()
            )
            if existing is not None:
                raise DuplicateAddressError(existing.address)

    def _insert_addresses(
        self,
        pool: PoolRecord,
        addresses: list[str],
        subnet: SubnetRecord | None,
    ) -> None:
        rows = [
            {"id": _new_id(), "pool": pool, "subnet": subnet, "address": address}
            for address in addresses
        ]
        try:
            for batch in peewee.chunked(rows, 100):
                ExternalIPRecord.insert_many(batch).execute()
        except peewee.IntegrityError as e:
            raise DuplicateAddressError(str(e))

    def _pool_from_record(self, record: PoolRecord) -> Pool:
        subnets = [
            Subnet(id=s.id, cidr=s.cidr, pool_id=record.id)
            for s in SubnetRecord.select()
            .where(SubnetRecord.pool == record)
            .order_by(peewee.SQL("rowid"))
        ]
        ips = [
            ExternalIP(
                id=ip.id,
                address=ip.address,
                pool_id=record.id,
                instance_id=ip.instance_id,
            )
            for ip in ExternalIPRecord.select()
            .where(
                (ExternalIPRecord.pool == record) & ExternalIPRecord.subnet.is_null()
            )
            .order_by(peewee.SQL("rowid"))
        ]
        total = ExternalIPRecord.select().where(ExternalIPRecord.pool == record).count()
        free = (
            ExternalIPRecord.select()
            .where(
                (ExternalIPRecord.pool == record) & ExternalIPRecord.instance_id.is_null()
            )
            .count()
        )
        return Pool(
            id=record.id,
            name=record.name,
            free=free,
            total=total,
            subnets=subnets,
            ips=ips,
        )

    def _mapped_from_record(self, record: ExternalIPRecord) -> MappedIP:
        instance = InstanceRecord.get_or_none(InstanceRecord.id == record.instance_id)
        return MappedIP(
            id=record.id,
            external_ip=record.address,
            internal_ip=instance.ip_address if instance else "",
            pool_id=record.pool.id,
            pool_name=record.pool.name,
            instance_id=record.instance_id,
            tenant_id=record.tenant_id,
        )

    def _instance_from_record(self, record: InstanceRecord) -> Instance:
        return Instance(
            id=record.id,
            tenant_id=record.tenant_id,
            ip_address=record.ip_address,
            mac_address=record.mac_address,
        )
