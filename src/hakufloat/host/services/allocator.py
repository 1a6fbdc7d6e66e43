"""
External Address Allocation Service.

Maps external addresses to instances under quota control. One mapping
touches three systems that fail independently:

    1. the quota service (one EXTERNAL_IP unit for the instance's tenant)
    2. the Store (atomic claim of a free address in a pool)
    3. the tenant's NAT agent (remote translation program)

map_address() runs them in that order and undoes completed steps in
reverse when a later one fails or the call is cancelled, so a failed call
leaves no quota consumed and no address claimed. Undo steps are best effort: if one of them fails
it is logged and the original error is what the caller sees.

Mapping lifecycle:
    map_address -> [agent programmed] -> release_address
                                           (unmap_address + store unmap
                                            + quota release)
"""

from __future__ import annotations

import asyncio
from typing import Callable

from hakufloat.host.exceptions import (
    NotFoundError,
    PoolEmptyError,
    QuotaExceededError,
)
from hakufloat.host.services import links
from hakufloat.host.services.agent_client import RemoteAgentClient
from hakufloat.host.services.datastore import Store
from hakufloat.host.services.quota import QuotaService, RequestedResource
from hakufloat.models.enums import ResourceType
from hakufloat.models.external_ip import MappedIP, Pool
from hakufloat.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)

EXTERNAL_IP_UNIT = RequestedResource(type=ResourceType.EXTERNAL_IP, value=1)


class QuotaReservation:
    """
    One granted quota unit held by an in-flight mapping attempt.

    release() hands the unit back at most once; after commit() the unit
    belongs to the mapping and release() does nothing.
    """

    def __init__(self, quota: QuotaService, tenant_id: str, resource: RequestedResource):
        self.quota = quota
        self.tenant_id = tenant_id
        self.resource = resource
        self._settled = False

    @property
    def settled(self) -> bool:
        return self._settled

    def commit(self) -> None:
        self._settled = True

    async def release(self) -> None:
        if self._settled:
            return
        self._settled = True
        try:
            await self.quota.release(self.tenant_id, self.resource)
        except Exception as e:
            logger.error(
                f"Failed to release {self.resource.type.value} quota for tenant "
                f"{self.tenant_id}: {e}"
            )


class AddressAllocator:
    """
    Quota-gated mapping of external addresses to instances.

    Args:
        store: Datastore for instances, tenants, pools and mappings.
        quota: Admission control service.
        agent_client: Client for the tenants' NAT agents.
        api_url: Callable returning the current API base URL for links.
    """

    def __init__(
        self,
        store: Store,
        quota: QuotaService,
        agent_client: RemoteAgentClient,
        api_url: Callable[[], str],
    ):
        self.store = store
        self.quota = quota
        self.agent_client = agent_client
        self.api_url = api_url

    # =========================================================================
    # Mapping
    # =========================================================================

    async def map_address(
        self,
        instance_id: str,
        tenant_id: str | None = None,
        pool_name: str | None = None,
    ) -> MappedIP:
        """
        Map a free external address to an instance.

        Args:
            instance_id: Instance to map.
            tenant_id: Caller's tenant. Empty means administrator scope, in
                which any tenant's instance may be mapped.
            pool_name: Only take an address from this pool.

        Returns:
            The committed mapping.

        Raises:
            NotFoundError: Instance (or tenant) lookup failed.
            QuotaExceededError: The tenant has no external IP quota left.
            PoolEmptyError: No matching pool has a free address.
            RemoteAgentError: The agent could not be programmed.
        """
        if tenant_id:
            instance = self.store.get_tenant_instance(tenant_id, instance_id)
        else:
            instance = self.store.get_instance(instance_id)

        result = await self.quota.consume(instance.tenant_id, EXTERNAL_IP_UNIT)
        if not result.allowed():
            raise QuotaExceededError(instance.tenant_id, ResourceType.EXTERNAL_IP.value)

        reservation = QuotaReservation(self.quota, instance.tenant_id, EXTERNAL_IP_UNIT)

        try:
            pool = self._select_pool(self.store.get_pools(), pool_name)
            mapped = self.store.map_external_ip(pool.id, instance.id)
        except BaseException:
            await asyncio.shield(reservation.release())
            raise

        try:
            tenant = self.store.get_tenant(mapped.tenant_id)
            await self.agent_client.map_external_ip(tenant, mapped)
        except BaseException as e:
            logger.warning(
                f"Mapping {mapped.external_ip} to instance {instance.id} failed, "
                f"rolling back: {e!r}"
            )
            await asyncio.shield(self._compensate(mapped, reservation))
            raise

        reservation.commit()
        logger.info(
            f"Mapped {mapped.external_ip} (pool {mapped.pool_name}) to instance "
            f"{mapped.instance_id} of tenant {mapped.tenant_id}"
        )
        return links.mapped_ip_links(mapped, self.api_url(), tenant_id)

    async def unmap_address(self, address: str) -> None:
        """
        Remove the agent program for a mapped address.

        Only the remote side is touched: the Store mapping and the quota
        unit stay until the caller releases them (see release_address).
        """
        mapped = self.store.get_mapped_ip(address)
        tenant = self.store.get_tenant(mapped.tenant_id)
        await self.agent_client.unmap_external_ip(tenant, mapped)

    async def release_address(self, address: str, tenant_id: str | None = None) -> None:
        """
        Fully tear down a mapping: agent, Store record and quota unit.

        If the agent call fails nothing is released and the error is
        raised, so the caller can retry. The Store record is only dropped
        if it still belongs to the instance resolved here.
        """
        mapped = self._check_scope(self.store.get_mapped_ip(address), tenant_id)
        tenant = self.store.get_tenant(mapped.tenant_id)
        await self.agent_client.unmap_external_ip(tenant, mapped)
        await self._drop_mapping(mapped)

    async def handle_unmapped_event(self, address: str) -> None:
        """Drop the Store mapping and its quota unit after an agent-side unmap."""
        await self._drop_mapping(self.store.get_mapped_ip(address))

    # =========================================================================
    # Queries
    # =========================================================================

    def list_mapped_addresses(self, tenant_id: str | None = None) -> list[MappedIP]:
        api_url = self.api_url()
        return [
            links.mapped_ip_links(mapped, api_url, tenant_id)
            for mapped in self.store.get_mapped_ips(tenant_id)
        ]

    def get_mapped_address(
        self, mapping_id: str, tenant_id: str | None = None
    ) -> MappedIP:
        """Show one mapping by id, as addressed by its self link."""
        mapped = self._check_scope(self.store.get_mapping(mapping_id), tenant_id)
        return links.mapped_ip_links(mapped, self.api_url(), tenant_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_scope(self, mapped: MappedIP, tenant_id: str | None) -> MappedIP:
        if tenant_id and mapped.tenant_id != tenant_id:
            # Other tenants' mappings are invisible, not forbidden
            raise NotFoundError("mapping", mapped.id)
        return mapped

    def _select_pool(self, pools: list[Pool], pool_name: str | None) -> Pool:
        """
        Pick the pool to claim from.

        A named pool is used even when its cached free count is zero; the
        Store claim decides. Otherwise the first pool with a free address.
        """
        for pool in pools:
            if pool_name is not None:
                if pool.name == pool_name:
                    return pool
            elif pool.free > 0:
                return pool
        raise PoolEmptyError(pool_name)

    async def _drop_mapping(self, mapped: MappedIP) -> None:
        try:
            self.store.unmap_external_ip(mapped.external_ip, mapped.instance_id)
        except NotFoundError:
            # Whoever dropped it first also returned the quota unit
            logger.info(
                f"{mapped.external_ip} is no longer mapped to instance "
                f"{mapped.instance_id}, nothing to release"
            )
            return
        await self.quota.release(mapped.tenant_id, EXTERNAL_IP_UNIT)
        logger.info(
            f"Released {mapped.external_ip} from instance {mapped.instance_id} "
            f"of tenant {mapped.tenant_id}"
        )

    async def _compensate(self, mapped: MappedIP, reservation: QuotaReservation) -> None:
        """Undo a claimed mapping: agent program, Store record, then quota."""
        try:
            tenant = self.store.get_tenant(mapped.tenant_id)
            await self.agent_client.unmap_external_ip(tenant, mapped)
        except Exception as e:
            logger.warning(f"Compensating agent unmap of {mapped.external_ip} failed: {e}")

        try:
            self.store.unmap_external_ip(mapped.external_ip, mapped.instance_id)
        except NotFoundError:
            logger.warning(
                f"{mapped.external_ip} was released by an unmapped event while "
                f"mapping instance {mapped.instance_id}"
            )
            reservation.commit()
        except Exception as e:
            logger.error(
                f"Address {mapped.external_ip} is left mapped to instance "
                f"{mapped.instance_id} after a failed mapping; "
                f"reconciliation required\n{format_traceback(e)}"
            )

        await reservation.release()
