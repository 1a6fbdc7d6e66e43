"""
Pool Management Service.

Creates, lists, shows and deletes external address pools and adds or
removes subnets and individual addresses. Reads are decorated with links
built from the host's current API URL.
"""

from __future__ import annotations

import uuid
from typing import Callable

from hakufloat.host.exceptions import BadRequestError, DuplicatePoolNameError
from hakufloat.host.services import links
from hakufloat.host.services.datastore import Store
from hakufloat.models.external_ip import Pool
from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)


class PoolManager:
    """
    Pool lifecycle operations.

    Args:
        store: Datastore holding the pools.
        api_url: Callable returning the current API base URL for links.
    """

    def __init__(self, store: Store, api_url: Callable[[], str]):
        self.store = store
        self.api_url = api_url

    # =========================================================================
    # Pools
    # =========================================================================

    def add_pool(
        self,
        name: str,
        subnet: str | None = None,
        ips: list[str] | None = None,
    ) -> Pool:
        """
        Create a pool and fill it with addresses.

        The name is checked against existing pools first. If adding the
        addresses fails, the empty pool created before is left in place and
        the error is raised unchanged; it has to be deleted separately.

        Returns:
            The pool as stored, with committed free counts.

        Raises:
            DuplicatePoolNameError: A pool with this name exists.
        """
        for pool in self.store.get_pools():
            if pool.name == name:
                raise DuplicatePoolNameError(name)

        pool = Pool(id=str(uuid.uuid4()), name=name)
        self.store.add_pool(pool)

        if subnet is not None or ips:
            try:
                self.add_address(pool.id, subnet=subnet, ips=ips)
            except Exception:
                logger.warning(
                    f"Pool '{name}' ({pool.id}) was created but adding its "
                    f"addresses failed; the empty pool is left behind"
                )
                raise

        logger.info(f"Created pool '{name}' ({pool.id})")
        return self.store.get_pool(pool.id)

    def list_pools(self) -> list[Pool]:
        api_url = self.api_url()
        return [links.pool_links(pool, api_url) for pool in self.store.get_pools()]

    def show_pool(self, pool_id: str) -> Pool:
        return links.pool_links(self.store.get_pool(pool_id), self.api_url())

    def delete_pool(self, pool_id: str) -> None:
        self.store.delete_pool(pool_id)
        logger.info(f"Deleted pool {pool_id}")

    # =========================================================================
    # Addresses
    # =========================================================================

    def add_address(
        self,
        pool_id: str,
        subnet: str | None = None,
        ips: list[str] | None = None,
    ) -> None:
        """
        Add a subnet or a list of addresses to a pool.

        A subnet takes precedence over the address list.

        Raises:
            BadRequestError: Neither a subnet nor any address was given.
        """
        if subnet is not None:
            self.store.add_external_subnet(pool_id, subnet)
            logger.info(f"Added subnet {subnet} to pool {pool_id}")
            return

        if not ips:
            raise BadRequestError("Either a subnet or a list of IPs is required")

        self.store.add_external_ips(pool_id, ips)
        logger.info(f"Added {len(ips)} address(es) to pool {pool_id}")

    def remove_address(
        self,
        pool_id: str,
        subnet_id: str | None = None,
        ip_id: str | None = None,
    ) -> None:
        """
        Remove a subnet or a single address from a pool.

        Raises:
            BadRequestError: Neither a subnet id nor an address id was given.
        """
        if subnet_id is not None:
            self.store.delete_subnet(pool_id, subnet_id)
            logger.info(f"Removed subnet {subnet_id} from pool {pool_id}")
            return

        if ip_id is not None:
            self.store.delete_external_ip(pool_id, ip_id)
            logger.info(f"Removed address {ip_id} from pool {pool_id}")
            return

        raise BadRequestError("Either a subnet id or an address id is required")
