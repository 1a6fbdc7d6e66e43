"""Tests for pool lifecycle operations."""

import pytest

from hakufloat.host.exceptions import (
    AddressInUseError,
    BadRequestError,
    DuplicateAddressError,
    DuplicatePoolNameError,
    NotFoundError,
)
from hakufloat.host.services.pool_manager import PoolManager

from conftest import API_URL, seed_instance


def test_add_pool_from_subnet(pool_manager):
    pool = pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")

    assert pool.name == "pool-a"
    assert pool.total == 2
    assert pool.free == 2
    assert len(pool.subnets) == 1


def test_add_pool_from_ip_list(pool_manager):
    pool = pool_manager.add_pool("pool-a", ips=["203.0.113.5", "203.0.113.6"])

    assert pool.free == 2
    assert sorted(ip.address for ip in pool.ips) == ["203.0.113.5", "203.0.113.6"]


def test_add_pool_subnet_wins_over_ips(pool_manager):
    pool = pool_manager.add_pool(
        "pool-a", subnet="10.0.0.0/30", ips=["203.0.113.5"]
    )

    assert pool.total == 2
    assert pool.ips == []


def test_add_empty_pool(pool_manager):
    pool = pool_manager.add_pool("pool-a")

    assert pool.total == 0
    assert pool.free == 0


def test_duplicate_pool_name(pool_manager, store):
    pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")

    with pytest.raises(DuplicatePoolNameError):
        pool_manager.add_pool("pool-a", ips=["203.0.113.5"])

    assert len(store.get_pools()) == 1


def test_add_pool_address_failure_leaves_empty_pool(pool_manager, store):
    pool_manager.add_pool("pool-a", ips=["203.0.113.5"])

    with pytest.raises(DuplicateAddressError):
        pool_manager.add_pool("pool-b", ips=["203.0.113.5"])

    leftover = [p for p in store.get_pools() if p.name == "pool-b"]
    assert len(leftover) == 1
    assert leftover[0].total == 0


def test_show_pool_links(pool_manager):
    pool = pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")
    pool_manager.add_address(pool.id, ips=["203.0.113.5"])

    shown = pool_manager.show_pool(pool.id)

    base = f"{API_URL}/pools/{pool.id}"
    assert [(l.rel, l.href) for l in shown.links] == [("self", base)]
    subnet = shown.subnets[0]
    assert subnet.links[0].href == f"{base}/subnets/{subnet.id}"
    ip = shown.ips[0]
    assert ip.links[0].href == f"{base}/external-ips/{ip.id}"


def test_links_follow_current_api_url(store):
    urls = ["http://first:8000/api"]
    manager = PoolManager(store, lambda: urls[0])
    pool = manager.add_pool("pool-a")

    assert manager.list_pools()[0].links[0].href.startswith("http://first:8000/api")

    urls[0] = "http://second:9000/api"
    assert manager.show_pool(pool.id).links[0].href == (
        f"http://second:9000/api/pools/{pool.id}"
    )


def test_list_pools(pool_manager):
    pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")
    pool_manager.add_pool("pool-b", ips=["203.0.113.5"])

    pools = pool_manager.list_pools()

    assert [(p.name, p.free) for p in pools] == [("pool-a", 2), ("pool-b", 1)]
    assert all(p.links for p in pools)


def test_show_unknown_pool(pool_manager):
    with pytest.raises(NotFoundError):
        pool_manager.show_pool("missing")


def test_add_address_requires_a_selector(pool_manager):
    pool = pool_manager.add_pool("pool-a")

    with pytest.raises(BadRequestError):
        pool_manager.add_address(pool.id)
    with pytest.raises(BadRequestError):
        pool_manager.add_address(pool.id, ips=[])


def test_remove_address_requires_a_selector(pool_manager):
    pool = pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")

    with pytest.raises(BadRequestError):
        pool_manager.remove_address(pool.id, subnet_id=None, ip_id=None)

    assert pool_manager.show_pool(pool.id).total == 2


def test_remove_subnet_and_ip(pool_manager):
    pool = pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")
    pool_manager.add_address(pool.id, ips=["203.0.113.5"])
    shown = pool_manager.show_pool(pool.id)

    pool_manager.remove_address(pool.id, subnet_id=shown.subnets[0].id)
    assert pool_manager.show_pool(pool.id).total == 1

    pool_manager.remove_address(pool.id, ip_id=shown.ips[0].id)
    assert pool_manager.show_pool(pool.id).total == 0


def test_delete_pool(pool_manager, store):
    pool = pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")

    pool_manager.delete_pool(pool.id)

    assert store.get_pools() == []


def test_delete_pool_in_use(pool_manager, store):
    seed_instance(store)
    pool = pool_manager.add_pool("pool-a", subnet="10.0.0.0/30")
    store.map_external_ip(pool.id, "instance-1")

    with pytest.raises(AddressInUseError):
        pool_manager.delete_pool(pool.id)
