"""Shared pytest fixtures for HakuFloat tests."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from hakufloat.db.base import close_database, initialize_database
from hakufloat.host import state
from hakufloat.host.app import app
from hakufloat.host.config import config
from hakufloat.host.services.agent_client import RemoteAgentClient
from hakufloat.host.services.allocator import AddressAllocator
from hakufloat.host.services.datastore import Store
from hakufloat.host.services.pool_manager import PoolManager
from hakufloat.host.services.quota import QuotaService
from hakufloat.models.external_ip import Instance, Tenant

API_URL = "http://test.local:8000/api"


def api_url() -> str:
    return API_URL


@pytest.fixture(scope="function")
def database(tmp_path):
    """Initialize a fresh SQLite database file for each test."""
    initialize_database(str(tmp_path / "hakufloat.db"))
    try:
        yield
    finally:
        close_database()


@pytest.fixture(scope="function")
def store(database) -> Store:
    return Store()


@pytest.fixture(scope="function")
def pool_manager(store) -> PoolManager:
    return PoolManager(store, api_url)


@pytest_asyncio.fixture(scope="function")
async def quota():
    """A running quota service with no default limits."""
    service = QuotaService()
    service.start()
    try:
        yield service
    finally:
        await service.stop()


@pytest.fixture(scope="function")
def agent_client() -> AsyncMock:
    """Agent client double that accepts every request."""
    client = AsyncMock(spec=RemoteAgentClient)
    client.map_external_ip.return_value = {}
    client.unmap_external_ip.return_value = {}
    return client


@pytest.fixture(scope="function")
def allocator(store, quota, agent_client) -> AddressAllocator:
    return AddressAllocator(store, quota, agent_client, api_url)


def seed_instance(
    store: Store,
    tenant_id: str = "tenant-1",
    instance_id: str = "instance-1",
    agent_url: str = "http://agent.tenant-1:8001",
) -> Instance:
    """Register a tenant with a NAT agent and one instance owned by it."""
    store.add_tenant(
        Tenant(
            id=tenant_id,
            name=tenant_id,
            agent_url=agent_url,
            agent_id=f"cnci-{tenant_id}",
            agent_ip="192.168.0.2",
            agent_mac="02:00:00:00:00:02",
        )
    )
    instance = Instance(
        id=instance_id,
        tenant_id=tenant_id,
        ip_address="172.16.0.10",
        mac_address="02:00:ac:10:00:0a",
    )
    store.add_instance(instance)
    return instance


@pytest.fixture(scope="function")
def test_client(tmp_path, monkeypatch):
    """FastAPI test client on a temporary database with a mocked agent."""
    monkeypatch.setattr(config, "DB_FILE", str(tmp_path / "api.db"))
    monkeypatch.setattr(config, "HOST_REACHABLE_ADDRESS", "test.local")
    monkeypatch.setattr(config, "HOST_PORT", 8000)

    try:
        with TestClient(app) as client:
            agent = AsyncMock(spec=RemoteAgentClient)
            agent.map_external_ip.return_value = {}
            agent.unmap_external_ip.return_value = {}
            state.get_allocator().agent_client = agent
            yield client
    finally:
        # Tests seed data from this thread; drop its connection too
        close_database()
