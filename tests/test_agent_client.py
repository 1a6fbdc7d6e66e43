"""Tests for the NAT agent HTTP client."""

import json

import httpx
import pytest

from hakufloat.host.exceptions import AgentRejectedError, AgentUnreachableError
from hakufloat.host.services.agent_client import RemoteAgentClient
from hakufloat.models.external_ip import MappedIP, Tenant

TENANT = Tenant(
    id="tenant-1",
    agent_url="http://agent.local:8001/",
    agent_id="cnci-1",
    agent_ip="192.168.0.2",
    agent_mac="02:00:00:00:00:02",
)

MAPPED = MappedIP(
    id="ip-1",
    external_ip="203.0.113.5",
    internal_ip="172.16.0.10",
    pool_id="pool-1",
    pool_name="pool-a",
    instance_id="instance-1",
    tenant_id="tenant-1",
)


def _client(handler) -> RemoteAgentClient:
    return RemoteAgentClient(timeout=5.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_map_posts_assignment():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"status": "ok"})

    result = await _client(handler).map_external_ip(TENANT, MAPPED)

    assert result == {"status": "ok"}
    assert len(requests) == 1
    assert str(requests[0].url) == "http://agent.local:8001/api/external-ips/assign"
    payload = json.loads(requests[0].content)
    assert payload["external_ip"] == "203.0.113.5"
    assert payload["internal_ip"] == "172.16.0.10"
    assert payload["agent_id"] == "cnci-1"
    assert payload["instance_id"] == "instance-1"


@pytest.mark.asyncio
async def test_unmap_posts_release():
    urls = []

    def handler(request: httpx.Request) -> httpx.Response:
        urls.append(str(request.url))
        return httpx.Response(204)

    result = await _client(handler).unmap_external_ip(TENANT, MAPPED)

    assert result == {}
    assert urls == ["http://agent.local:8001/api/external-ips/release"]


@pytest.mark.asyncio
async def test_error_status_raises_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, text="address already translated")

    with pytest.raises(AgentRejectedError) as exc_info:
        await _client(handler).map_external_ip(TENANT, MAPPED)

    assert exc_info.value.status_code == 409
    assert "already translated" in exc_info.value.detail


@pytest.mark.asyncio
async def test_transport_error_raises_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(AgentUnreachableError):
        await _client(handler).map_external_ip(TENANT, MAPPED)


@pytest.mark.asyncio
async def test_tenant_without_agent():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    with pytest.raises(AgentUnreachableError):
        await _client(handler).map_external_ip(Tenant(id="tenant-2"), MAPPED)

    assert calls == []
