"""
Remote NAT agent client.

Programs a tenant's network agent to install or remove the translation
for an external address. Both calls are single attempts: transport
failures raise AgentUnreachableError and error responses raise
AgentRejectedError, and the caller decides how to compensate.
"""

import httpx

from hakufloat.host.exceptions import AgentRejectedError, AgentUnreachableError
from hakufloat.models.external_ip import MappedIP, Tenant
from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)


class RemoteAgentClient:
    """
    HTTP client for tenant NAT agents.

    Args:
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def map_external_ip(self, tenant: Tenant, mapped: MappedIP) -> dict:
        """Ask the tenant's agent to start translating an external address."""
        return await self._send(tenant, "assign", mapped)

    async def unmap_external_ip(self, tenant: Tenant, mapped: MappedIP) -> dict:
        """Ask the tenant's agent to stop translating an external address."""
        return await self._send(tenant, "release", mapped)

    def _payload(self, tenant: Tenant, mapped: MappedIP) -> dict:
        return {
            "agent_id": tenant.agent_id,
            "tenant_id": tenant.id,
            "instance_id": mapped.instance_id,
            "external_ip": mapped.external_ip,
            "internal_ip": mapped.internal_ip,
            "agent_ip": tenant.agent_ip,
            "agent_mac": tenant.agent_mac,
        }

    async def _send(self, tenant: Tenant, action: str, mapped: MappedIP) -> dict:
        if not tenant.agent_url:
            raise AgentUnreachableError(f"Tenant {tenant.id} has no network agent")

        url = f"{tenant.agent_url.rstrip('/')}/api/external-ips/{action}"
        payload = self._payload(tenant, mapped)

        logger.info(
            f"Sending {action} of {mapped.external_ip} -> {mapped.internal_ip} "
            f"to agent {tenant.agent_id or tenant.agent_url}"
        )
        logger.debug(f"Agent payload: {payload}")

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(url, json=payload, timeout=self.timeout)
                response.raise_for_status()
        except httpx.RequestError as e:
            logger.error(f"Agent for tenant {tenant.id} unreachable at {url}: {e}")
            raise AgentUnreachableError(
                f"Agent for tenant {tenant.id} unreachable: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Agent for tenant {tenant.id} rejected {action} of "
                f"{mapped.external_ip}: {e.response.status_code} - {e.response.text}"
            )
            raise AgentRejectedError(e.response.status_code, e.response.text) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}
