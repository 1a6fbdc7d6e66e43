"""
External IP Mapping Endpoints.

Maps and releases external addresses for instances. Routes without a
tenant segment act in administrator scope; /{tenant_id}/external-ips
routes only see and touch that tenant's instances and mappings.
Mappings are addressed by id, matching their self links.

Tenant routes live on tenant_router, which the app registers ahead of
every other router so a tenant id such as "pools" still reaches them.
Pool and mapping ids are uuid4 strings and never equal "external-ips".
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from hakufloat.host.endpoints.errors import http_error
from hakufloat.host.exceptions import HakuFloatError
from hakufloat.host.services.allocator import AddressAllocator
from hakufloat.host.state import get_allocator
from hakufloat.models.requests import (
    AddressUnmappedEvent,
    MapAddressRequest,
    MappedIPResponse,
)
from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()
tenant_router = APIRouter()

Allocator = Annotated[AddressAllocator, Depends(get_allocator)]


async def _map(
    allocator: AddressAllocator, request: MapAddressRequest, tenant_id: str | None
) -> MappedIPResponse:
    try:
        mapped = await allocator.map_address(
            request.instance_id,
            tenant_id=tenant_id,
            pool_name=request.pool_name,
        )
    except HakuFloatError as e:
        logger.info(f"Mapping request for instance {request.instance_id} failed: {e}")
        raise http_error(e)
    return MappedIPResponse.from_mapped(mapped)


async def _release(
    allocator: AddressAllocator, mapping_id: str, tenant_id: str | None
) -> None:
    try:
        mapped = allocator.get_mapped_address(mapping_id, tenant_id=tenant_id)
        await allocator.release_address(mapped.external_ip, tenant_id=tenant_id)
    except HakuFloatError as e:
        raise http_error(e)


# =============================================================================
# Administrator Scope
# =============================================================================


@router.get("/external-ips", response_model=list[MappedIPResponse])
async def list_mapped_addresses(allocator: Allocator):
    """List every active mapping."""
    return [
        MappedIPResponse.from_mapped(m) for m in allocator.list_mapped_addresses()
    ]


@router.post("/external-ips", response_model=MappedIPResponse, status_code=201)
async def map_address(request: MapAddressRequest, allocator: Allocator):
    """Map an external address to any tenant's instance."""
    return await _map(allocator, request, None)


@router.get("/external-ips/{mapping_id}", response_model=MappedIPResponse)
async def get_mapped_address(mapping_id: str, allocator: Allocator):
    try:
        return MappedIPResponse.from_mapped(allocator.get_mapped_address(mapping_id))
    except HakuFloatError as e:
        raise http_error(e)


@router.delete("/external-ips/{mapping_id}", status_code=204)
async def release_address(mapping_id: str, allocator: Allocator):
    """Unprogram the agent, drop the mapping and return the quota unit."""
    await _release(allocator, mapping_id, None)


# =============================================================================
# Agent Events
# =============================================================================


@router.post("/events/external-ip-unmapped", status_code=204)
async def address_unmapped(event: AddressUnmappedEvent, allocator: Allocator):
    """
    Agent callback: the agent removed a translation on its own.

    Drops the mapping and returns the quota unit without contacting the
    agent again.
    """
    try:
        await allocator.handle_unmapped_event(event.external_ip)
    except HakuFloatError as e:
        raise http_error(e)


# =============================================================================
# Tenant Scope
# =============================================================================


@tenant_router.get("/{tenant_id}/external-ips", response_model=list[MappedIPResponse])
async def list_tenant_mapped_addresses(tenant_id: str, allocator: Allocator):
    return [
        MappedIPResponse.from_mapped(m)
        for m in allocator.list_mapped_addresses(tenant_id)
    ]


@tenant_router.post(
    "/{tenant_id}/external-ips", response_model=MappedIPResponse, status_code=201
)
async def map_tenant_address(
    tenant_id: str, request: MapAddressRequest, allocator: Allocator
):
    """Map an external address to one of the tenant's instances."""
    return await _map(allocator, request, tenant_id)


@tenant_router.get(
    "/{tenant_id}/external-ips/{mapping_id}", response_model=MappedIPResponse
)
async def get_tenant_mapped_address(
    tenant_id: str, mapping_id: str, allocator: Allocator
):
    try:
        return MappedIPResponse.from_mapped(
            allocator.get_mapped_address(mapping_id, tenant_id=tenant_id)
        )
    except HakuFloatError as e:
        raise http_error(e)


@tenant_router.delete("/{tenant_id}/external-ips/{mapping_id}", status_code=204)
async def release_tenant_address(tenant_id: str, mapping_id: str, allocator: Allocator):
    await _release(allocator, mapping_id, tenant_id)
