"""
Pool Management Endpoints.

Administrator API for external address pools: creation, listing,
deletion, and adding or removing subnets and individual addresses.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from hakufloat.host.endpoints.errors import http_error
from hakufloat.host.exceptions import HakuFloatError
from hakufloat.host.services.pool_manager import PoolManager
from hakufloat.host.state import get_pool_manager
from hakufloat.models.requests import AddAddressRequest, AddPoolRequest, PoolResponse
from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

Pools = Annotated[PoolManager, Depends(get_pool_manager)]


# =============================================================================
# Pools
# =============================================================================


@router.get("/pools", response_model=list[PoolResponse])
async def list_pools(manager: Pools):
    """List all pools with their free address counts."""
    return [PoolResponse.from_pool(pool) for pool in manager.list_pools()]


@router.post("/pools", response_model=PoolResponse, status_code=201)
async def add_pool(request: AddPoolRequest, manager: Pools):
    """
    Create a pool, optionally filled from a subnet or an address list.

    If the addresses are rejected the (empty) pool still exists and has to
    be deleted separately.
    """
    try:
        pool = manager.add_pool(request.name, subnet=request.subnet, ips=request.ips)
    except HakuFloatError as e:
        raise http_error(e)
    return PoolResponse.from_pool(manager.show_pool(pool.id))


@router.get("/pools/{pool_id}", response_model=PoolResponse)
async def show_pool(pool_id: str, manager: Pools):
    try:
        return PoolResponse.from_pool(manager.show_pool(pool_id))
    except HakuFloatError as e:
        raise http_error(e)


@router.delete("/pools/{pool_id}", status_code=204)
async def delete_pool(pool_id: str, manager: Pools):
    """Delete a pool. Rejected while any of its addresses is mapped."""
    try:
        manager.delete_pool(pool_id)
    except HakuFloatError as e:
        raise http_error(e)


# =============================================================================
# Addresses
# =============================================================================


@router.post("/pools/{pool_id}", status_code=204)
async def add_address(pool_id: str, request: AddAddressRequest, manager: Pools):
    """Add a subnet or a list of addresses to a pool."""
    try:
        manager.add_address(pool_id, subnet=request.subnet, ips=request.ips)
    except HakuFloatError as e:
        raise http_error(e)


@router.delete("/pools/{pool_id}/subnets/{subnet_id}", status_code=204)
async def remove_subnet(pool_id: str, subnet_id: str, manager: Pools):
    try:
        manager.remove_address(pool_id, subnet_id=subnet_id)
    except HakuFloatError as e:
        raise http_error(e)


@router.delete("/pools/{pool_id}/external-ips/{ip_id}", status_code=204)
async def remove_external_ip(pool_id: str, ip_id: str, manager: Pools):
    try:
        manager.remove_address(pool_id, ip_id=ip_id)
    except HakuFloatError as e:
        raise http_error(e)
