"""
Shared state accessors for host modules.

Avoids circular imports between host/app.py and host/endpoints/*.
The app module sets these references during startup; endpoint modules
read them via the getters.
"""

from hakufloat.host.services.allocator import AddressAllocator
from hakufloat.host.services.pool_manager import PoolManager

_pool_manager: PoolManager | None = None
_allocator: AddressAllocator | None = None


def set_pool_manager(manager: PoolManager | None):
    global _pool_manager
    _pool_manager = manager


def set_allocator(allocator: AddressAllocator | None):
    global _allocator
    _allocator = allocator


def get_pool_manager() -> PoolManager:
    """Get the pool manager instance."""
    if _pool_manager is None:
        raise RuntimeError("Pool manager is not initialized")
    return _pool_manager


def get_allocator() -> AddressAllocator:
    """Get the address allocator instance."""
    if _allocator is None:
        raise RuntimeError("Address allocator is not initialized")
    return _allocator
