"""
HakuFloat Host FastAPI Application.

This module provides the main entry point for the host server, which owns
the external address subsystem of the orchestrator.

Responsibilities:
    - External address pool management
    - Quota-gated mapping of external addresses to instances
    - Programming tenant NAT agents
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from hakufloat.db.base import close_database, initialize_database
from hakufloat.host import state
from hakufloat.host.config import config
from hakufloat.host.endpoints import external_ips, pools
from hakufloat.host.services.agent_client import RemoteAgentClient
from hakufloat.host.services.allocator import AddressAllocator
from hakufloat.host.services.datastore import Store
from hakufloat.host.services.pool_manager import PoolManager
from hakufloat.host.services.quota import QuotaService
from hakufloat.models.enums import LogLevel, ResourceType
from hakufloat.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database, start the quota service and wire the services."""
    initialize_database(config.DB_FILE)

    quota = QuotaService(
        default_limits={ResourceType.EXTERNAL_IP: config.DEFAULT_EXTERNAL_IP_QUOTA}
    )
    quota.start()

    store = Store()
    agent_client = RemoteAgentClient(timeout=config.AGENT_TIMEOUT_SECONDS)
    state.set_pool_manager(PoolManager(store, config.get_api_url))
    state.set_allocator(AddressAllocator(store, quota, agent_client, config.get_api_url))

    logger.info(f"Host API available at {config.get_api_url()}")

    try:
        yield
    finally:
        state.set_pool_manager(None)
        state.set_allocator(None)
        await quota.stop()
        close_database()
        logger.info("Host shut down")


# =============================================================================
# Application Setup
# =============================================================================

app = FastAPI(
    title="HakuFloat Host",
    description="External address pools and mappings",
    version="0.1.0",
    lifespan=lifespan,
)

# Tenant routes first: any tenant id, including "pools", must reach them
app.include_router(
    external_ips.tenant_router, prefix=config.API_PREFIX, tags=["Tenant External IPs"]
)
app.include_router(pools.router, prefix=config.API_PREFIX, tags=["Pools"])
app.include_router(external_ips.router, prefix=config.API_PREFIX, tags=["External IPs"])


# =============================================================================
# Server Entry Points
# =============================================================================


def run():
    """Run the host server using uvicorn."""
    import uvicorn

    configure_logging(config.LOG_LEVEL, config.HOST_LOG_FILE)

    uvicorn_level_map = {
        LogLevel.FULL: "debug",
        LogLevel.DEBUG: "debug",
        LogLevel.INFO: "info",
        LogLevel.WARNING: "warning",
    }
    uvicorn_level = uvicorn_level_map.get(config.LOG_LEVEL, "info")

    logger.info(f"Starting host server on {config.HOST_BIND_IP}:{config.HOST_PORT}")

    uvicorn.run(
        app,
        host=config.HOST_BIND_IP,
        port=config.HOST_PORT,
        log_level=uvicorn_level,
        log_config=None,  # Records are routed through loguru
    )


def main():
    """Entry point for the host server."""
    run()


if __name__ == "__main__":
    main()
