"""
Host server configuration for HakuFloat.

This module defines the configuration dataclass for the host server,
providing a centralized place for all configurable parameters.

Configuration can be modified at runtime by importing the global config
instance and updating its attributes before starting the server. The API
base URL is read per request when building hyperlinks, so changing
HOST_REACHABLE_ADDRESS or HOST_PORT is reflected in links immediately.

Usage:
    from hakufloat.host.config import config

    config.HOST_PORT = 9000
    config.LOG_LEVEL = LogLevel.DEBUG
"""

from dataclasses import dataclass

from hakufloat.models.enums import LogLevel


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class HostConfig:
    """
    Host server configuration.

    Attributes:
        HOST_BIND_IP: IP address to bind the server to.
        HOST_PORT: HTTP API port.
        HOST_REACHABLE_ADDRESS: Address clients use to reach this host.
        API_PREFIX: Path prefix all routers are mounted under.
        DB_FILE: Path to the SQLite database file.
        LOG_LEVEL: Logging verbosity level.
        AGENT_TIMEOUT_SECONDS: Timeout for NAT agent requests.
        DEFAULT_EXTERNAL_IP_QUOTA: Per-tenant external IP limit (-1 = unlimited).
    """

    # -------------------------------------------------------------------------
    # Network Configuration
    # -------------------------------------------------------------------------

    HOST_BIND_IP: str = "0.0.0.0"
    HOST_PORT: int = 8000
    HOST_REACHABLE_ADDRESS: str = "127.0.0.1"
    API_PREFIX: str = "/api"

    # -------------------------------------------------------------------------
    # Path Configuration
    # -------------------------------------------------------------------------

    DB_FILE: str = "/var/lib/hakufloat/hakufloat.db"
    HOST_LOG_FILE: str = ""

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO

    # -------------------------------------------------------------------------
    # Agent Configuration
    # -------------------------------------------------------------------------

    # NAT agents may need to touch iptables; allow some slack
    AGENT_TIMEOUT_SECONDS: float = 30.0

    # -------------------------------------------------------------------------
    # Quota Configuration
    # -------------------------------------------------------------------------

    DEFAULT_EXTERNAL_IP_QUOTA: int = -1

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def get_host_url(self) -> str:
        """
        Get the full host URL for external access.

        Returns:
            URL string like "http://192.168.1.1:8000"
        """
        return f"http://{self.HOST_REACHABLE_ADDRESS}:{self.HOST_PORT}"

    def get_api_url(self) -> str:
        """
        Get the API base URL used for hyperlinks.

        Returns:
            URL string like "http://192.168.1.1:8000/api"
        """
        return f"{self.get_host_url()}{self.API_PREFIX}"


# =============================================================================
# Global Instance
# =============================================================================

config = HostConfig()
