"""
Enumeration types for HakuFloat.

This module defines the enumeration types shared by the host services,
the HTTP surface and the logging setup.
"""

from enum import Enum


# =============================================================================
# Resource Enums
# =============================================================================


class ResourceType(str, Enum):
    """
    Quota-controlled resource kinds.

    Only external addresses are admitted by this package, but the quota
    service is keyed by resource type so other kinds can share it.
    """

    EXTERNAL_IP = "external_ip"


class LinkRel(str, Enum):
    """Hyperlink relation names attached to exposed records."""

    SELF = "self"
    POOL = "pool"


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels for HakuFloat components.

    Levels (from most to least verbose):
        - FULL: Complete trace with detailed stack information
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
