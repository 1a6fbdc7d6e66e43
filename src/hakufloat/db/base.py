"""
Database base configuration and utilities.

This module provides the foundation for HakuFloat's database layer using
Peewee ORM with SQLite backend.

Components:
    - db: Global SQLite database instance
    - BaseModel: Base class for all HakuFloat database models
    - initialize_database: Database setup function
    - close_database: Connection teardown
"""

import peewee

from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Database Instance
# =============================================================================

# Global database instance - path set via initialize_database()
db = peewee.SqliteDatabase(None)


# =============================================================================
# Base Model
# =============================================================================


class BaseModel(peewee.Model):
    """
    Base model for all HakuFloat database models.

    All models inherit from this class to share the database connection.
    """

    class Meta:
        database = db


# =============================================================================
# Database Lifecycle
# =============================================================================


def initialize_database(db_path: str) -> None:
    """
    Connect to the database and create tables.

    Args:
        db_path: Path to the SQLite database file.

    Raises:
        peewee.OperationalError: If database connection fails.
    """
    # Import models here to avoid circular imports
    from hakufloat.db.pool import ExternalIPRecord, PoolRecord, SubnetRecord
    from hakufloat.db.tenant import InstanceRecord, TenantRecord

    logger.debug(f"Initializing database at: {db_path}")

    try:
        db.init(db_path, pragmas={"foreign_keys": 1})
        db.connect(reuse_if_open=True)
        db.create_tables(
            [PoolRecord, SubnetRecord, ExternalIPRecord, TenantRecord, InstanceRecord],
            safe=True,
        )

        logger.info(f"Database initialized: {db_path}")

        pool_count = PoolRecord.select().count()
        ip_count = ExternalIPRecord.select().count()
        logger.debug(f"Database contains {pool_count} pools, {ip_count} external IPs")

    except peewee.OperationalError as e:
        logger.error(f"Failed to initialize database '{db_path}': {e}")
        raise


def close_database() -> None:
    """Close the database connection if open."""
    if not db.is_closed():
        db.close()
        logger.debug("Database connection closed")
