"""
Guard Location Service Factory

Builds a GuardLocationService on the configured storage backend.

CONFIGURATION:
    SECURYFLEX_STORAGE_BACKEND=memory    # or: database
"""

from typing import Optional

from securyflex.config import Settings
from securyflex.config.logging_config import get_logger
from securyflex.infrastructure.database.connection import DatabaseManager
from securyflex.infrastructure.geolocation.reported import DeviceRegistry
from securyflex.infrastructure.storage.memory import InMemoryLocationStore
from securyflex.infrastructure.storage.sql import SqlLocationStore
from securyflex.services.location.guard_location_service import GuardLocationService

logger = get_logger(__name__)


def create_location_service(
    settings: Settings,
    device_registry: DeviceRegistry,
    db: Optional[DatabaseManager] = None,
) -> GuardLocationService:
    """
    Create the tracking service for the configured backend.

    Args:
        settings: Application settings
        device_registry: Position sources of guard devices
        db: Initialized database manager (database backend only)

    Returns:
        Service wired to a single store that implements all storage interfaces

    Raises:
        ValueError: Database backend selected without a database manager
    """
    if settings.storage_backend == "database":
        if db is None or not db.is_initialized:
            raise ValueError("Database storage backend requires an initialized DatabaseManager")
        store = SqlLocationStore(db, default_geofence_radius_m=settings.tracking.default_geofence_radius_m)
    else:
        if settings.is_production():
            logger.warning("In-memory storage backend in production; data is lost on restart")
        store = InMemoryLocationStore()

    logger.info("Location service created", storage_backend=settings.storage_backend)
    return GuardLocationService(
        consent_store=store,
        work_location_store=store,
        guard_store=store,
        audit_sink=store,
        position_sources=device_registry,
        settings=settings.tracking,
    )
