"""
API Dependencies

FastAPI providers for the objects built during application startup.
"""

from fastapi import HTTPException, Request, status

from securyflex.infrastructure.geolocation.reported import DeviceRegistry
from securyflex.services.location.guard_location_service import GuardLocationService


def get_location_service(request: Request) -> GuardLocationService:
    """Get the application's location service or fail with 503."""
    service = getattr(request.app.state, "location_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Location service not initialized",
        )
    return service


def get_device_registry(request: Request) -> DeviceRegistry:
    registry = getattr(request.app.state, "device_registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Device registry not initialized",
        )
    return registry
