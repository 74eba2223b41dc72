"""
Device location sources.
"""

from securyflex.infrastructure.geolocation.provider import (
    LocationAccuracy,
    LocationPermission,
    LocationSettings,
    PositionSource,
    ensure_location_permission,
)
from securyflex.infrastructure.geolocation.reported import DeviceRegistry, ReportedPositionSource

__all__ = [
    "DeviceRegistry",
    "LocationAccuracy",
    "LocationPermission",
    "LocationSettings",
    "PositionSource",
    "ReportedPositionSource",
    "ensure_location_permission",
]
