"""
Location Domain Models

Raw positions, work-location geofences and the proximity
classification derived from them.

PRIVACY: Position is the only type that carries guard coordinates.
It has no serializer and hides its coordinates from repr, so it
cannot be persisted or logged by accident. ProximityClassification
is what crosses the persistence boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from securyflex.domain.enums.tracking import ProximityStatus


@dataclass(frozen=True)
class Position:
    """
    Raw device position.

    Attributes:
        latitude: Degrees, WGS84
        longitude: Degrees, WGS84
        accuracy_m: Reported horizontal accuracy (meters)
        timestamp: Fix time reported by the device
    """

    latitude: float = field(repr=False)
    longitude: float = field(repr=False)
    accuracy_m: Optional[float] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class WorkLocation:
    """
    Named circular geofence owned by an organization.

    Read-only reference data maintained by organization
    administrators.

    Attributes:
        id: Work location identifier
        name: Display name
        latitude: Geofence center latitude
        longitude: Geofence center longitude
        geofence_radius_m: Geofence radius (meters)
        organization_id: Owning organization
    """

    id: str
    name: str
    latitude: float
    longitude: float
    geofence_radius_m: float
    organization_id: str

    @classmethod
    def from_dict(cls, data: dict, default_radius_m: float = 100.0) -> "WorkLocation":
        """Create from a stored document, filling missing fields like the mobile app did."""
        radius = data.get("geofence_radius_m")
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "Unknown Location",
            latitude=float(data.get("latitude") or 0.0),
            longitude=float(data.get("longitude") or 0.0),
            geofence_radius_m=float(radius) if radius is not None else default_radius_m,
            organization_id=data.get("organization_id") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "geofence_radius_m": self.geofence_radius_m,
            "organization_id": self.organization_id,
        }


@dataclass(frozen=True)
class ProximityClassification:
    """
    Privacy-preserving summary of a guard's location.

    Attributes:
        status: Proximity category
        nearest_work_area_name: Name of the nearest work location
        approximate_distance_m: Distance rounded to the configured
            granularity (100m by default), never exact
    """

    status: ProximityStatus
    nearest_work_area_name: Optional[str] = None
    approximate_distance_m: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "nearest_work_area_name": self.nearest_work_area_name,
            "approximate_distance_m": self.approximate_distance_m,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProximityClassification":
        distance = data.get("approximate_distance_m")
        return cls(
            status=ProximityStatus(data.get("status", ProximityStatus.UNKNOWN_WORK_AREA.value)),
            nearest_work_area_name=data.get("nearest_work_area_name"),
            approximate_distance_m=int(distance) if distance is not None else None,
        )
