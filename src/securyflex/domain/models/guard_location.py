"""
Guard Location Domain Model

Persisted per-guard state shown on the company dashboard.
One record per guard, overwritten on every update.

PRIVACY: The record has no coordinate fields. Location is
represented only by the proximity classification. Every write
pushes auto_delete_at forward (sliding expiry).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from securyflex.domain.enums.tracking import GuardAvailabilityStatus
from securyflex.domain.models.location import ProximityClassification

UNKNOWN_GUARD_NAME = "Unknown Guard"


@dataclass(frozen=True)
class GuardLocationRecord:
    """
    Current location state of one guard.

    Attributes:
        subject_id: Guard identifier (record key)
        organization_id: Company monitoring the guard
        guard_name: Display name
        status: Availability status
        last_update: Time of the last write
        is_location_enabled: False once tracking stopped
        current_assignment: Assignment reference
        current_assignment_title: Assignment display title
        proximity: Latest proximity classification
        auto_delete_at: Expiry after which the record is purged
        privacy_compliant: Privacy metadata flag
        coordinates_obfuscated: Privacy metadata flag
        proximity_only: Privacy metadata flag
    """

    subject_id: str
    organization_id: str
    last_update: datetime
    auto_delete_at: datetime
    guard_name: str = UNKNOWN_GUARD_NAME
    status: GuardAvailabilityStatus = GuardAvailabilityStatus.AVAILABLE
    is_location_enabled: bool = True
    current_assignment: Optional[str] = None
    current_assignment_title: Optional[str] = None
    proximity: Optional[ProximityClassification] = None
    privacy_compliant: bool = field(default=True)
    coordinates_obfuscated: bool = field(default=True)
    proximity_only: bool = field(default=True)

    @property
    def current_location(self) -> Optional[str]:
        """Nearest work area name, shown as the guard's location."""
        return self.proximity.nearest_work_area_name if self.proximity else None

    def with_changes(self, **changes) -> "GuardLocationRecord":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.auto_delete_at

    def to_dict(self) -> dict:
        """Serialize to a storage/API document."""
        return {
            "subject_id": self.subject_id,
            "organization_id": self.organization_id,
            "guard_name": self.guard_name,
            "status": self.status.value,
            "last_update": self.last_update.isoformat(),
            "is_location_enabled": self.is_location_enabled,
            "current_assignment": self.current_assignment,
            "current_assignment_title": self.current_assignment_title,
            "current_location": self.current_location,
            "proximity": self.proximity.to_dict() if self.proximity else None,
            "auto_delete_at": self.auto_delete_at.isoformat(),
            "privacy_compliant": self.privacy_compliant,
            "coordinates_obfuscated": self.coordinates_obfuscated,
            "proximity_only": self.proximity_only,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GuardLocationRecord":
        """Create from a document produced by to_dict."""
        proximity = data.get("proximity")
        return cls(
            subject_id=data["subject_id"],
            organization_id=data.get("organization_id", ""),
            guard_name=data.get("guard_name") or UNKNOWN_GUARD_NAME,
            status=GuardAvailabilityStatus(data.get("status", GuardAvailabilityStatus.UNAVAILABLE.value)),
            last_update=datetime.fromisoformat(data["last_update"]),
            is_location_enabled=data.get("is_location_enabled", False),
            current_assignment=data.get("current_assignment"),
            current_assignment_title=data.get("current_assignment_title"),
            proximity=ProximityClassification.from_dict(proximity) if proximity else None,
            auto_delete_at=datetime.fromisoformat(data["auto_delete_at"]),
        )
