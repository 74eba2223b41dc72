"""Domain enums package."""

from securyflex.domain.enums.tracking import (
    AuditEventType,
    ConsentPurpose,
    ConsentStatus,
    GuardAvailabilityStatus,
    ProximityStatus,
    TrackingState,
)

__all__ = [
    "AuditEventType",
    "ConsentPurpose",
    "ConsentStatus",
    "GuardAvailabilityStatus",
    "ProximityStatus",
    "TrackingState",
]
