"""
SecuryFlex Domain Layer

Core entities and value objects of the guard location engine.
These models are independent of storage and transport.
"""

from securyflex.domain.enums.tracking import (
    AuditEventType,
    ConsentPurpose,
    ConsentStatus,
    GuardAvailabilityStatus,
    ProximityStatus,
    TrackingState,
)
from securyflex.domain.models import (
    AuditEvent,
    ConsentRecord,
    ConsentRequest,
    ConsentRequestResult,
    GuardLocationRecord,
    LocationPrivacyStats,
    Position,
    ProximityClassification,
    TrackingResult,
    WorkLocation,
)

__all__ = [
    # Enums
    "AuditEventType",
    "ConsentPurpose",
    "ConsentStatus",
    "GuardAvailabilityStatus",
    "ProximityStatus",
    "TrackingState",
    # Models
    "AuditEvent",
    "ConsentRecord",
    "ConsentRequest",
    "ConsentRequestResult",
    "GuardLocationRecord",
    "LocationPrivacyStats",
    "Position",
    "ProximityClassification",
    "TrackingResult",
    "WorkLocation",
]
