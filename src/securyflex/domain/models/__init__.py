"""Domain models package."""

from securyflex.domain.models.audit import AuditEvent
from securyflex.domain.models.consent import ConsentRecord, ConsentRequest, consent_key
from securyflex.domain.models.guard_location import GuardLocationRecord
from securyflex.domain.models.location import Position, ProximityClassification, WorkLocation
from securyflex.domain.models.results import (
    ConsentRequestResult,
    LocationPrivacyStats,
    TrackingResult,
)

__all__ = [
    # Consent
    "ConsentRecord",
    "ConsentRequest",
    "consent_key",
    # Location
    "Position",
    "WorkLocation",
    "ProximityClassification",
    "GuardLocationRecord",
    # Audit
    "AuditEvent",
    # Results
    "TrackingResult",
    "ConsentRequestResult",
    "LocationPrivacyStats",
]
