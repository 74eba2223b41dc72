"""Guard location tracking services package."""

from securyflex.services.location.guard_location_service import GuardLocationService, utc_now
from securyflex.services.location.proximity_classifier import ProximityClassifier, round_distance
from securyflex.services.location.consent_gate import ConsentGate
from securyflex.services.location.publisher import LocationStatePublisher
from securyflex.services.location.session import TrackingSession
from securyflex.services.location.broadcaster import Broadcaster, Subscription
from securyflex.services.location.errors import (
    LocationTrackingError,
    ConsentMissingError,
    ConsentRevokedError,
    DevicePermissionDeniedError,
    ConsentStoreUnavailableError,
    PositionFetchFailedError,
    PersistenceFailedError,
    AuditWriteFailedError,
)

__all__ = [
    "GuardLocationService",
    "utc_now",
    "ProximityClassifier",
    "round_distance",
    "ConsentGate",
    "LocationStatePublisher",
    "TrackingSession",
    "Broadcaster",
    "Subscription",
    "LocationTrackingError",
    "ConsentMissingError",
    "ConsentRevokedError",
    "DevicePermissionDeniedError",
    "ConsentStoreUnavailableError",
    "PositionFetchFailedError",
    "PersistenceFailedError",
    "AuditWriteFailedError",
]
