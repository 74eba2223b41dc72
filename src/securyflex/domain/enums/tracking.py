"""
Location Tracking Enumerations

Standardized vocabularies for consent, proximity, availability
and audit events. String values match the persisted documents.

LEGAL_REVIEW_REQUIRED: Consent purposes map to distinct processing
purposes under the AVG (GDPR); adding one needs legal sign-off.
"""

from enum import StrEnum


class ConsentPurpose(StrEnum):
    """
    Purposes a guard can grant location consent for.

    A grant for one purpose never implies another.
    """

    WORK_VERIFICATION = "work_verification"
    """Check-in/check-out verification only."""

    SHIFT_MONITORING = "shift_monitoring"
    """Periodic location pings during shifts."""

    EMERGENCY_TRACKING = "emergency_tracking"
    """Location sharing during emergency response."""

    COMPANY_MONITORING = "company_monitoring"
    """
    Real-time proximity visible to the employing company.

    Required for the guard location engine.
    """


class ConsentStatus(StrEnum):
    """Consent record lifecycle states."""

    PENDING = "pending"
    GRANTED = "granted"
    REVOKED = "revoked"
    EXPIRED = "expired"


class ProximityStatus(StrEnum):
    """
    Privacy-preserving proximity categories.

    Published instead of coordinates.
    """

    AT_WORK_LOCATION = "at_work_location"
    """Within the geofence radius of the nearest work location."""

    NEAR_WORK_LOCATION = "near_work_location"
    """Outside the geofence but within the near band."""

    AWAY_FROM_WORK = "away_from_work"
    """Beyond the near band of every work location."""

    NO_WORK_AREA_NEARBY = "no_work_area_nearby"
    """Work locations exist but none produced a usable distance."""

    UNKNOWN_WORK_AREA = "unknown_work_area"
    """The organization has no work locations to compare against."""


class GuardAvailabilityStatus(StrEnum):
    """Guard availability shown to the company."""

    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"
    ON_DUTY = "on_duty"


class AuditEventType(StrEnum):
    """Tracking lifecycle events written to the audit trail."""

    TRACKING_STARTED = "TRACKING_STARTED"
    TRACKING_STOPPED = "TRACKING_STOPPED"
    CONSENT_VERIFIED = "CONSENT_VERIFIED"
    CONSENT_MISSING = "CONSENT_MISSING"
    CONSENT_REVOKED = "CONSENT_REVOKED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONSENT_REQUESTED = "CONSENT_REQUESTED"
    CONSENT_UNAVAILABLE = "CONSENT_UNAVAILABLE"


class TrackingState(StrEnum):
    """
    Tracking session states.

    IDLE -> AWAITING_CONSENT -> TRACKING -> STOPPED
    """

    IDLE = "idle"
    AWAITING_CONSENT = "awaiting_consent"
    CONSENT_REQUIRED = "consent_required"
    """Terminal: no active consent, the consent flow must run first."""
    TRACKING = "tracking"
    STOPPED = "stopped"
