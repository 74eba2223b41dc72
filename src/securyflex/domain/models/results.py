"""
Tracking Result Models

Structured outcomes returned to callers of the location service.
Consent and permission failures are reported here instead of
being raised, since the UI has to act on them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from securyflex.domain.enums.tracking import ConsentPurpose, TrackingState


@dataclass(frozen=True)
class TrackingResult:
    """
    Outcome of initialize_tracking.

    Attributes:
        success: Tracking session is running
        message: User-facing message (Dutch)
        requires_consent: Caller must start the consent request flow
        consent_purpose: Purpose that needs consent
        permission_denied: Device-level location permission missing
        state: Resulting session state
    """

    success: bool
    message: str
    requires_consent: bool = False
    consent_purpose: Optional[ConsentPurpose] = None
    permission_denied: bool = False
    state: TrackingState = TrackingState.IDLE

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "requires_consent": self.requires_consent,
            "consent_purpose": self.consent_purpose.value if self.consent_purpose else None,
            "permission_denied": self.permission_denied,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class ConsentRequestResult:
    """Outcome of request_consent."""

    success: bool
    message: str
    consent_purpose: ConsentPurpose
    request_id: Optional[str] = None
    purpose: Optional[str] = None
    data_usage: Optional[str] = None
    retention_period: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "consent_purpose": self.consent_purpose.value,
            "request_id": self.request_id,
            "purpose": self.purpose,
            "data_usage": self.data_usage,
            "retention_period": self.retention_period,
        }


@dataclass(frozen=True)
class LocationPrivacyStats:
    """
    Privacy overview for an organization.

    Attributes:
        total_guards: Guards with a granted company monitoring consent
        active_consents: Of those, consents that have not expired
        privacy_compliant_updates: Privacy-compliant audit events in the window
        data_minimization_active: Proximity-only storage is enforced
        coordinate_obfuscation_active: Coordinates are never persisted
        auto_delete_enabled: Records carry a sliding expiry
        last_privacy_audit: When these stats were computed
    """

    total_guards: int
    active_consents: int
    privacy_compliant_updates: int
    last_privacy_audit: datetime
    data_minimization_active: bool = True
    coordinate_obfuscation_active: bool = True
    auto_delete_enabled: bool = True

    @property
    def consent_rate(self) -> int:
        """Active consents as a rounded percentage of total guards."""
        if self.total_guards <= 0:
            return 0
        return round(self.active_consents / self.total_guards * 100)

    def to_dict(self) -> dict:
        return {
            "total_guards": self.total_guards,
            "active_consents": self.active_consents,
            "privacy_compliant_updates": self.privacy_compliant_updates,
            "data_minimization_active": self.data_minimization_active,
            "coordinate_obfuscation_active": self.coordinate_obfuscation_active,
            "auto_delete_enabled": self.auto_delete_enabled,
            "last_privacy_audit": self.last_privacy_audit.isoformat(),
            "consent_rate": self.consent_rate,
        }
