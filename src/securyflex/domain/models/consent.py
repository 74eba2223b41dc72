"""
Consent Domain Model

Location consent records read by the tracking engine and the
pending consent requests it creates.

The engine never mutates a ConsentRecord. Granting and revoking
happen through the guard's own consent UI.

LEGAL_REVIEW_REQUIRED: Purpose, data usage and retention texts
are shown to guards verbatim.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from securyflex.domain.enums.tracking import ConsentPurpose, ConsentStatus


def consent_key(subject_id: str, purpose: ConsentPurpose) -> str:
    """Document key of the consent record for (subject, purpose)."""
    return f"{subject_id}_{purpose.value}"


@dataclass
class ConsentRecord:
    """
    A guard's grant for one purpose.

    Attributes:
        subject_id: Guard identifier
        purpose: Purpose the grant is scoped to
        status: Stored status
        granted_at: When consent was granted
        expires_at: Optional expiry; past expiry the grant is expired
            even though the stored status is still granted
        organization_id: Company the grant was given to
    """

    subject_id: str
    purpose: ConsentPurpose
    status: ConsentStatus
    granted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    organization_id: Optional[str] = None

    @property
    def key(self) -> str:
        return consent_key(self.subject_id, self.purpose)

    def effective_status(self, now: datetime) -> ConsentStatus:
        """Status after applying implicit expiry."""
        if self.status == ConsentStatus.GRANTED and self.expires_at is not None:
            if now >= self.expires_at:
                return ConsentStatus.EXPIRED
        return self.status

    def is_active(self, now: datetime) -> bool:
        """Granted and not expired at `now`."""
        return self.effective_status(now) == ConsentStatus.GRANTED

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "subject_id": self.subject_id,
            "purpose": self.purpose.value,
            "status": self.status.value,
            "granted_at": self.granted_at.isoformat() if self.granted_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "organization_id": self.organization_id,
        }


# Texts attached to every company monitoring request
COMPANY_MONITORING_PURPOSE = "Real-time locatie zichtbaarheid voor werkplanning en veiligheid"
COMPANY_MONITORING_DATA_USAGE = "Nabijheid van werklocaties - geen exacte coördinaten"
COMPANY_MONITORING_RETENTION = "24 uur automatische verwijdering"
COMPANY_MONITORING_LEGAL_BASIS = "AVG Artikel 6(f) - Gerechtvaardigd belang werkgever veiligheid"


@dataclass
class ConsentRequest:
    """
    Pending consent request for the consent UI to act on.

    Attributes:
        subject_id: Guard being asked
        organization_id: Requesting company
        purpose: Purpose consent is requested for
        requested_at: Creation time
        purpose_description: Human-readable purpose
        data_usage: What data is processed
        retention_period: How long data is kept
        legal_basis: Legal basis annotation
        status: Always pending when created by the engine
        id: Request identifier
    """

    subject_id: str
    organization_id: str
    requested_at: datetime
    purpose: ConsentPurpose = ConsentPurpose.COMPANY_MONITORING
    purpose_description: str = COMPANY_MONITORING_PURPOSE
    data_usage: str = COMPANY_MONITORING_DATA_USAGE
    retention_period: str = COMPANY_MONITORING_RETENTION
    legal_basis: str = COMPANY_MONITORING_LEGAL_BASIS
    status: ConsentStatus = ConsentStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "organization_id": self.organization_id,
            "purpose": self.purpose.value,
            "requested_at": self.requested_at.isoformat(),
            "purpose_description": self.purpose_description,
            "data_usage": self.data_usage,
            "retention_period": self.retention_period,
            "legal_basis": self.legal_basis,
            "status": self.status.value,
        }
