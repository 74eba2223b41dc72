"""
Audit Event Domain Model

Append-only record of tracking lifecycle events.
Events are never updated or deleted by the engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from securyflex.domain.enums.tracking import AuditEventType

DEFAULT_LEGAL_BASIS = "Article 6(f) - Legitimate interest for employee safety"


@dataclass(frozen=True)
class AuditEvent:
    """
    Immutable tracking audit entry.

    Attributes:
        subject_id: Guard the event concerns
        event_type: Lifecycle event
        timestamp: When the event happened
        metadata: Event context (never coordinates)
        legal_basis: GDPR legal basis annotation
        organization_id: Company involved, if any
        privacy_compliant: Privacy metadata flag
        id: Event identifier
    """

    subject_id: str
    event_type: AuditEventType
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)
    legal_basis: str = DEFAULT_LEGAL_BASIS
    organization_id: str | None = None
    privacy_compliant: bool = True
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
            "legal_basis": self.legal_basis,
            "organization_id": self.organization_id,
            "privacy_compliant": self.privacy_compliant,
        }
