"""
Tracking Audit Database Model

Append-only audit trail of location tracking events.

LEGAL_REVIEW_REQUIRED: Audit retention period should be
reviewed against GDPR accountability requirements.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from securyflex.domain.enums.tracking import AuditEventType
from securyflex.domain.models.audit import AuditEvent
from securyflex.infrastructure.database.connection import Base
from securyflex.infrastructure.database.models._types import as_utc


class AuditEventModel(Base):
    """
    Tracking audit table ORM model.

    Rows are inserted only; never updated or deleted by the engine.

    Table: location_tracking_audit
    """

    __tablename__ = "location_tracking_audit"

    # Insertion order; events sharing a timestamp keep the order they were written in
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    organization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    legal_basis: Mapped[str] = mapped_column(String(200), nullable=False)
    privacy_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<AuditEventModel(id='{self.id}', event_type='{self.event_type}')>"

    @classmethod
    def from_domain(cls, event: AuditEvent) -> "AuditEventModel":
        return cls(
            id=event.id,
            subject_id=event.subject_id,
            organization_id=event.organization_id,
            event_type=event.event_type.value,
            timestamp=event.timestamp,
            event_metadata=dict(event.metadata),
            legal_basis=event.legal_basis,
            privacy_compliant=event.privacy_compliant,
        )

    def to_domain(self) -> AuditEvent:
        return AuditEvent(
            id=self.id,
            subject_id=self.subject_id,
            organization_id=self.organization_id,
            event_type=AuditEventType(self.event_type),
            timestamp=as_utc(self.timestamp),
            metadata=dict(self.event_metadata or {}),
            legal_basis=self.legal_basis,
            privacy_compliant=self.privacy_compliant,
        )
