"""
Consent Database Models

SQLAlchemy ORM models for location consent records and the
consent requests created by the tracking engine.

LEGAL_REVIEW_REQUIRED: Data retention policies for consent
records should be reviewed for compliance.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from securyflex.domain.enums.tracking import ConsentPurpose, ConsentStatus
from securyflex.domain.models.consent import ConsentRecord, ConsentRequest, consent_key
from securyflex.infrastructure.database.connection import Base
from securyflex.infrastructure.database.models._types import as_utc


class ConsentModel(Base):
    """
    Location consent table ORM model.

    Keyed "{subject_id}_{purpose}", one row per guard and purpose.
    Written by the consent UI; read-only for the tracking engine.

    Table: location_consents
    """

    __tablename__ = "location_consents"

    key: Mapped[str] = mapped_column(
        String(160),
        primary_key=True,
        doc="Consent key: {subject_id}_{purpose}"
    )
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    purpose: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Consent purpose (company_monitoring, work_verification, ...)"
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    organization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    granted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Consent counts as expired from this time on"
    )

    def __repr__(self) -> str:
        return f"<ConsentModel(key='{self.key}', status='{self.status}')>"

    @classmethod
    def from_domain(cls, record: ConsentRecord) -> "ConsentModel":
        return cls(
            key=consent_key(record.subject_id, record.purpose),
            subject_id=record.subject_id,
            purpose=record.purpose.value,
            status=record.status.value,
            organization_id=record.organization_id,
            granted_at=record.granted_at,
            expires_at=record.expires_at,
        )

    def to_domain(self) -> ConsentRecord:
        return ConsentRecord(
            subject_id=self.subject_id,
            purpose=ConsentPurpose(self.purpose),
            status=ConsentStatus(self.status),
            granted_at=as_utc(self.granted_at),
            expires_at=as_utc(self.expires_at),
            organization_id=self.organization_id,
        )


class ConsentRequestModel(Base):
    """
    Pending consent request table ORM model.

    Table: location_consent_requests
    """

    __tablename__ = "location_consent_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    purpose: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Texts shown to the guard
    purpose_description: Mapped[str] = mapped_column(Text, nullable=False)
    data_usage: Mapped[str] = mapped_column(Text, nullable=False)
    retention_period: Mapped[str] = mapped_column(String(100), nullable=False)
    legal_basis: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<ConsentRequestModel(id='{self.id}', status='{self.status}')>"

    @classmethod
    def from_domain(cls, request: ConsentRequest) -> "ConsentRequestModel":
        return cls(
            id=request.id,
            subject_id=request.subject_id,
            organization_id=request.organization_id,
            purpose=request.purpose.value,
            status=request.status.value,
            requested_at=request.requested_at,
            purpose_description=request.purpose_description,
            data_usage=request.data_usage,
            retention_period=request.retention_period,
            legal_basis=request.legal_basis,
        )

    def to_domain(self) -> ConsentRequest:
        return ConsentRequest(
            id=self.id,
            subject_id=self.subject_id,
            organization_id=self.organization_id,
            purpose=ConsentPurpose(self.purpose),
            status=ConsentStatus(self.status),
            requested_at=as_utc(self.requested_at),
            purpose_description=self.purpose_description,
            data_usage=self.data_usage,
            retention_period=self.retention_period,
            legal_basis=self.legal_basis,
        )
