"""
Location Database Models

Work location geofences, guard directory entries and the
per-guard location state written by the tracking engine.

PRIVACY: guard_locations has no coordinate columns. Only the
proximity classification (status, nearest work area name,
rounded distance) is stored. Rows are purged once
auto_delete_at has passed.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from securyflex.domain.enums.tracking import GuardAvailabilityStatus, ProximityStatus
from securyflex.domain.models.guard_location import GuardLocationRecord
from securyflex.domain.models.location import ProximityClassification, WorkLocation
from securyflex.infrastructure.database.connection import Base
from securyflex.infrastructure.database.models._types import as_utc


class WorkLocationModel(Base):
    """
    Work location table ORM model.

    Maintained by organization administrators; read-only for
    the tracking engine.

    Table: work_locations
    """

    __tablename__ = "work_locations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    geofence_radius_m: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        doc="Geofence radius in meters; default applied when NULL"
    )

    def __repr__(self) -> str:
        return f"<WorkLocationModel(id='{self.id}', name='{self.name}')>"

    def to_domain(self, default_radius_m: float = 100.0) -> WorkLocation:
        return WorkLocation.from_dict(
            {
                "id": self.id,
                "name": self.name,
                "latitude": self.latitude,
                "longitude": self.longitude,
                "geofence_radius_m": self.geofence_radius_m,
                "organization_id": self.organization_id,
            },
            default_radius_m=default_radius_m,
        )


class GuardProfileModel(Base):
    """
    Guard directory entry (display name lookup).

    Table: guard_profiles
    """

    __tablename__ = "guard_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<GuardProfileModel(id='{self.id}')>"


class GuardLocationModel(Base):
    """
    Guard location state table ORM model.

    One row per guard, overwritten on every update.

    Table: guard_locations
    """

    __tablename__ = "guard_locations"

    subject_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    guard_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    last_update: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_location_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    current_assignment: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    current_assignment_title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Proximity classification
    proximity_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    nearest_work_area_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    approximate_distance_m: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    auto_delete_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        doc="Row is purged after this time"
    )

    # Privacy metadata
    privacy_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    coordinates_obfuscated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    proximity_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<GuardLocationModel(subject_id='{self.subject_id}', enabled={self.is_location_enabled})>"

    def apply(self, record: GuardLocationRecord) -> None:
        """Overwrite all columns from a domain record."""
        proximity = record.proximity
        self.organization_id = record.organization_id
        self.guard_name = record.guard_name
        self.status = record.status.value
        self.last_update = record.last_update
        self.is_location_enabled = record.is_location_enabled
        self.current_assignment = record.current_assignment
        self.current_assignment_title = record.current_assignment_title
        self.proximity_status = proximity.status.value if proximity else None
        self.nearest_work_area_name = proximity.nearest_work_area_name if proximity else None
        self.approximate_distance_m = proximity.approximate_distance_m if proximity else None
        self.auto_delete_at = record.auto_delete_at
        self.privacy_compliant = record.privacy_compliant
        self.coordinates_obfuscated = record.coordinates_obfuscated
        self.proximity_only = record.proximity_only

    def to_domain(self) -> GuardLocationRecord:
        proximity = None
        if self.proximity_status is not None:
            proximity = ProximityClassification(
                status=ProximityStatus(self.proximity_status),
                nearest_work_area_name=self.nearest_work_area_name,
                approximate_distance_m=self.approximate_distance_m,
            )
        return GuardLocationRecord(
            subject_id=self.subject_id,
            organization_id=self.organization_id,
            guard_name=self.guard_name,
            status=GuardAvailabilityStatus(self.status),
            last_update=as_utc(self.last_update),
            is_location_enabled=self.is_location_enabled,
            current_assignment=self.current_assignment,
            current_assignment_title=self.current_assignment_title,
            proximity=proximity,
            auto_delete_at=as_utc(self.auto_delete_at),
            privacy_compliant=self.privacy_compliant,
            coordinates_obfuscated=self.coordinates_obfuscated,
            proximity_only=self.proximity_only,
        )
