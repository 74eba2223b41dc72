"""Tests configuration and fixtures."""

import asyncio
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from securyflex.config import Settings, TrackingSettings
from securyflex.domain.enums.tracking import ConsentPurpose, ConsentStatus
from securyflex.domain.geo import EARTH_RADIUS_M
from securyflex.domain.models.consent import ConsentRecord
from securyflex.domain.models.location import Position, WorkLocation
from securyflex.infrastructure.geolocation.provider import LocationPermission
from securyflex.infrastructure.geolocation.reported import DeviceRegistry, ReportedPositionSource
from securyflex.infrastructure.storage.memory import InMemoryLocationStore
from securyflex.services.location.guard_location_service import GuardLocationService

GUARD_ID = "guard-1"
COMPANY_ID = "company-1"

# Meters per degree of latitude on the haversine sphere
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0


class FakeClock:
    """Controllable clock for expiry logic."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def north_of(location: WorkLocation, meters: float) -> Position:
    """Position `meters` due north of a work location."""
    return Position(
        latitude=location.latitude + meters / METERS_PER_DEGREE,
        longitude=location.longitude,
    )


def grant_consent(
    store: InMemoryLocationStore,
    clock: FakeClock,
    subject_id: str = GUARD_ID,
    organization_id: str = COMPANY_ID,
    expires_at: Optional[datetime] = None,
) -> ConsentRecord:
    record = ConsentRecord(
        subject_id=subject_id,
        purpose=ConsentPurpose.COMPANY_MONITORING,
        status=ConsentStatus.GRANTED,
        granted_at=clock(),
        expires_at=expires_at,
        organization_id=organization_id,
    )
    store.put_consent(record)
    return record


def revoke_consent(store: InMemoryLocationStore, subject_id: str = GUARD_ID) -> None:
    store.put_consent(
        ConsentRecord(
            subject_id=subject_id,
            purpose=ConsentPurpose.COMPANY_MONITORING,
            status=ConsentStatus.REVOKED,
            organization_id=COMPANY_ID,
        )
    )


async def wait_for_stream(source: ReportedPositionSource, timeout: float = 2.0) -> None:
    """Wait until a tracking session has opened the device stream."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while source.active_streams == 0:
        if loop.time() > deadline:
            raise TimeoutError("Position stream was not opened")
        await asyncio.sleep(0.01)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory storage."""
    return Settings(
        env="development",
        debug=True,
        storage_backend="memory",
    )


@pytest.fixture
def tracking_settings() -> TrackingSettings:
    """Tracking settings for fast tests; polling effectively disabled."""
    return TrackingSettings(
        poll_interval_seconds=3600.0,
        position_timeout_seconds=0.2,
        max_consecutive_failures=3,
        store_retry_attempts=2,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryLocationStore:
    return InMemoryLocationStore()


@pytest.fixture
def headquarters(store) -> WorkLocation:
    location = WorkLocation(
        id="wl-1",
        name="HQ",
        latitude=52.3676,
        longitude=4.9041,
        geofence_radius_m=100.0,
        organization_id=COMPANY_ID,
    )
    store.put_work_location(location)
    return location


@pytest.fixture
def registry() -> DeviceRegistry:
    registry = DeviceRegistry()
    yield registry
    registry.close()


@pytest.fixture
def device(registry) -> ReportedPositionSource:
    """Device of GUARD_ID with location permission granted."""
    source = registry(GUARD_ID)
    source.set_permission(LocationPermission.WHILE_IN_USE)
    return source


@pytest.fixture
async def service(store, registry, tracking_settings, clock) -> GuardLocationService:
    service = GuardLocationService(
        consent_store=store,
        work_location_store=store,
        guard_store=store,
        audit_sink=store,
        position_sources=registry,
        settings=tracking_settings,
        clock=clock,
    )
    yield service
    await service.close()
