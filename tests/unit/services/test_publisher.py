"""
Unit Tests for Location State Publisher

Tests write-then-emit ordering, sliding expiry, status updates
and audit failure isolation.
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import COMPANY_ID, GUARD_ID
from securyflex.domain.enums.tracking import AuditEventType, GuardAvailabilityStatus, ProximityStatus
from securyflex.domain.models.guard_location import UNKNOWN_GUARD_NAME
from securyflex.domain.models.location import ProximityClassification
from securyflex.services.location.errors import PersistenceFailedError
from securyflex.services.location.publisher import LocationStatePublisher

AT_HQ = ProximityClassification(ProximityStatus.AT_WORK_LOCATION, "HQ", 100)
NEAR_HQ = ProximityClassification(ProximityStatus.NEAR_WORK_LOCATION, "HQ", 200)


@pytest.fixture
def publisher(store, clock):
    return LocationStatePublisher(store, store, clock=clock, record_ttl=timedelta(hours=24))


class TestPublish:
    """Tests for persisting classifications."""

    async def test_first_publish_creates_record(self, publisher, store, clock):
        """A new record carries privacy metadata and a 24h expiry."""
        store.put_guard_name(GUARD_ID, "Jan de Vries")

        record = await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)

        assert record.guard_name == "Jan de Vries"
        assert record.status == GuardAvailabilityStatus.AVAILABLE
        assert record.is_location_enabled is True
        assert record.proximity == AT_HQ
        assert record.current_location == "HQ"
        assert record.auto_delete_at == clock() + timedelta(hours=24)
        assert record.privacy_compliant and record.coordinates_obfuscated and record.proximity_only
        assert await store.get(GUARD_ID) == record

    async def test_unknown_guard_name(self, publisher):
        record = await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)

        assert record.guard_name == UNKNOWN_GUARD_NAME

    async def test_every_write_slides_expiry(self, publisher, clock):
        """auto_delete_at is always last write + TTL."""
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        clock.advance(hours=5)

        record = await publisher.publish(GUARD_ID, COMPANY_ID, NEAR_HQ)

        assert record.last_update == clock()
        assert record.auto_delete_at == clock() + timedelta(hours=24)

    async def test_emits_after_successful_write(self, publisher):
        updates = publisher.records.subscribe(GUARD_ID)

        record = await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)

        assert await updates.get(timeout=1) == record

    async def test_failed_write_emits_nothing(self, publisher, store):
        """A persistence failure raises and leaves subscribers untouched."""
        updates = publisher.records.subscribe(GUARD_ID)
        store.fail_writes = True

        with pytest.raises(PersistenceFailedError):
            await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)

        with pytest.raises(asyncio.TimeoutError):
            await updates.get(timeout=0.05)
        assert await store.get(GUARD_ID) is None

    async def test_organization_subscribers_get_enabled_snapshot(self, publisher):
        snapshots = publisher.organizations.subscribe(COMPANY_ID)

        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        await publisher.publish("guard-2", COMPANY_ID, NEAR_HQ)
        await publisher.publish_disabled(GUARD_ID)

        first = await snapshots.get(timeout=1)
        second = await snapshots.get(timeout=1)
        third = await snapshots.get(timeout=1)
        assert [r.subject_id for r in first] == [GUARD_ID]
        assert [r.subject_id for r in second] == [GUARD_ID, "guard-2"]
        assert [r.subject_id for r in third] == ["guard-2"]


class TestStatusAndDisable:
    """Tests for availability updates and disabling."""

    async def test_update_status_preserves_proximity(self, publisher, clock):
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        clock.advance(minutes=10)

        record = await publisher.update_status(
            GUARD_ID,
            GuardAvailabilityStatus.ON_DUTY,
            current_assignment="job-7",
            current_assignment_title="Evenementbeveiliging",
        )

        assert record.status == GuardAvailabilityStatus.ON_DUTY
        assert record.current_assignment == "job-7"
        assert record.proximity == AT_HQ
        assert record.auto_delete_at == clock() + timedelta(hours=24)

    async def test_update_status_without_record(self, publisher):
        assert await publisher.update_status(GUARD_ID, GuardAvailabilityStatus.BUSY) is None

    async def test_publish_keeps_status(self, publisher):
        """A new classification does not reset availability."""
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        await publisher.update_status(GUARD_ID, GuardAvailabilityStatus.BUSY)

        record = await publisher.publish(GUARD_ID, COMPANY_ID, NEAR_HQ)

        assert record.status == GuardAvailabilityStatus.BUSY

    async def test_publish_disabled_keeps_last_proximity(self, publisher):
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)

        record = await publisher.publish_disabled(GUARD_ID)

        assert record.is_location_enabled is False
        assert record.proximity == AT_HQ

    async def test_publish_disabled_clearing_proximity(self, publisher):
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)

        record = await publisher.publish_disabled(GUARD_ID, clear_proximity=True)

        assert record.is_location_enabled is False
        assert record.proximity is None

    async def test_publish_disabled_without_record(self, publisher):
        assert await publisher.publish_disabled(GUARD_ID) is None


class TestAuditRecording:
    """Audit failures never propagate."""

    async def test_event_written(self, publisher, store, clock):
        written = await publisher.record_event(
            GUARD_ID,
            AuditEventType.TRACKING_STARTED,
            {"privacy_mode": "proximity_only"},
            organization_id=COMPANY_ID,
        )

        assert written is True
        [event] = store.audit_events
        assert event.event_type == AuditEventType.TRACKING_STARTED
        assert event.timestamp == clock()
        assert event.legal_basis == "Article 6(f) - Legitimate interest for employee safety"
        assert event.privacy_compliant is True

    async def test_audit_failure_is_swallowed(self, publisher, store):
        """A failing audit sink returns False and leaves state writes intact."""
        store.fail_audit = True

        record = await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        written = await publisher.record_event(GUARD_ID, AuditEventType.TRACKING_STOPPED)

        assert written is False
        assert await store.get(GUARD_ID) == record
        assert store.audit_events == []


class TestConcurrentWrites:
    """Writes to one guard's record do not overwrite each other."""

    async def test_publish_and_status_update_both_kept(self, publisher, store, monkeypatch):
        """A classification and a status change written at the same time both survive."""
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        write = store.upsert

        async def slow_upsert(record):
            await asyncio.sleep(0.02)
            await write(record)

        monkeypatch.setattr(store, "upsert", slow_upsert)

        await asyncio.gather(
            publisher.update_status(GUARD_ID, GuardAvailabilityStatus.ON_DUTY),
            publisher.publish(GUARD_ID, COMPANY_ID, NEAR_HQ),
        )

        stored = await store.get(GUARD_ID)
        assert stored.status == GuardAvailabilityStatus.ON_DUTY
        assert stored.proximity == NEAR_HQ

    async def test_status_update_keeps_disabled_record_disabled(self, publisher, store):
        await publisher.publish(GUARD_ID, COMPANY_ID, AT_HQ)
        await publisher.publish_disabled(GUARD_ID, clear_proximity=True)

        record = await publisher.update_status(GUARD_ID, GuardAvailabilityStatus.ON_DUTY)

        assert record.is_location_enabled is False
        assert record.proximity is None
