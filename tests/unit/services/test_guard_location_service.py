"""
Unit Tests for Guard Location Service

Tests the tracking lifecycle end to end on the in-memory store:
consent gating, device permission, the update pipeline, consent
revocation during a session, failure thresholds and stopping.
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import (
    COMPANY_ID,
    GUARD_ID,
    grant_consent,
    north_of,
    revoke_consent,
    wait_for_stream,
)
from securyflex.config import TrackingSettings
from securyflex.domain.enums.tracking import (
    AuditEventType,
    ConsentPurpose,
    ConsentStatus,
    GuardAvailabilityStatus,
    ProximityStatus,
    TrackingState,
)
from securyflex.infrastructure.geolocation.provider import LocationPermission
from securyflex.infrastructure.geolocation.reported import DeviceRegistry
from securyflex.services.location.guard_location_service import GuardLocationService
from securyflex.services.location.session import (
    STOP_CONSENT_REVOKED,
    STOP_FAILURES,
    STOP_REPLACED,
    STOP_REQUESTED,
)


def event_types(store):
    return [event.event_type for event in store.audit_events]


async def start_tracking(service, device):
    result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)
    assert result.success, result.message
    await wait_for_stream(device)
    return service.get_session(GUARD_ID)


class TestInitializeTracking:
    """Tests for consent and permission checks before tracking starts."""

    async def test_missing_consent_requires_consent(self, service, store, device):
        """Without consent no session starts and the consent flow is requested."""
        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.success is False
        assert result.requires_consent is True
        assert result.consent_purpose == ConsentPurpose.COMPANY_MONITORING
        assert result.state == TrackingState.CONSENT_REQUIRED
        assert result.message == "Locatie toestemming vereist van beveiliger"
        assert service.is_tracking(GUARD_ID) is False
        assert event_types(store) == [AuditEventType.CONSENT_MISSING]

    async def test_missing_consent_without_consent_flow(self, service, device):
        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID, request_consent_if_needed=False)

        assert result.success is False
        assert result.requires_consent is False
        assert result.message == "Beveiliger heeft geen toestemming gegeven voor locatie tracking"

    async def test_expired_consent_requires_consent(self, service, store, clock, device):
        grant_consent(store, clock, expires_at=clock() - timedelta(minutes=1))

        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.requires_consent is True
        [event] = store.audit_events
        assert event.metadata["consent_status"] == ConsentStatus.EXPIRED.value

    async def test_permission_denied(self, service, store, clock, registry):
        """Consent alone is not enough; the device must allow location access."""
        grant_consent(store, clock)
        registry(GUARD_ID).set_permission(LocationPermission.DENIED_FOREVER)

        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.success is False
        assert result.permission_denied is True
        assert result.message == "Locatie toegang niet verleend op apparaat"
        assert event_types(store) == [AuditEventType.CONSENT_VERIFIED, AuditEventType.PERMISSION_DENIED]

    async def test_location_services_disabled(self, service, store, clock, registry):
        grant_consent(store, clock)
        registry(GUARD_ID).set_permission(LocationPermission.ALWAYS, service_enabled=False)

        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.permission_denied is True

    async def test_consent_store_unavailable(self, service, store, clock, device):
        """An unreadable consent store never counts as consent."""
        grant_consent(store, clock)
        store.fail_consent_reads = True

        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.success is False
        assert service.is_tracking(GUARD_ID) is False
        [event] = store.audit_events
        assert event.event_type == AuditEventType.CONSENT_UNAVAILABLE
        assert event.metadata["reason"] == "consent_store_unavailable"

    async def test_tracking_started(self, service, store, clock, device):
        grant_consent(store, clock)

        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.success is True
        assert result.message == "Privacy-compliant locatie tracking gestart"
        assert result.state == TrackingState.TRACKING
        assert service.is_tracking(GUARD_ID)
        assert service.session_state(GUARD_ID) == TrackingState.TRACKING
        assert event_types(store) == [AuditEventType.CONSENT_VERIFIED, AuditEventType.TRACKING_STARTED]

    async def test_restart_replaces_session(self, service, store, clock, device):
        """At most one session per guard; starting again stops the old one first."""
        grant_consent(store, clock)
        first = await start_tracking(service, device)

        second = await start_tracking(service, device)

        assert first is not second
        assert first.state == TrackingState.STOPPED
        assert first.stop_reason == STOP_REPLACED
        assert service.get_session(GUARD_ID) is second
        assert second.is_active


class TestPositionUpdates:
    """Tests for the update pipeline."""

    async def test_position_published_as_proximity(self, service, store, clock, device, headquarters):
        """80m from HQ is persisted and emitted as at_work_location / 100m."""
        grant_consent(store, clock)
        store.put_guard_name(GUARD_ID, "Jan de Vries")
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)

        device.report(north_of(headquarters, 80))
        record = await updates.get(timeout=2)

        assert record.proximity.status == ProximityStatus.AT_WORK_LOCATION
        assert record.proximity.nearest_work_area_name == "HQ"
        assert record.proximity.approximate_distance_m == 100
        assert record.guard_name == "Jan de Vries"
        assert record.auto_delete_at == clock() + timedelta(hours=24)
        assert await service.get_guard_location(GUARD_ID) == record

    async def test_record_has_no_coordinates(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)
        position = north_of(headquarters, 155)

        device.report(position)
        record = await updates.get(timeout=2)

        document = record.to_dict()
        assert record.proximity.status == ProximityStatus.NEAR_WORK_LOCATION
        assert not {"latitude", "longitude", "lat", "lng", "position"} & set(document)
        assert str(position.latitude) not in str(document)

    async def test_no_work_locations_is_unknown(self, service, store, clock, device, headquarters):
        grant_consent(store, clock, organization_id="company-2")
        updates = service.guard_location_stream(GUARD_ID)
        result = await service.initialize_tracking(GUARD_ID, "company-2")
        assert result.success
        await wait_for_stream(device)

        device.report(north_of(headquarters, 10))
        record = await updates.get(timeout=2)

        assert record.proximity.status == ProximityStatus.UNKNOWN_WORK_AREA
        assert record.organization_id == "company-2"

    async def test_small_movements_are_filtered(self, service, store, clock, device, headquarters):
        """Movements under the 100m distance filter produce no update."""
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)

        device.report(north_of(headquarters, 0))
        await updates.get(timeout=2)
        device.report(north_of(headquarters, 30))

        with pytest.raises(asyncio.TimeoutError):
            await updates.get(timeout=0.1)
        assert store.write_count == 1

    async def test_updates_processed_in_order(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)

        for meters in (0, 160, 400):
            device.report(north_of(headquarters, meters))
        statuses = [(await updates.get(timeout=2)).proximity.status for _ in range(3)]

        assert statuses == [
            ProximityStatus.AT_WORK_LOCATION,
            ProximityStatus.NEAR_WORK_LOCATION,
            ProximityStatus.AWAY_FROM_WORK,
        ]

    async def test_poll_uses_current_position(self, store, registry, clock, device, headquarters):
        """The fallback timer fetches a one-shot position."""
        settings = TrackingSettings(poll_interval_seconds=0.05, position_timeout_seconds=0.5)
        service = GuardLocationService(store, store, store, store, registry, settings=settings, clock=clock)
        grant_consent(store, clock)
        device.report(north_of(headquarters, 160))
        updates = service.guard_location_stream(GUARD_ID)
        try:
            await service.initialize_tracking(GUARD_ID, COMPANY_ID)
            record = await updates.get(timeout=2)
        finally:
            await service.close()

        assert record.proximity.status == ProximityStatus.NEAR_WORK_LOCATION


class TestConsentRevocation:
    """Consent is re-checked on every update."""

    async def test_revocation_stops_session_without_persisting(
        self, service, store, clock, device, headquarters
    ):
        """After revocation the next update persists nothing and tracking stops."""
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        session = await start_tracking(service, device)
        device.report(north_of(headquarters, 50))
        await updates.get(timeout=2)

        revoke_consent(store)
        device.report(north_of(headquarters, 600))
        final = await updates.get(timeout=2)
        await session.wait_stopped(timeout=2)

        assert final.is_location_enabled is False
        assert final.proximity is None
        assert session.state == TrackingState.STOPPED
        assert session.stop_reason == STOP_CONSENT_REVOKED
        assert service.is_tracking(GUARD_ID) is False
        assert service.get_session(GUARD_ID) is None

        stored = await store.get(GUARD_ID)
        assert stored.proximity is None
        assert AuditEventType.CONSENT_REVOKED in event_types(store)
        stopped = [e for e in store.audit_events if e.event_type == AuditEventType.TRACKING_STOPPED]
        assert stopped[-1].metadata["reason"] == STOP_CONSENT_REVOKED

    async def test_expiry_during_session_stops_tracking(
        self, service, store, clock, device, headquarters
    ):
        grant_consent(store, clock, expires_at=clock() + timedelta(hours=8))
        session = await start_tracking(service, device)

        clock.advance(hours=8)
        device.report(north_of(headquarters, 10))
        await session.wait_stopped(timeout=2)

        assert session.stop_reason == STOP_CONSENT_REVOKED
        assert await store.get(GUARD_ID) is None

    async def test_consent_store_outage_skips_cycles(
        self, service, store, clock, device, headquarters
    ):
        """Consent store outages cost cycles but never count as consent."""
        grant_consent(store, clock)
        session = await start_tracking(service, device)
        store.fail_consent_reads = True

        for meters in (0, 500, 1000):
            device.report(north_of(headquarters, meters))
        await session.wait_stopped(timeout=5)

        assert session.stop_reason == STOP_FAILURES
        assert store.write_count == 0


class TestFailureHandling:
    """Transient failures are tolerated up to the configured threshold."""

    async def test_persistence_failures_stop_session(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        session = await start_tracking(service, device)
        store.fail_writes = True

        for meters in (0, 500, 1000):
            device.report(north_of(headquarters, meters))
        await session.wait_stopped(timeout=2)

        assert session.stop_reason == STOP_FAILURES
        assert session.consecutive_failures == 3
        with pytest.raises(asyncio.TimeoutError):
            await updates.get(timeout=0.05)

    async def test_success_resets_failure_count(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        session = await start_tracking(service, device)

        store.fail_writes = True
        for meters in (0, 500):
            device.report(north_of(headquarters, meters))
        while session.consecutive_failures < 2:
            await asyncio.sleep(0.01)
        store.fail_writes = False
        device.report(north_of(headquarters, 1000))
        await updates.get(timeout=2)

        assert session.consecutive_failures == 0
        assert session.is_active

    async def test_fetch_timeouts_stop_session(self, store, registry, clock, device):
        """A device that never answers the one-shot fetch stops the session."""
        settings = TrackingSettings(
            poll_interval_seconds=0.02,
            position_timeout_seconds=0.02,
            max_consecutive_failures=3,
        )
        service = GuardLocationService(store, store, store, store, registry, settings=settings, clock=clock)
        grant_consent(store, clock)
        try:
            await service.initialize_tracking(GUARD_ID, COMPANY_ID)
            session = service.get_session(GUARD_ID)
            await session.wait_stopped(timeout=2)
        finally:
            await service.close()

        assert session.stop_reason == STOP_FAILURES

    async def test_audit_outage_does_not_stop_tracking(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        store.fail_audit = True
        updates = service.guard_location_stream(GUARD_ID)

        await start_tracking(service, device)
        device.report(north_of(headquarters, 0))
        record = await updates.get(timeout=2)

        assert record.is_location_enabled
        assert store.audit_events == []


class TestStopTracking:
    """Tests for stopping sessions."""

    async def test_stop_writes_final_disabled_state(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        session = await start_tracking(service, device)
        device.report(north_of(headquarters, 0))
        await updates.get(timeout=2)

        await service.stop_tracking(GUARD_ID)
        final = await updates.get(timeout=2)

        assert final.is_location_enabled is False
        assert final.proximity.status == ProximityStatus.AT_WORK_LOCATION
        assert session.stop_reason == STOP_REQUESTED
        assert service.session_state(GUARD_ID) == TrackingState.IDLE
        assert event_types(store)[-1] == AuditEventType.TRACKING_STOPPED

    async def test_stop_is_idempotent(self, service, store, clock, device):
        grant_consent(store, clock)
        session = await start_tracking(service, device)

        assert await session.stop() is True
        assert await session.stop() is False
        await service.stop_tracking(GUARD_ID)

        stopped = [e for e in store.audit_events if e.event_type == AuditEventType.TRACKING_STOPPED]
        assert len(stopped) == 1

    async def test_stop_without_session_is_noop(self, service, store):
        await service.stop_tracking(GUARD_ID)

        assert store.audit_events == []

    async def test_no_updates_after_stop(self, service, store, clock, device, headquarters):
        """Positions reported after stop are never processed."""
        grant_consent(store, clock)
        await start_tracking(service, device)
        await service.stop_tracking(GUARD_ID)
        writes = store.write_count

        device.report(north_of(headquarters, 0))
        await asyncio.sleep(0.05)

        assert store.write_count == writes
        assert device.active_streams == 0


class TestOrganizationView:
    """Tests for organization-level reads and streams."""

    async def test_organization_stream_starts_with_snapshot(
        self, service, store, clock, registry, headquarters
    ):
        for guard in ("guard-1", "guard-2"):
            grant_consent(store, clock, subject_id=guard)
            registry(guard).set_permission(LocationPermission.ALWAYS)

        stream = service.organization_guard_locations_stream(COMPANY_ID)
        snapshot = await anext(stream)
        assert snapshot == []

        await service.initialize_tracking("guard-1", COMPANY_ID)
        await wait_for_stream(registry("guard-1"))
        registry("guard-1").report(north_of(headquarters, 0))
        update = await asyncio.wait_for(anext(stream), timeout=2)
        await stream.aclose()

        assert [record.subject_id for record in update] == ["guard-1"]

    async def test_update_guard_status(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)
        device.report(north_of(headquarters, 0))
        await updates.get(timeout=2)

        record = await service.update_guard_status(GUARD_ID, GuardAvailabilityStatus.ON_DUTY, "job-1", "Nachtdienst")

        assert record.status == GuardAvailabilityStatus.ON_DUTY
        assert record.current_assignment_title == "Nachtdienst"
        assert (await updates.get(timeout=1)).status == GuardAvailabilityStatus.ON_DUTY

    async def test_update_status_of_unknown_guard(self, service):
        assert await service.update_guard_status("nobody", GuardAvailabilityStatus.BUSY) is None

    async def test_close_stops_all_sessions(self, service, store, clock, registry):
        for guard in ("guard-1", "guard-2"):
            grant_consent(store, clock, subject_id=guard)
            registry(guard).set_permission(LocationPermission.ALWAYS)
            await service.initialize_tracking(guard, COMPANY_ID)
        sessions = [service.get_session("guard-1"), service.get_session("guard-2")]

        await service.close()

        assert all(session.state == TrackingState.STOPPED for session in sessions)
        assert not service.is_tracking("guard-1")


def slow_consent_reads(monkeypatch, store, delay=0.01):
    read_consent = store.get_consent

    async def get_consent(subject_id, purpose):
        await asyncio.sleep(delay)
        return await read_consent(subject_id, purpose)

    monkeypatch.setattr(store, "get_consent", get_consent)


def gate_consent_reads(monkeypatch, store) -> asyncio.Event:
    release = asyncio.Event()
    read_consent = store.get_consent

    async def get_consent(subject_id, purpose):
        await release.wait()
        return await read_consent(subject_id, purpose)

    monkeypatch.setattr(store, "get_consent", get_consent)
    return release


class TestConcurrentLifecycle:
    """Starts and stops of one guard run one at a time."""

    async def test_overlapping_starts_leave_one_session(self, service, store, clock, device, monkeypatch):
        """Two starts racing on a slow consent read end with one session and one device stream."""
        grant_consent(store, clock)
        slow_consent_reads(monkeypatch, store)

        first, second = await asyncio.gather(
            service.initialize_tracking(GUARD_ID, COMPANY_ID),
            service.initialize_tracking(GUARD_ID, COMPANY_ID),
        )
        await wait_for_stream(device)
        await asyncio.sleep(0.02)

        assert first.success and second.success
        assert service.is_tracking(GUARD_ID)
        assert device.active_streams == 1
        stopped = [e for e in store.audit_events if e.event_type == AuditEventType.TRACKING_STOPPED]
        assert [e.metadata["reason"] for e in stopped] == [STOP_REPLACED]

        await service.stop_tracking(GUARD_ID)

        assert device.active_streams == 0
        assert service.get_session(GUARD_ID) is None

    async def test_stop_waits_for_running_start(self, service, store, clock, device, monkeypatch):
        grant_consent(store, clock)
        release = gate_consent_reads(monkeypatch, store)
        start = asyncio.create_task(service.initialize_tracking(GUARD_ID, COMPANY_ID))
        await asyncio.sleep(0.01)

        stop = asyncio.create_task(service.stop_tracking(GUARD_ID))
        await asyncio.sleep(0.01)
        release.set()
        result = await start
        await stop

        assert result.success is True
        assert service.is_tracking(GUARD_ID) is False
        assert service.session_state(GUARD_ID) == TrackingState.IDLE
        assert device.active_streams == 0

    async def test_state_while_consent_check_runs(self, service, store, clock, device, monkeypatch):
        """A start that is still checking consent is reported as awaiting consent."""
        grant_consent(store, clock)
        release = gate_consent_reads(monkeypatch, store)
        start = asyncio.create_task(service.initialize_tracking(GUARD_ID, COMPANY_ID))
        await asyncio.sleep(0.01)

        assert service.session_state(GUARD_ID) == TrackingState.AWAITING_CONSENT
        assert service.is_tracking(GUARD_ID) is False

        release.set()
        result = await start

        assert result.success is True
        assert service.session_state(GUARD_ID) == TrackingState.TRACKING

    async def test_state_after_refused_start(self, service, store, device, monkeypatch):
        release = gate_consent_reads(monkeypatch, store)
        start = asyncio.create_task(service.initialize_tracking(GUARD_ID, COMPANY_ID))
        await asyncio.sleep(0.01)
        release.set()

        result = await start

        assert result.requires_consent is True
        assert service.session_state(GUARD_ID) == TrackingState.IDLE

    async def test_close_during_start_creates_no_session(self, service, store, clock, device, monkeypatch):
        """A start that finishes after close began leaves nothing running."""
        grant_consent(store, clock)
        release = gate_consent_reads(monkeypatch, store)
        start = asyncio.create_task(service.initialize_tracking(GUARD_ID, COMPANY_ID))
        await asyncio.sleep(0.01)

        await service.close()
        release.set()
        result = await start

        assert result.success is False
        assert service.get_session(GUARD_ID) is None
        assert device.active_streams == 0
        assert AuditEventType.TRACKING_STARTED not in event_types(store)

    async def test_start_after_close_is_refused(self, service, store, clock, device):
        grant_consent(store, clock)
        await service.close()

        result = await service.initialize_tracking(GUARD_ID, COMPANY_ID)

        assert result.success is False
        assert result.state == TrackingState.IDLE
        assert store.audit_events == []


class TestStatusUpdatesAfterStop:
    """Status changes never re-enable a stopped guard."""

    async def test_status_update_racing_stop_stays_disabled(
        self, service, store, clock, device, headquarters, monkeypatch
    ):
        """A slow status write that started before stop lands before the disabled write."""
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)
        device.report(north_of(headquarters, 0))
        await updates.get(timeout=2)

        write = store.upsert

        async def slow_upsert(record):
            await asyncio.sleep(0.05)
            await write(record)

        monkeypatch.setattr(store, "upsert", slow_upsert)
        status_update = asyncio.create_task(
            service.update_guard_status(GUARD_ID, GuardAvailabilityStatus.ON_DUTY)
        )
        await asyncio.sleep(0)

        await service.stop_tracking(GUARD_ID)
        await status_update

        stored = await store.get(GUARD_ID)
        assert stored.is_location_enabled is False
        assert stored.status == GuardAvailabilityStatus.ON_DUTY
        assert await service.list_organization_guard_locations(COMPANY_ID) == []

    async def test_status_update_after_revocation_keeps_proximity_cleared(
        self, service, store, clock, device, headquarters
    ):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        session = await start_tracking(service, device)
        device.report(north_of(headquarters, 0))
        await updates.get(timeout=2)
        revoke_consent(store)
        device.report(north_of(headquarters, 600))
        await session.wait_stopped(timeout=2)

        record = await service.update_guard_status(GUARD_ID, GuardAvailabilityStatus.BUSY)

        assert record.status == GuardAvailabilityStatus.BUSY
        assert record.is_location_enabled is False
        assert record.proximity is None
        assert await service.list_organization_guard_locations(COMPANY_ID) == []


class TestConsentAudit:
    """Every consent re-check during tracking is audited."""

    async def test_update_audits_consent_verified(self, service, store, clock, device, headquarters):
        grant_consent(store, clock)
        updates = service.guard_location_stream(GUARD_ID)
        await start_tracking(service, device)

        device.report(north_of(headquarters, 0))
        await updates.get(timeout=2)

        verified = [e for e in store.audit_events if e.event_type == AuditEventType.CONSENT_VERIFIED]
        assert len(verified) == 2
        assert verified[-1].metadata["detected_during"] == "position_update"
        assert verified[-1].organization_id == COMPANY_ID

    async def test_consent_store_outage_is_audited_per_cycle(
        self, service, store, clock, device, headquarters
    ):
        """Each skipped cycle leaves a CONSENT_UNAVAILABLE event."""
        grant_consent(store, clock)
        session = await start_tracking(service, device)
        store.fail_consent_reads = True

        for meters in (0, 500, 1000):
            device.report(north_of(headquarters, meters))
        await session.wait_stopped(timeout=5)

        assert event_types(store).count(AuditEventType.CONSENT_UNAVAILABLE) == 3
        assert AuditEventType.CONSENT_REVOKED not in event_types(store)


class TestStaleDeviceReports:
    """Polling never republishes an old device report."""

    async def test_stale_report_counts_as_missed_fetch(self, store, clock, headquarters):
        registry = DeviceRegistry(max_report_age_seconds=0.01)
        device = registry(GUARD_ID)
        device.set_permission(LocationPermission.WHILE_IN_USE)
        settings = TrackingSettings(
            poll_interval_seconds=0.02,
            position_timeout_seconds=0.02,
            max_consecutive_failures=3,
        )
        service = GuardLocationService(store, store, store, store, registry, settings=settings, clock=clock)
        grant_consent(store, clock)
        device.report(north_of(headquarters, 0))
        await asyncio.sleep(0.05)
        try:
            await service.initialize_tracking(GUARD_ID, COMPANY_ID)
            session = service.get_session(GUARD_ID)
            await session.wait_stopped(timeout=2)
        finally:
            await service.close()
            registry.close()

        assert session.stop_reason == STOP_FAILURES
        assert store.write_count == 0
