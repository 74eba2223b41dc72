"""
Guard Location Service

Privacy-compliant guard location tracking for company monitoring.

Privacy controls:
- Explicit company_monitoring consent before any position is processed,
  re-checked on every update
- Proximity to work locations only; coordinates are never stored
- Distances rounded to 100m
- Records deleted 24 hours after their last update
- Every lifecycle event written to an append-only audit trail

Nederlandse arbeidsrecht: the guard can withdraw consent at any time,
after which tracking stops within one update cycle.

All collaborators are injected, so tests can run the complete
engine against in-memory stores and scripted position sources.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Optional

from securyflex.config.logging_config import get_logger
from securyflex.config.settings import TrackingSettings
from securyflex.domain.enums.tracking import (
    AuditEventType,
    ConsentPurpose,
    ConsentStatus,
    GuardAvailabilityStatus,
    TrackingState,
)
from securyflex.domain.models.consent import ConsentRequest
from securyflex.domain.models.guard_location import GuardLocationRecord
from securyflex.domain.models.results import (
    ConsentRequestResult,
    LocationPrivacyStats,
    TrackingResult,
)
from securyflex.infrastructure.geolocation.provider import (
    PositionSource,
    ensure_location_permission,
)
from securyflex.infrastructure.metrics import track_session_start
from securyflex.infrastructure.storage.backend import (
    AuditSink,
    ConsentStore,
    GuardLocationStore,
    WorkLocationStore,
)
from securyflex.services.location.broadcaster import Subscription
from securyflex.services.location.consent_gate import ConsentGate
from securyflex.services.location.errors import ConsentStoreUnavailableError
from securyflex.services.location.proximity_classifier import ProximityClassifier
from securyflex.services.location.publisher import LocationStatePublisher
from securyflex.services.location.session import (
    STOP_REPLACED,
    STOP_REQUESTED,
    STOP_SHUTDOWN,
    TrackingSession,
)

logger = get_logger(__name__)

PositionSourceProvider = Callable[[str], PositionSource]

EXPORT_GDPR_BASIS = "Article 9 - Special Category Data Protection"


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class GuardLocationService:
    """
    Consent-gated guard location tracking.

    Usage:
        service = GuardLocationService(
            consent_store=store,
            work_location_store=store,
            guard_store=store,
            audit_sink=store,
            position_sources=device_registry,
        )
        result = await service.initialize_tracking(guard_id, company_id)
        if result.requires_consent:
            await service.request_consent(guard_id, company_id)
    """

    def __init__(
        self,
        consent_store: ConsentStore,
        work_location_store: WorkLocationStore,
        guard_store: GuardLocationStore,
        audit_sink: AuditSink,
        position_sources: PositionSourceProvider,
        settings: Optional[TrackingSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize service.

        Args:
            consent_store: Consent records (read) and consent requests (write)
            work_location_store: Organization geofences (read)
            guard_store: Guard location records (owned)
            audit_sink: Audit trail (owned, append-only)
            position_sources: Returns the device position source of a guard
            settings: Tracking thresholds (defaults from environment)
            clock: Returns the current (timezone-aware) time
        """
        self._settings = settings or TrackingSettings()
        self._clock = clock
        self._consent_store = consent_store
        self._work_locations = work_location_store
        self._guard_store = guard_store
        self._audit_sink = audit_sink
        self._position_sources = position_sources

        self.consent_gate = ConsentGate(
            consent_store,
            clock=clock,
            retry_attempts=self._settings.store_retry_attempts,
        )
        self.classifier = ProximityClassifier(
            near_radius_multiplier=self._settings.near_radius_multiplier,
            distance_rounding_m=self._settings.distance_rounding_m,
        )
        self.publisher = LocationStatePublisher(
            guard_store,
            audit_sink,
            clock=clock,
            record_ttl=timedelta(hours=self._settings.record_ttl_hours),
        )

        self._sessions: dict[str, TrackingSession] = {}
        self._lifecycle_locks: dict[str, asyncio.Lock] = {}
        self._initializing: set[str] = set()
        self._closing = False

    @property
    def settings(self) -> TrackingSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def session_state(self, subject_id: str) -> TrackingState:
        session = self._sessions.get(subject_id)
        if session is not None:
            return session.state
        if subject_id in self._initializing:
            return TrackingState.AWAITING_CONSENT
        return TrackingState.IDLE

    def is_tracking(self, subject_id: str) -> bool:
        session = self._sessions.get(subject_id)
        return session is not None and session.is_active

    def get_session(self, subject_id: str) -> Optional[TrackingSession]:
        return self._sessions.get(subject_id)

    def _lifecycle_lock(self, subject_id: str) -> asyncio.Lock:
        lock = self._lifecycle_locks.get(subject_id)
        if lock is None:
            lock = asyncio.Lock()
            self._lifecycle_locks[subject_id] = lock
        return lock

    async def initialize_tracking(
        self,
        subject_id: str,
        organization_id: str,
        request_consent_if_needed: bool = True,
    ) -> TrackingResult:
        """
        Start privacy-compliant tracking for a guard.

        Steps:
        1. Stop an existing session for the guard
        2. Verify company_monitoring consent
        3. Verify device location permission
        4. Start the tracking session and audit the start

        Starts and stops of one guard run one at a time, so concurrent
        calls end with exactly one session. While the checks run the
        guard is reported as AWAITING_CONSENT.

        Args:
            subject_id: Guard id
            organization_id: Monitoring company
            request_consent_if_needed: Report missing consent as
                requires_consent so the UI starts the consent flow

        Returns:
            TrackingResult; consent and permission problems are
            reported here, not raised
        """
        async with self._lifecycle_lock(subject_id):
            if self._closing:
                return self._shutting_down_result()

            existing = self._sessions.get(subject_id)
            if existing is not None:
                logger.info("Replacing existing tracking session", subject_id=subject_id)
                await existing.stop(STOP_REPLACED)

            self._initializing.add(subject_id)
            try:
                return await self._start_session(subject_id, organization_id, request_consent_if_needed)
            finally:
                self._initializing.discard(subject_id)

    def _shutting_down_result(self) -> TrackingResult:
        track_session_start("error")
        return TrackingResult(
            success=False,
            message="Locatie tracking wordt afgesloten",
            state=TrackingState.IDLE,
        )

    async def _start_session(
        self,
        subject_id: str,
        organization_id: str,
        request_consent_if_needed: bool,
    ) -> TrackingResult:
        try:
            status = await self.consent_gate.consent_status(subject_id, ConsentPurpose.COMPANY_MONITORING)
        except ConsentStoreUnavailableError as e:
            await self.publisher.record_event(
                subject_id,
                AuditEventType.CONSENT_UNAVAILABLE,
                {"reason": "consent_store_unavailable", "purpose": ConsentPurpose.COMPANY_MONITORING.value},
                organization_id=organization_id,
            )
            track_session_start("error")
            logger.error("Consent check failed", subject_id=subject_id, error=str(e))
            return TrackingResult(
                success=False,
                message="Locatie toestemming kon niet worden gecontroleerd, probeer het later opnieuw",
                state=TrackingState.IDLE,
            )

        if status != ConsentStatus.GRANTED:
            await self.publisher.record_event(
                subject_id,
                AuditEventType.CONSENT_MISSING,
                {
                    "consent_status": status.value if status else "not_requested",
                    "purpose": ConsentPurpose.COMPANY_MONITORING.value,
                },
                organization_id=organization_id,
            )
            track_session_start("consent_required")
            if request_consent_if_needed:
                return TrackingResult(
                    success=False,
                    message="Locatie toestemming vereist van beveiliger",
                    requires_consent=True,
                    consent_purpose=ConsentPurpose.COMPANY_MONITORING,
                    state=TrackingState.CONSENT_REQUIRED,
                )
            return TrackingResult(
                success=False,
                message="Beveiliger heeft geen toestemming gegeven voor locatie tracking",
                state=TrackingState.CONSENT_REQUIRED,
            )

        await self.publisher.record_event(
            subject_id,
            AuditEventType.CONSENT_VERIFIED,
            {"purpose": ConsentPurpose.COMPANY_MONITORING.value},
            organization_id=organization_id,
        )

        source = self._position_sources(subject_id)
        try:
            denied = await ensure_location_permission(source)
        except Exception as e:
            logger.error("Device permission check failed", subject_id=subject_id, error=str(e))
            track_session_start("error")
            return TrackingResult(
                success=False,
                message=f"Locatie tracking initialisatie mislukt: {e}",
                state=TrackingState.IDLE,
            )

        if denied is not None:
            await self.publisher.record_event(
                subject_id,
                AuditEventType.PERMISSION_DENIED,
                {"permission": denied.value},
                organization_id=organization_id,
            )
            track_session_start("permission_denied")
            return TrackingResult(
                success=False,
                message="Locatie toegang niet verleend op apparaat",
                permission_denied=True,
                state=TrackingState.IDLE,
            )

        # close() may have started while the checks were awaited
        if self._closing:
            return self._shutting_down_result()

        session = TrackingSession(
            subject_id=subject_id,
            organization_id=organization_id,
            source=source,
            consent_gate=self.consent_gate,
            classifier=self.classifier,
            publisher=self.publisher,
            work_locations=self._work_locations,
            settings=self._settings,
            clock=self._clock,
            on_stopped=self._forget_session,
        )
        self._sessions[subject_id] = session
        session.start()
        track_session_start("started")

        await self.publisher.record_event(
            subject_id,
            AuditEventType.TRACKING_STARTED,
            {
                "consent_verified": True,
                "organization_id": organization_id,
                "privacy_mode": "proximity_only",
            },
            organization_id=organization_id,
        )

        return TrackingResult(
            success=True,
            message="Privacy-compliant locatie tracking gestart",
            state=TrackingState.TRACKING,
        )

    def _forget_session(self, session: TrackingSession) -> None:
        if self._sessions.get(session.subject_id) is session:
            del self._sessions[session.subject_id]

    async def stop_tracking(self, subject_id: str) -> None:
        """
        Stop tracking a guard. A no-op when no session is running.

        Waits for a start that is still running for the guard, then
        stops the session it created.
        """
        async with self._lifecycle_lock(subject_id):
            session = self._sessions.get(subject_id)
            if session is None:
                logger.debug("No tracking session to stop", subject_id=subject_id)
                return
            await session.stop(STOP_REQUESTED)

    # ------------------------------------------------------------------
    # Streams and reads
    # ------------------------------------------------------------------

    def guard_location_stream(self, subject_id: str) -> Subscription[GuardLocationRecord]:
        """
        Updates of one guard's record.

        Yields every record the engine persists for the guard,
        including the final disabled record when tracking stops.
        """
        return self.publisher.records.subscribe(subject_id)

    async def organization_guard_locations_stream(
        self,
        organization_id: str,
    ) -> AsyncIterator[list[GuardLocationRecord]]:
        """
        Location-enabled guards of an organization.

        Yields the current list first, then a new list after every change.
        """
        subscription = self.publisher.organizations.subscribe(organization_id)
        try:
            yield list(await self._guard_store.list_by_organization(organization_id))
            async for snapshot in subscription:
                yield snapshot
        finally:
            subscription.close()

    async def get_guard_location(self, subject_id: str) -> Optional[GuardLocationRecord]:
        return await self._guard_store.get(subject_id)

    async def list_organization_guard_locations(self, organization_id: str) -> list[GuardLocationRecord]:
        return list(await self._guard_store.list_by_organization(organization_id))

    async def update_guard_status(
        self,
        subject_id: str,
        status: GuardAvailabilityStatus,
        current_assignment: Optional[str] = None,
        current_assignment_title: Optional[str] = None,
    ) -> Optional[GuardLocationRecord]:
        """
        Change a guard's availability. Returns None if the guard has no record.

        Raises:
            PersistenceFailedError: The write failed
        """
        return await self.publisher.update_status(
            subject_id,
            status,
            current_assignment=current_assignment,
            current_assignment_title=current_assignment_title,
        )

    # ------------------------------------------------------------------
    # Consent requests, privacy reporting, data export
    # ------------------------------------------------------------------

    async def request_consent(self, subject_id: str, organization_id: str) -> ConsentRequestResult:
        """
        Create a pending company_monitoring consent request.

        The consent UI shows the request to the guard; granting it
        writes the ConsentRecord this engine reads.
        """
        request = ConsentRequest(
            subject_id=subject_id,
            organization_id=organization_id,
            requested_at=self._clock(),
        )
        try:
            request_id = await self._consent_store.add_consent_request(request)
        except Exception as e:
            logger.error("Consent request failed", subject_id=subject_id, error=str(e))
            return ConsentRequestResult(
                success=False,
                message=f"Toestemming aanvraag mislukt: {e}",
                consent_purpose=ConsentPurpose.COMPANY_MONITORING,
            )

        await self.publisher.record_event(
            subject_id,
            AuditEventType.CONSENT_REQUESTED,
            {"request_id": request_id, "purpose": request.purpose.value},
            organization_id=organization_id,
        )
        return ConsentRequestResult(
            success=True,
            message="Locatie toestemming aangevraagd bij beveiliger",
            consent_purpose=request.purpose,
            request_id=request_id,
            purpose=request.purpose_description,
            data_usage=request.data_usage,
            retention_period=request.retention_period,
        )

    async def get_location_privacy_stats(self, organization_id: str) -> LocationPrivacyStats:
        """
        Privacy overview for an organization.

        Raises:
            ConsentStoreUnavailableError: Consent records could not be read
        """
        now = self._clock()
        try:
            consents = await self._consent_store.list_consents(
                organization_id,
                ConsentPurpose.COMPANY_MONITORING,
            )
        except Exception as e:
            raise ConsentStoreUnavailableError(original_error=e)

        granted = [c for c in consents if c.status == ConsentStatus.GRANTED]
        active = [c for c in granted if c.is_active(now)]

        since = now - timedelta(days=self._settings.stats_window_days)
        events = await self._audit_sink.query_by_organization(organization_id, since)

        return LocationPrivacyStats(
            total_guards=len(granted),
            active_consents=len(active),
            privacy_compliant_updates=sum(1 for event in events if event.privacy_compliant),
            last_privacy_audit=now,
        )

    async def export_subject_data(
        self,
        subject_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        """
        Data portability export for a guard (GDPR Article 20).

        Args:
            subject_id: Guard id
            start: Window start (default: export_default_days ago)
            end: Window end (default: now)

        Returns:
            Export document with proximity data, audit trail and privacy info
        """
        now = self._clock()
        end = end or now
        start = start or end - timedelta(days=self._settings.export_default_days)
        if start > end:
            raise ValueError("Export start must not be after end")

        record = await self._guard_store.get(subject_id)
        audit_trail = await self._audit_sink.query(subject_id, start, end)

        logger.info("Subject data exported", subject_id=subject_id, audit_events=len(audit_trail))

        return {
            "export_timestamp": now.isoformat(),
            "subject_id": subject_id,
            "date_range": {
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
            "proximity_data": record.to_dict() if record else None,
            "audit_trail": [event.to_dict() for event in audit_trail],
            "privacy_info": {
                "coordinates_stored": False,
                "proximity_only": True,
                "data_minimization_applied": True,
                "auto_deletion_enabled": True,
                "retention_period": f"{self._settings.record_ttl_hours} hours",
                "distance_rounding_m": self._settings.distance_rounding_m,
            },
            "gdpr_basis": EXPORT_GDPR_BASIS,
        }

    async def purge_expired_records(self) -> int:
        """Delete guard location records past their auto-delete time."""
        return await self._guard_store.purge_expired(self._clock())

    # ------------------------------------------------------------------
    # Shutdown and health
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """
        Stop all sessions and end all streams.

        Starts that are still running when close begins do not create
        a session.
        """
        self._closing = True
        for subject_id in list(self._sessions):
            async with self._lifecycle_lock(subject_id):
                session = self._sessions.get(subject_id)
                if session is not None:
                    await session.stop(STOP_SHUTDOWN)
        self.publisher.close()
        logger.info("Guard location service closed")

    async def health_check(self) -> bool:
        return await self._audit_sink.health_check()
