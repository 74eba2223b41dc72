"""
Guard Tracking Session

One running location tracking session for one guard.

Two producers feed a single trigger queue:
- the device position stream (reduced accuracy, distance filtered)
- a fallback poll timer that requests a one-shot position

One worker drains the queue in arrival order. Each trigger runs the
update pipeline to completion before the next one starts:

    fetch (poll only) -> consent re-check -> classify -> persist -> publish

Every consent re-check is audited: CONSENT_VERIFIED, CONSENT_REVOKED
or CONSENT_UNAVAILABLE.

Stopping cancels both producers and the worker, then writes the final
disabled state under the same lock the pipeline writes under, so no
update can land after the final write.

PRIVACY: A failed consent re-check stops the session within the same
cycle; nothing from that cycle is persisted.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

from securyflex.config.logging_config import get_logger, subject_context
from securyflex.config.settings import TrackingSettings
from securyflex.domain.enums.tracking import AuditEventType, ConsentPurpose, TrackingState
from securyflex.domain.models.location import Position
from securyflex.infrastructure.geolocation.provider import (
    LocationAccuracy,
    LocationSettings,
    PositionSource,
)
from securyflex.infrastructure.metrics import (
    time_pipeline,
    track_classification,
    track_pipeline_outcome,
    track_session_stop,
)
from securyflex.infrastructure.storage.backend import WorkLocationStore
from securyflex.services.location.consent_gate import ConsentGate
from securyflex.services.location.errors import ConsentStoreUnavailableError, PersistenceFailedError
from securyflex.services.location.proximity_classifier import ProximityClassifier
from securyflex.services.location.publisher import LocationStatePublisher

logger = get_logger(__name__)

_POLL = object()

Trigger = Union[Position, object]

# Pipeline outcomes
PERSISTED = "persisted"
CONSENT_REVOKED = "consent_revoked"
CONSENT_UNAVAILABLE = "consent_unavailable"
FETCH_FAILED = "fetch_failed"
WORK_LOCATIONS_UNAVAILABLE = "work_locations_unavailable"
PERSIST_FAILED = "persist_failed"
DROPPED = "dropped"

TRANSIENT_FAILURES = frozenset({
    CONSENT_UNAVAILABLE,
    FETCH_FAILED,
    WORK_LOCATIONS_UNAVAILABLE,
    PERSIST_FAILED,
})

# Stop reasons
STOP_REQUESTED = "requested"
STOP_CONSENT_REVOKED = "consent_revoked"
STOP_FAILURES = "failures"
STOP_REPLACED = "replaced"
STOP_SHUTDOWN = "shutdown"


class TrackingSession:
    """
    Location tracking loop for a single guard.

    Usage:
        session = TrackingSession(guard_id, company_id, source, ...)
        session.start()
        ...
        await session.stop()
    """

    def __init__(
        self,
        subject_id: str,
        organization_id: str,
        source: PositionSource,
        consent_gate: ConsentGate,
        classifier: ProximityClassifier,
        publisher: LocationStatePublisher,
        work_locations: WorkLocationStore,
        settings: TrackingSettings,
        clock: Callable[[], datetime],
        on_stopped: Optional[Callable[["TrackingSession"], Awaitable[None] | None]] = None,
        queue_size: int = 100,
    ) -> None:
        self.subject_id = subject_id
        self.organization_id = organization_id
        self._source = source
        self._gate = consent_gate
        self._classifier = classifier
        self._publisher = publisher
        self._work_locations = work_locations
        self._settings = settings
        self._clock = clock
        self._on_stopped = on_stopped

        self._accuracy = LocationAccuracy(settings.accuracy)
        self._triggers: asyncio.Queue[Trigger] = asyncio.Queue(maxsize=queue_size)
        self._lock = asyncio.Lock()
        self._stopped_event = asyncio.Event()

        self._stream_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._worker_task: Optional[asyncio.Task] = None

        self.state = TrackingState.IDLE
        self.started_at: Optional[datetime] = None
        self.stop_reason: Optional[str] = None
        self.consecutive_failures = 0
        self.cycles_completed = 0
        self.last_outcome: Optional[str] = None
        self._stopping = False

    @property
    def is_active(self) -> bool:
        return self.state == TrackingState.TRACKING and not self._stopping

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start producers and the worker. Must run inside an event loop."""
        if self.state != TrackingState.IDLE:
            raise RuntimeError(f"Session for {self.subject_id} already {self.state.value}")

        stream_settings = LocationSettings(
            accuracy=self._accuracy,
            distance_filter_m=self._settings.distance_filter_m,
        )
        self._worker_task = asyncio.create_task(self._worker(), name=f"tracking-worker-{self.subject_id}")
        self._stream_task = asyncio.create_task(
            self._read_stream(stream_settings),
            name=f"tracking-stream-{self.subject_id}",
        )
        self._poll_task = asyncio.create_task(self._poll(), name=f"tracking-poll-{self.subject_id}")

        self.state = TrackingState.TRACKING
        self.started_at = self._clock()
        logger.info(
            "Tracking session started",
            subject_id=self.subject_id,
            organization_id=self.organization_id,
            poll_interval_seconds=self._settings.poll_interval_seconds,
            distance_filter_m=self._settings.distance_filter_m,
        )

    async def stop(self, reason: str = STOP_REQUESTED) -> bool:
        """
        Stop the session. Safe to call repeatedly and from the worker.

        Returns:
            True if this call performed the stop, False if the session
            was already stopping or stopped
        """
        if self._stopping:
            if asyncio.current_task() is not self._worker_task:
                await self._stopped_event.wait()
            return False
        self._stopping = True
        self.stop_reason = reason

        current = asyncio.current_task()
        tasks = [
            task for task in (self._stream_task, self._poll_task, self._worker_task)
            if task is not None and task is not current
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        async with self._lock:
            try:
                await self._publisher.publish_disabled(
                    self.subject_id,
                    clear_proximity=reason == STOP_CONSENT_REVOKED,
                )
            except PersistenceFailedError as e:
                logger.error(
                    "Final tracking state write failed",
                    subject_id=self.subject_id,
                    error=str(e),
                )

        await self._publisher.record_event(
            self.subject_id,
            AuditEventType.TRACKING_STOPPED,
            {
                "reason": reason,
                "cycles_completed": self.cycles_completed,
            },
            organization_id=self.organization_id,
        )

        self.state = TrackingState.STOPPED
        track_session_stop(reason)
        logger.info("Tracking session stopped", subject_id=self.subject_id, reason=reason)
        self._stopped_event.set()

        if self._on_stopped is not None:
            result = self._on_stopped(self)
            if asyncio.iscoroutine(result):
                await result
        return True

    async def wait_stopped(self, timeout: Optional[float] = None) -> None:
        await asyncio.wait_for(self._stopped_event.wait(), timeout)

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def _enqueue(self, trigger: Trigger) -> None:
        if self._stopping:
            return
        if self._triggers.full():
            # Keep arrival order, drop the oldest pending trigger
            self._triggers.get_nowait()
            track_pipeline_outcome(DROPPED)
        self._triggers.put_nowait(trigger)

    async def _read_stream(self, stream_settings: LocationSettings) -> None:
        try:
            async for position in self._source.position_stream(stream_settings):
                self._enqueue(position)
            logger.info("Position stream ended", subject_id=self.subject_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # The poll timer keeps the session alive
            logger.warning("Position stream failed", subject_id=self.subject_id, error=str(e))

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._settings.poll_interval_seconds)
            self._enqueue(_POLL)

    # ------------------------------------------------------------------
    # Worker and pipeline
    # ------------------------------------------------------------------

    async def _worker(self) -> None:
        while not self._stopping:
            trigger = await self._triggers.get()
            with subject_context(self.subject_id):
                async with self._lock:
                    if self._stopping:
                        return
                    with time_pipeline():
                        outcome = await self._run_cycle(trigger)

                self.last_outcome = outcome
                track_pipeline_outcome(outcome)
                await self._after_cycle(outcome)

    async def _after_cycle(self, outcome: str) -> None:
        if outcome == PERSISTED:
            self.consecutive_failures = 0
            self.cycles_completed += 1
            return

        if outcome == CONSENT_REVOKED:
            await self._publisher.record_event(
                self.subject_id,
                AuditEventType.CONSENT_REVOKED,
                {"detected_during": "position_update"},
                organization_id=self.organization_id,
            )
            await self.stop(STOP_CONSENT_REVOKED)
            return

        if outcome in TRANSIENT_FAILURES:
            self.consecutive_failures += 1
            logger.warning(
                "Location update cycle failed",
                subject_id=self.subject_id,
                outcome=outcome,
                consecutive_failures=self.consecutive_failures,
            )
            if self.consecutive_failures >= self._settings.max_consecutive_failures:
                await self.stop(STOP_FAILURES)

    async def _record_consent_check(self, event_type: AuditEventType) -> None:
        await self._publisher.record_event(
            self.subject_id,
            event_type,
            {
                "purpose": ConsentPurpose.COMPANY_MONITORING.value,
                "detected_during": "position_update",
            },
            organization_id=self.organization_id,
        )

    async def _fetch_position(self) -> Optional[Position]:
        try:
            return await asyncio.wait_for(
                self._source.current_position(self._accuracy),
                timeout=self._settings.position_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Position fetch timed out",
                subject_id=self.subject_id,
                timeout_seconds=self._settings.position_timeout_seconds,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Position fetch failed", subject_id=self.subject_id, error=str(e))
        return None

    async def _run_cycle(self, trigger: Trigger) -> str:
        if trigger is _POLL:
            position = await self._fetch_position()
            if position is None:
                return FETCH_FAILED
        else:
            position = trigger

        try:
            has_consent = await self._gate.has_active_consent(
                self.subject_id,
                ConsentPurpose.COMPANY_MONITORING,
            )
        except ConsentStoreUnavailableError:
            await self._record_consent_check(AuditEventType.CONSENT_UNAVAILABLE)
            return CONSENT_UNAVAILABLE
        if not has_consent:
            # Audited as CONSENT_REVOKED once the cycle is over
            return CONSENT_REVOKED
        await self._record_consent_check(AuditEventType.CONSENT_VERIFIED)

        try:
            work_locations = await self._work_locations.list_work_locations(self.organization_id)
        except Exception as e:
            logger.warning(
                "Work locations unavailable",
                organization_id=self.organization_id,
                error=str(e),
            )
            return WORK_LOCATIONS_UNAVAILABLE

        classification = self._classifier.classify(position, work_locations)
        del position
        track_classification(classification.status.value)

        if self._stopping:
            return DROPPED

        try:
            await self._publisher.publish(self.subject_id, self.organization_id, classification)
        except PersistenceFailedError as e:
            logger.error("Guard location write failed", subject_id=self.subject_id, error=str(e))
            return PERSIST_FAILED
        return PERSISTED
