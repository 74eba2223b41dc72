"""
Location State Publisher and Audit Recorder

Persists derived guard location state, notifies subscribers and
writes the tracking audit trail.

Guarantees:
- Writes to one guard's record are serialized (read, modify, write
  and emit run under a per-guard lock)
- A record is emitted to subscribers only after the store accepted it
- Every write pushes auto_delete_at to now + TTL (sliding expiry)
- Audit failures are logged and counted, never raised, and never
  roll back state writes
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from securyflex.config.logging_config import get_logger
from securyflex.domain.enums.tracking import AuditEventType, GuardAvailabilityStatus
from securyflex.domain.models.audit import AuditEvent
from securyflex.domain.models.guard_location import UNKNOWN_GUARD_NAME, GuardLocationRecord
from securyflex.domain.models.location import ProximityClassification
from securyflex.infrastructure.metrics import track_audit_failure
from securyflex.infrastructure.storage.backend import AuditSink, GuardLocationStore
from securyflex.services.location.broadcaster import Broadcaster
from securyflex.services.location.errors import PersistenceFailedError

logger = get_logger(__name__)


class LocationStatePublisher:
    """
    Write path for guard location state and audit events.

    Usage:
        publisher = LocationStatePublisher(store, audit_sink, clock=utc_now)
        record = await publisher.publish(guard_id, company_id, classification)
    """

    def __init__(
        self,
        guard_store: GuardLocationStore,
        audit_sink: AuditSink,
        clock: Callable[[], datetime],
        record_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        """
        Initialize publisher.

        Args:
            guard_store: Guard location record store
            audit_sink: Append-only audit trail
            clock: Returns the current (timezone-aware) time
            record_ttl: Sliding auto-delete window
        """
        self._store = guard_store
        self._audit = audit_sink
        self._clock = clock
        self._ttl = record_ttl
        self._write_locks: dict[str, asyncio.Lock] = {}

        self.records: Broadcaster[str, GuardLocationRecord] = Broadcaster("guard_records")
        self.organizations: Broadcaster[str, list[GuardLocationRecord]] = Broadcaster("organization_records")

    def _subject_lock(self, subject_id: str) -> asyncio.Lock:
        lock = self._write_locks.get(subject_id)
        if lock is None:
            lock = asyncio.Lock()
            self._write_locks[subject_id] = lock
        return lock

    async def _read_current(self, subject_id: str) -> Optional[GuardLocationRecord]:
        try:
            return await self._store.get(subject_id)
        except PersistenceFailedError:
            raise
        except Exception as e:
            raise PersistenceFailedError(
                "Guard location read failed",
                subject_id=subject_id,
                original_error=e,
            )

    async def _write(self, record: GuardLocationRecord) -> None:
        try:
            await self._store.upsert(record)
        except PersistenceFailedError:
            raise
        except Exception as e:
            raise PersistenceFailedError(subject_id=record.subject_id, original_error=e)

    async def _emit(self, record: GuardLocationRecord) -> None:
        self.records.publish(record.subject_id, record)

        if self.organizations.subscriber_count(record.organization_id) == 0:
            return
        try:
            snapshot = await self._store.list_by_organization(record.organization_id)
        except Exception as e:
            # The write itself succeeded; organization subscribers catch up on the next change
            logger.warning(
                "Organization snapshot read failed",
                organization_id=record.organization_id,
                error=str(e),
            )
            return
        self.organizations.publish(record.organization_id, list(snapshot))

    async def publish(
        self,
        subject_id: str,
        organization_id: str,
        classification: ProximityClassification,
        availability_status: Optional[GuardAvailabilityStatus] = None,
    ) -> GuardLocationRecord:
        """
        Overwrite the guard's record with a new classification.

        Args:
            subject_id: Guard id
            organization_id: Monitoring company
            classification: Proximity classification (no coordinates)
            availability_status: New availability, or None to keep the current one

        Returns:
            The persisted record

        Raises:
            PersistenceFailedError: Nothing was emitted
        """
        async with self._subject_lock(subject_id):
            now = self._clock()
            current = await self._read_current(subject_id)

            if current is None:
                guard_name = await self._lookup_guard_name(subject_id)
                record = GuardLocationRecord(
                    subject_id=subject_id,
                    organization_id=organization_id,
                    guard_name=guard_name,
                    status=availability_status or GuardAvailabilityStatus.AVAILABLE,
                    last_update=now,
                    auto_delete_at=now + self._ttl,
                    proximity=classification,
                )
            else:
                record = current.with_changes(
                    organization_id=organization_id,
                    status=availability_status or current.status,
                    last_update=now,
                    auto_delete_at=now + self._ttl,
                    is_location_enabled=True,
                    proximity=classification,
                )

            await self._write(record)
            await self._emit(record)

        logger.debug(
            "Guard location published",
            subject_id=subject_id,
            proximity_status=classification.status.value,
        )
        return record

    async def update_status(
        self,
        subject_id: str,
        status: GuardAvailabilityStatus,
        current_assignment: Optional[str] = None,
        current_assignment_title: Optional[str] = None,
    ) -> Optional[GuardLocationRecord]:
        """
        Change availability and assignment on an existing record.

        Location enablement and proximity are left as they are, so a
        stopped guard stays disabled.

        Returns:
            Updated record, or None if the guard has no record

        Raises:
            PersistenceFailedError: Nothing was emitted
        """
        async with self._subject_lock(subject_id):
            current = await self._read_current(subject_id)
            if current is None:
                return None

            now = self._clock()
            record = current.with_changes(
                status=status,
                current_assignment=(
                    current_assignment if current_assignment is not None else current.current_assignment
                ),
                current_assignment_title=(
                    current_assignment_title
                    if current_assignment_title is not None
                    else current.current_assignment_title
                ),
                last_update=now,
                auto_delete_at=now + self._ttl,
            )
            await self._write(record)
            await self._emit(record)

        logger.info("Guard status updated", subject_id=subject_id, status=status.value)
        return record

    async def publish_disabled(
        self,
        subject_id: str,
        clear_proximity: bool = False,
    ) -> Optional[GuardLocationRecord]:
        """
        Mark the guard's record as no longer location enabled.

        Args:
            subject_id: Guard id
            clear_proximity: Also drop the last proximity classification

        Returns:
            Updated record, or None if the guard has no record

        Raises:
            PersistenceFailedError: Nothing was emitted
        """
        async with self._subject_lock(subject_id):
            now = self._clock()
            if clear_proximity:
                current = await self._read_current(subject_id)
                if current is None:
                    return None
                record = current.with_changes(is_location_enabled=False, last_update=now, proximity=None)
                await self._write(record)
            else:
                try:
                    record = await self._store.mark_disabled(subject_id, now)
                except PersistenceFailedError:
                    raise
                except Exception as e:
                    raise PersistenceFailedError(subject_id=subject_id, original_error=e)
                if record is None:
                    return None

            await self._emit(record)
        return record

    async def record_event(
        self,
        subject_id: str,
        event_type: AuditEventType,
        metadata: Optional[dict[str, Any]] = None,
        organization_id: Optional[str] = None,
    ) -> bool:
        """
        Append an audit event. Never raises.

        Returns:
            True if the event was written
        """
        event = AuditEvent(
            subject_id=subject_id,
            event_type=event_type,
            timestamp=self._clock(),
            metadata=dict(metadata or {}),
            organization_id=organization_id,
        )
        try:
            await self._audit.append(event)
            return True
        except Exception as e:
            track_audit_failure(event_type.value)
            logger.error(
                "Audit event write failed",
                subject_id=subject_id,
                event_type=event_type.value,
                error=str(e),
            )
            return False

    async def _lookup_guard_name(self, subject_id: str) -> str:
        try:
            name = await self._store.get_guard_name(subject_id)
        except Exception as e:
            logger.warning("Guard name lookup failed", subject_id=subject_id, error=str(e))
            return UNKNOWN_GUARD_NAME
        return name or UNKNOWN_GUARD_NAME

    def close(self) -> None:
        """End all subscriber streams."""
        self.records.close()
        self.organizations.close()
