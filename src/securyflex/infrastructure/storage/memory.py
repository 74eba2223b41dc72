"""
In-Memory Location Store

Process-local implementation of all storage interfaces.
Used for development and tests. Supports fault injection so
failure paths can be exercised without a database.

NOTE: Data is lost on restart. Use SqlLocationStore in production.
"""

from datetime import datetime
from typing import Optional, Sequence

from securyflex.config.logging_config import get_logger
from securyflex.domain.enums.tracking import ConsentPurpose
from securyflex.domain.models.audit import AuditEvent
from securyflex.domain.models.consent import ConsentRecord, ConsentRequest, consent_key
from securyflex.domain.models.guard_location import GuardLocationRecord
from securyflex.domain.models.location import WorkLocation
from securyflex.infrastructure.storage.backend import (
    AuditSink,
    ConsentStore,
    GuardLocationStore,
    WorkLocationStore,
)
from securyflex.services.location.errors import AuditWriteFailedError, PersistenceFailedError

logger = get_logger(__name__)


class InMemoryLocationStore(ConsentStore, WorkLocationStore, GuardLocationStore, AuditSink):
    """
    Dictionary-backed store.

    Fault injection:
        fail_writes: guard location writes raise PersistenceFailedError
        fail_audit: audit appends raise AuditWriteFailedError
        fail_consent_reads: consent reads raise ConnectionError
    """

    def __init__(self) -> None:
        self._consents: dict[str, ConsentRecord] = {}
        self._consent_requests: dict[str, ConsentRequest] = {}
        self._work_locations: dict[str, WorkLocation] = {}
        self._guard_names: dict[str, str] = {}
        self._records: dict[str, GuardLocationRecord] = {}
        self._audit: list[AuditEvent] = []

        self.fail_writes = False
        self.fail_audit = False
        self.fail_consent_reads = False
        self.write_count = 0

    # ------------------------------------------------------------------
    # Seeding (owned by other subsystems in production)
    # ------------------------------------------------------------------

    def put_consent(self, record: ConsentRecord) -> None:
        self._consents[record.key] = record

    def put_work_location(self, location: WorkLocation) -> None:
        self._work_locations[location.id] = location

    def put_guard_name(self, subject_id: str, name: str) -> None:
        self._guard_names[subject_id] = name

    @property
    def consent_requests(self) -> list[ConsentRequest]:
        return list(self._consent_requests.values())

    @property
    def audit_events(self) -> list[AuditEvent]:
        return list(self._audit)

    # ------------------------------------------------------------------
    # ConsentStore
    # ------------------------------------------------------------------

    async def get_consent(
        self,
        subject_id: str,
        purpose: ConsentPurpose,
    ) -> Optional[ConsentRecord]:
        if self.fail_consent_reads:
            raise ConnectionError("Consent store unreachable")
        return self._consents.get(consent_key(subject_id, purpose))

    async def list_consents(
        self,
        organization_id: str,
        purpose: ConsentPurpose,
    ) -> Sequence[ConsentRecord]:
        if self.fail_consent_reads:
            raise ConnectionError("Consent store unreachable")
        return [
            record for record in self._consents.values()
            if record.organization_id == organization_id and record.purpose == purpose
        ]

    async def add_consent_request(self, request: ConsentRequest) -> str:
        if self.fail_writes:
            raise PersistenceFailedError("Consent request write failed", subject_id=request.subject_id)
        self._consent_requests[request.id] = request
        return request.id

    # ------------------------------------------------------------------
    # WorkLocationStore
    # ------------------------------------------------------------------

    async def list_work_locations(self, organization_id: str) -> Sequence[WorkLocation]:
        return sorted(
            (loc for loc in self._work_locations.values() if loc.organization_id == organization_id),
            key=lambda loc: loc.id,
        )

    # ------------------------------------------------------------------
    # GuardLocationStore
    # ------------------------------------------------------------------

    async def get(self, subject_id: str) -> Optional[GuardLocationRecord]:
        return self._records.get(subject_id)

    async def get_guard_name(self, subject_id: str) -> Optional[str]:
        return self._guard_names.get(subject_id)

    async def upsert(self, record: GuardLocationRecord) -> None:
        if self.fail_writes:
            raise PersistenceFailedError(subject_id=record.subject_id)
        self._records[record.subject_id] = record
        self.write_count += 1

    async def mark_disabled(self, subject_id: str, at: datetime) -> Optional[GuardLocationRecord]:
        if self.fail_writes:
            raise PersistenceFailedError(subject_id=subject_id)
        current = self._records.get(subject_id)
        if current is None:
            return None
        updated = current.with_changes(is_location_enabled=False, last_update=at)
        self._records[subject_id] = updated
        self.write_count += 1
        return updated

    async def list_by_organization(
        self,
        organization_id: str,
        enabled_only: bool = True,
    ) -> Sequence[GuardLocationRecord]:
        return [
            record for _, record in sorted(self._records.items())
            if record.organization_id == organization_id
            and (record.is_location_enabled or not enabled_only)
        ]

    async def purge_expired(self, now: datetime) -> int:
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        if expired:
            logger.info("Expired guard location records purged", count=len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # AuditSink
    # ------------------------------------------------------------------

    async def append(self, event: AuditEvent) -> None:
        if self.fail_audit:
            raise AuditWriteFailedError(subject_id=event.subject_id)
        self._audit.append(event)

    async def query(
        self,
        subject_id: str,
        start: datetime,
        end: datetime,
    ) -> Sequence[AuditEvent]:
        return [
            event for event in self._audit
            if event.subject_id == subject_id and start <= event.timestamp <= end
        ]

    async def query_by_organization(
        self,
        organization_id: str,
        since: datetime,
    ) -> Sequence[AuditEvent]:
        return [
            event for event in self._audit
            if event.organization_id == organization_id and event.timestamp > since
        ]
