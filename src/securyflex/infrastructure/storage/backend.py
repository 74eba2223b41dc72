"""
Storage Backend Interfaces

Contracts for the data the location engine reads and writes.
Read-only collaborators (consents, work locations) and engine-owned
data (guard location records, audit events) are separate
interfaces so each can live in a different backend.

Implementations:
- InMemoryLocationStore: process-local, used in development and tests
- SqlLocationStore: SQLAlchemy async sessions
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from securyflex.domain.enums.tracking import ConsentPurpose
from securyflex.domain.models.audit import AuditEvent
from securyflex.domain.models.consent import ConsentRecord, ConsentRequest
from securyflex.domain.models.guard_location import GuardLocationRecord
from securyflex.domain.models.location import WorkLocation


class ConsentStore(ABC):
    """Read access to consent records, plus consent request creation."""

    @abstractmethod
    async def get_consent(
        self,
        subject_id: str,
        purpose: ConsentPurpose,
    ) -> Optional[ConsentRecord]:
        """
        Get the consent record for (subject, purpose).

        Returns:
            Record if present, None otherwise

        Raises:
            Exception: On read failure (callers treat as no consent)
        """

    @abstractmethod
    async def list_consents(
        self,
        organization_id: str,
        purpose: ConsentPurpose,
    ) -> Sequence[ConsentRecord]:
        """Consent records granted to an organization for a purpose."""

    @abstractmethod
    async def add_consent_request(self, request: ConsentRequest) -> str:
        """
        Store a pending consent request.

        Returns:
            Request identifier
        """


class WorkLocationStore(ABC):
    """Read access to organization work locations."""

    @abstractmethod
    async def list_work_locations(self, organization_id: str) -> Sequence[WorkLocation]:
        """
        Work locations of an organization in canonical order.

        Canonical order is ascending work location id.
        """


class GuardLocationStore(ABC):
    """Engine-owned guard location records, one per guard."""

    @abstractmethod
    async def get(self, subject_id: str) -> Optional[GuardLocationRecord]:
        """Current record for a guard, if any."""

    @abstractmethod
    async def get_guard_name(self, subject_id: str) -> Optional[str]:
        """Display name of a guard from the user directory, if known."""

    @abstractmethod
    async def upsert(self, record: GuardLocationRecord) -> None:
        """
        Overwrite the record keyed by record.subject_id.

        Raises:
            PersistenceFailedError: On write failure
        """

    @abstractmethod
    async def mark_disabled(self, subject_id: str, at: datetime) -> Optional[GuardLocationRecord]:
        """
        Set is_location_enabled=False and last_update=at.

        Returns:
            Updated record, or None if the guard has no record

        Raises:
            PersistenceFailedError: On write failure
        """

    @abstractmethod
    async def list_by_organization(
        self,
        organization_id: str,
        enabled_only: bool = True,
    ) -> Sequence[GuardLocationRecord]:
        """Records of an organization ordered by subject id."""

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """
        Delete records whose auto_delete_at has passed.

        Returns:
            Number of deleted records
        """


class AuditSink(ABC):
    """Append-only audit trail."""

    @abstractmethod
    async def append(self, event: AuditEvent) -> None:
        """
        Append an audit event.

        Raises:
            AuditWriteFailedError: On write failure
        """

    @abstractmethod
    async def query(
        self,
        subject_id: str,
        start: datetime,
        end: datetime,
    ) -> Sequence[AuditEvent]:
        """Events of a guard with start <= timestamp <= end, oldest first."""

    @abstractmethod
    async def query_by_organization(
        self,
        organization_id: str,
        since: datetime,
    ) -> Sequence[AuditEvent]:
        """Events for an organization after `since`, oldest first."""

    async def health_check(self) -> bool:
        """Whether the backend is reachable."""
        return True
