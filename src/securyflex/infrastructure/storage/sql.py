"""
SQL Location Store

SQLAlchemy implementation of all storage interfaces on top of
DatabaseManager sessions and the database repositories.

Each operation runs in its own session (one transaction).
Write failures surface as PersistenceFailedError or
AuditWriteFailedError so callers can treat every backend alike.

SECURITY: Error messages may contain SQL; they are logged by the
caller, never returned to API clients.
"""

from datetime import datetime
from typing import Optional, Sequence

from securyflex.config.logging_config import get_logger
from securyflex.domain.enums.tracking import ConsentPurpose
from securyflex.domain.models.audit import AuditEvent
from securyflex.domain.models.consent import ConsentRecord, ConsentRequest, consent_key
from securyflex.domain.models.guard_location import GuardLocationRecord
from securyflex.domain.models.location import WorkLocation
from securyflex.infrastructure.database.connection import DatabaseManager
from securyflex.infrastructure.database.models import (
    AuditEventModel,
    ConsentModel,
    ConsentRequestModel,
    GuardLocationModel,
    GuardProfileModel,
    WorkLocationModel,
)
from securyflex.infrastructure.database.repositories import (
    AuditRepository,
    ConsentRepository,
    ConsentRequestRepository,
    GuardLocationRepository,
    GuardProfileRepository,
    WorkLocationRepository,
)
from securyflex.infrastructure.storage.backend import (
    AuditSink,
    ConsentStore,
    GuardLocationStore,
    WorkLocationStore,
)
from securyflex.services.location.errors import AuditWriteFailedError, PersistenceFailedError

logger = get_logger(__name__)


class SqlLocationStore(ConsentStore, WorkLocationStore, GuardLocationStore, AuditSink):
    """
    Database-backed store.

    Usage:
        db = DatabaseManager(settings)
        await db.initialize()
        store = SqlLocationStore(db)
    """

    def __init__(self, db: DatabaseManager, default_geofence_radius_m: float = 100.0) -> None:
        """
        Initialize store.

        Args:
            db: Initialized database manager
            default_geofence_radius_m: Radius for work locations stored without one
        """
        self._db = db
        self._default_radius_m = default_geofence_radius_m

    # ------------------------------------------------------------------
    # Seeding (owned by other subsystems in production)
    # ------------------------------------------------------------------

    async def put_consent(self, record: ConsentRecord) -> None:
        async with self._db.session() as session:
            await session.merge(ConsentModel.from_domain(record))

    async def put_work_location(self, location: WorkLocation) -> None:
        async with self._db.session() as session:
            await session.merge(
                WorkLocationModel(
                    id=location.id,
                    organization_id=location.organization_id,
                    name=location.name,
                    latitude=location.latitude,
                    longitude=location.longitude,
                    geofence_radius_m=location.geofence_radius_m,
                )
            )

    async def put_guard_name(self, subject_id: str, name: str) -> None:
        async with self._db.session() as session:
            await session.merge(GuardProfileModel(id=subject_id, display_name=name))

    async def list_consent_requests(self, subject_id: str) -> list[ConsentRequest]:
        async with self._db.session() as session:
            rows = await ConsentRequestRepository(session).list_for_subject(subject_id)
            return [row.to_domain() for row in rows]

    # ------------------------------------------------------------------
    # ConsentStore
    # ------------------------------------------------------------------

    async def get_consent(
        self,
        subject_id: str,
        purpose: ConsentPurpose,
    ) -> Optional[ConsentRecord]:
        async with self._db.session() as session:
            row = await ConsentRepository(session).get(consent_key(subject_id, purpose))
            return row.to_domain() if row else None

    async def list_consents(
        self,
        organization_id: str,
        purpose: ConsentPurpose,
    ) -> Sequence[ConsentRecord]:
        async with self._db.session() as session:
            rows = await ConsentRepository(session).list_for_organization(organization_id, purpose)
            return [row.to_domain() for row in rows]

    async def add_consent_request(self, request: ConsentRequest) -> str:
        try:
            async with self._db.session() as session:
                await ConsentRequestRepository(session).add(ConsentRequestModel.from_domain(request))
        except Exception as e:
            raise PersistenceFailedError(
                "Consent request write failed",
                subject_id=request.subject_id,
                original_error=e,
            )
        return request.id

    # ------------------------------------------------------------------
    # WorkLocationStore
    # ------------------------------------------------------------------

    async def list_work_locations(self, organization_id: str) -> Sequence[WorkLocation]:
        async with self._db.session() as session:
            rows = await WorkLocationRepository(session).list_for_organization(organization_id)
            return [row.to_domain(self._default_radius_m) for row in rows]

    # ------------------------------------------------------------------
    # GuardLocationStore
    # ------------------------------------------------------------------

    async def get(self, subject_id: str) -> Optional[GuardLocationRecord]:
        async with self._db.session() as session:
            row = await GuardLocationRepository(session).get(subject_id)
            return row.to_domain() if row else None

    async def get_guard_name(self, subject_id: str) -> Optional[str]:
        async with self._db.session() as session:
            row = await GuardProfileRepository(session).get(subject_id)
            return row.display_name if row else None

    async def upsert(self, record: GuardLocationRecord) -> None:
        try:
            async with self._db.session() as session:
                repo = GuardLocationRepository(session)
                row = await repo.get(record.subject_id)
                if row is None:
                    row = GuardLocationModel(subject_id=record.subject_id)
                    row.apply(record)
                    await repo.add(row)
                else:
                    row.apply(record)
        except Exception as e:
            raise PersistenceFailedError(subject_id=record.subject_id, original_error=e)

    async def mark_disabled(self, subject_id: str, at: datetime) -> Optional[GuardLocationRecord]:
        try:
            async with self._db.session() as session:
                row = await GuardLocationRepository(session).get(subject_id)
                if row is None:
                    return None
                row.is_location_enabled = False
                row.last_update = at
                await session.flush()
                return row.to_domain()
        except Exception as e:
            raise PersistenceFailedError(subject_id=subject_id, original_error=e)

    async def list_by_organization(
        self,
        organization_id: str,
        enabled_only: bool = True,
    ) -> Sequence[GuardLocationRecord]:
        async with self._db.session() as session:
            rows = await GuardLocationRepository(session).list_for_organization(
                organization_id,
                enabled_only=enabled_only,
            )
            return [row.to_domain() for row in rows]

    async def purge_expired(self, now: datetime) -> int:
        async with self._db.session() as session:
            deleted = await GuardLocationRepository(session).delete_expired(now)
        if deleted:
            logger.info("Expired guard location records purged", count=deleted)
        return deleted

    # ------------------------------------------------------------------
    # AuditSink
    # ------------------------------------------------------------------

    async def append(self, event: AuditEvent) -> None:
        try:
            async with self._db.session() as session:
                await AuditRepository(session).add(AuditEventModel.from_domain(event))
        except Exception as e:
            raise AuditWriteFailedError(subject_id=event.subject_id, original_error=e)

    async def query(
        self,
        subject_id: str,
        start: datetime,
        end: datetime,
    ) -> Sequence[AuditEvent]:
        async with self._db.session() as session:
            rows = await AuditRepository(session).list_for_subject(subject_id, start, end)
            return [row.to_domain() for row in rows]

    async def query_by_organization(
        self,
        organization_id: str,
        since: datetime,
    ) -> Sequence[AuditEvent]:
        async with self._db.session() as session:
            rows = await AuditRepository(session).list_for_organization(organization_id, since)
            return [row.to_domain() for row in rows]

    async def health_check(self) -> bool:
        return await self._db.health_check()
