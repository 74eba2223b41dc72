"""
Audit Repository

Insert and query access to the tracking audit trail.
There are no update or delete operations.
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from securyflex.infrastructure.database.models.audit_model import AuditEventModel
from securyflex.infrastructure.database.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditEventModel]):
    """Repository for tracking audit events."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(AuditEventModel, session)

    async def list_for_subject(
        self,
        subject_id: str,
        start: datetime,
        end: datetime,
    ) -> Sequence[AuditEventModel]:
        """
        Events of a guard within [start, end].

        Returns:
            Events oldest first
        """
        result = await self._session.execute(
            select(AuditEventModel)
            .where(
                AuditEventModel.subject_id == subject_id,
                AuditEventModel.timestamp >= start,
                AuditEventModel.timestamp <= end,
            )
            .order_by(AuditEventModel.timestamp, AuditEventModel.seq)
        )
        return result.scalars().all()

    async def list_for_organization(
        self,
        organization_id: str,
        since: datetime,
    ) -> Sequence[AuditEventModel]:
        """Events for an organization after `since`, oldest first."""
        result = await self._session.execute(
            select(AuditEventModel)
            .where(
                AuditEventModel.organization_id == organization_id,
                AuditEventModel.timestamp > since,
            )
            .order_by(AuditEventModel.timestamp, AuditEventModel.seq)
        )
        return result.scalars().all()
