"""
Location Repositories

Data access for work locations, guard profiles and guard
location state.
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from securyflex.infrastructure.database.models.location_model import (
    GuardLocationModel,
    GuardProfileModel,
    WorkLocationModel,
)
from securyflex.infrastructure.database.repositories.base import BaseRepository


class WorkLocationRepository(BaseRepository[WorkLocationModel]):
    """Repository for organization work locations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(WorkLocationModel, session)

    async def list_for_organization(self, organization_id: str) -> Sequence[WorkLocationModel]:
        """Work locations of an organization in canonical (id) order."""
        result = await self._session.execute(
            select(WorkLocationModel)
            .where(WorkLocationModel.organization_id == organization_id)
            .order_by(WorkLocationModel.id)
        )
        return result.scalars().all()


class GuardProfileRepository(BaseRepository[GuardProfileModel]):
    """Repository for guard directory entries."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(GuardProfileModel, session)


class GuardLocationRepository(BaseRepository[GuardLocationModel]):
    """
    Repository for guard location state.

    Provides organization listing and expiry purge beyond basic access.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(GuardLocationModel, session)

    async def list_for_organization(
        self,
        organization_id: str,
        enabled_only: bool = True,
    ) -> Sequence[GuardLocationModel]:
        """
        Guard location rows of an organization.

        Args:
            organization_id: Company id
            enabled_only: Only rows with location enabled

        Returns:
            Rows ordered by subject id
        """
        query = select(GuardLocationModel).where(GuardLocationModel.organization_id == organization_id)
        if enabled_only:
            query = query.where(GuardLocationModel.is_location_enabled.is_(True))
        result = await self._session.execute(query.order_by(GuardLocationModel.subject_id))
        return result.scalars().all()

    async def delete_expired(self, now: datetime) -> int:
        """
        Delete rows whose auto_delete_at has passed.

        Returns:
            Number of deleted rows
        """
        result = await self._session.execute(
            delete(GuardLocationModel).where(GuardLocationModel.auto_delete_at <= now)
        )
        return result.rowcount or 0
