"""
Consent Repository

Data access for location consent records and consent requests.
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from securyflex.domain.enums.tracking import ConsentPurpose
from securyflex.infrastructure.database.models.consent_model import ConsentModel, ConsentRequestModel
from securyflex.infrastructure.database.repositories.base import BaseRepository


class ConsentRepository(BaseRepository[ConsentModel]):
    """Repository for location consent records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ConsentModel, session)

    async def list_for_organization(
        self,
        organization_id: str,
        purpose: ConsentPurpose,
    ) -> Sequence[ConsentModel]:
        """
        Consent records granted to an organization for a purpose.

        Args:
            organization_id: Company id
            purpose: Consent purpose

        Returns:
            Matching consent rows ordered by subject id
        """
        result = await self._session.execute(
            select(ConsentModel)
            .where(
                ConsentModel.organization_id == organization_id,
                ConsentModel.purpose == purpose.value,
            )
            .order_by(ConsentModel.subject_id)
        )
        return result.scalars().all()


class ConsentRequestRepository(BaseRepository[ConsentRequestModel]):
    """Repository for pending consent requests."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(ConsentRequestModel, session)

    async def list_for_subject(self, subject_id: str) -> Sequence[ConsentRequestModel]:
        result = await self._session.execute(
            select(ConsentRequestModel)
            .where(ConsentRequestModel.subject_id == subject_id)
            .order_by(ConsentRequestModel.requested_at)
        )
        return result.scalars().all()
