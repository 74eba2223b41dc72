"""
Base Repository Pattern

Provides generic async data access for all repositories.
Each repository wraps one ORM model and one session; the session
owner decides when to commit.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from securyflex.infrastructure.database.connection import Base

# Type variable for model types
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Generic base repository for keyed lookups and inserts.

    Subclass and specify the model type for entity-specific repositories.

    Usage:
        class GuardLocationRepository(BaseRepository[GuardLocationModel]):
            pass

        repo = GuardLocationRepository(session)
        row = await repo.get(subject_id)
    """

    def __init__(self, model: Type[ModelT], session: AsyncSession) -> None:
        """
        Initialize repository with model class and session.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self._model = model
        self._session = session

    async def get(self, key: Any) -> Optional[ModelT]:
        """
        Get entity by primary key.

        Args:
            key: Primary key value

        Returns:
            Entity if found, None otherwise
        """
        return await self._session.get(self._model, key)

    async def add(self, entity: ModelT) -> ModelT:
        """
        Add a new entity and flush it.

        Args:
            entity: Entity instance to create

        Returns:
            The flushed entity
        """
        self._session.add(entity)
        await self._session.flush()
        return entity
