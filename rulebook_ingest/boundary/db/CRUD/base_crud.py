"""
Shared lookups for the ingest tables.

Model-specific CRUD classes inherit primary-key lookup and row counting;
writes stay in the subclasses because each table upserts differently.

Dependencies: sqlalchemy
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_ingest.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Primary-key reads over one mapped table.

    Sessions are passed per call; transaction boundaries belong to the caller.
    """

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    async def get_by_id(self, session: AsyncSession, id: Any) -> ModelT | None:
        """
        Fetch one row by primary key.

        Args:
            session: Async database session
            id: Primary key value

        Returns:
            Model instance, or None when no row has that key
        """
        return await session.get(self.model, id)

    async def count(self, session: AsyncSession) -> int:
        """Count all rows of the model's table."""
        result = await session.execute(select(func.count()).select_from(self.model))
        return int(result.scalar_one())
