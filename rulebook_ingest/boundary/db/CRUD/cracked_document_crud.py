"""
Cracked document CRUD operations.

Raw-text lookup for the chunking stage plus the per-document chunk and
embedding counters.

Dependencies: sqlalchemy, rulebook_ingest.boundary.db.models
System role: Cracked document persistence operations
"""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_ingest.boundary.db.CRUD.base_crud import BaseCRUD
from rulebook_ingest.boundary.db.models.cracked_document_model import CrackedDocumentModel


class CrackedDocumentCRUD(BaseCRUD[CrackedDocumentModel]):
    """
    CRUD operations for CrackedDocumentModel.

    Extends BaseCRUD with counter updates and status read queries.
    """

    def __init__(self) -> None:
        """Initialize CrackedDocumentCRUD with CrackedDocumentModel."""
        super().__init__(CrackedDocumentModel)

    async def get_content(self, session: AsyncSession, document_id: str) -> str | None:
        """
        Load only the raw text of a document.

        Args:
            session: Async database session
            document_id: Document identifier

        Returns:
            str | None: Content, or None when the document does not exist
        """
        stmt = select(CrackedDocumentModel.content).where(CrackedDocumentModel.id == document_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_chunk_count(self, session: AsyncSession, document_id: str, total: int) -> bool:
        """
        Record a new chunk count and reset embedding progress.

        Re-chunking invalidates earlier progress, so processed_chunk_count goes
        back to zero and is_processed back to False.

        Args:
            session: Async database session
            document_id: Document identifier
            total: Number of chunks in the current chunk set

        Returns:
            bool: False when the document does not exist
        """
        stmt = (
            update(CrackedDocumentModel)
            .where(CrackedDocumentModel.id == document_id)
            .values(total_chunks=total, processed_chunk_count=0, is_processed=False)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def record_chunk_embedded(self, session: AsyncSession, document_id: str) -> bool:
        """
        Advance embedding progress by one chunk.

        Marks the document processed once processed_chunk_count reaches
        total_chunks. Called by embedding writers.

        Args:
            session: Async database session
            document_id: Document identifier

        Returns:
            bool: False when the document does not exist
        """
        stmt = (
            update(CrackedDocumentModel)
            .where(CrackedDocumentModel.id == document_id)
            .values(processed_chunk_count=CrackedDocumentModel.processed_chunk_count + 1)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            return False

        await session.execute(
            update(CrackedDocumentModel)
            .where(
                CrackedDocumentModel.id == document_id,
                CrackedDocumentModel.total_chunks > 0,
                CrackedDocumentModel.processed_chunk_count >= CrackedDocumentModel.total_chunks,
            )
            .values(is_processed=True)
        )
        return True

    async def count_ready(self, session: AsyncSession) -> int:
        """
        Count documents fully processed with at least one chunk.

        Args:
            session: Async database session

        Returns:
            int: Number of ready documents
        """
        stmt = select(func.count()).select_from(CrackedDocumentModel).where(
            CrackedDocumentModel.is_processed.is_(True),
            CrackedDocumentModel.total_chunks > 0,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())


cracked_document_crud = CrackedDocumentCRUD()
