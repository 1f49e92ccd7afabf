"""
Document chunk CRUD operations.

Idempotent chunk upsert keyed by chunk id, stale-chunk pruning, the
embedding-stage point reference, and the chunk/embedding totals used by
the status aggregator.

Dependencies: sqlalchemy, rulebook_ingest.boundary.db.models
System role: Chunk persistence operations
"""

import logging
import uuid
from typing import Iterable, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_ingest.boundary.db.base import utc_now
from rulebook_ingest.boundary.db.CRUD.base_crud import BaseCRUD
from rulebook_ingest.boundary.db.models.document_chunk_model import DocumentChunkModel
from rulebook_ingest.core.document_processing.models.chunk import TextChunk

logger = logging.getLogger(__name__)

# Dialect inserts that support ON CONFLICT DO UPDATE; SQLite backs the test suite
_UPSERT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class DocumentChunkCRUD(BaseCRUD[DocumentChunkModel]):
    """
    CRUD operations for DocumentChunkModel.

    Extends BaseCRUD with chunk-id keyed upserts and per-document queries.
    """

    def __init__(self) -> None:
        """Initialize DocumentChunkCRUD with DocumentChunkModel."""
        super().__init__(DocumentChunkModel)

    async def get_by_chunk_id(self, session: AsyncSession, chunk_id: str) -> DocumentChunkModel | None:
        stmt = select(DocumentChunkModel).where(DocumentChunkModel.chunk_id == chunk_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_document_id(
        self,
        session: AsyncSession,
        document_id: str,
    ) -> Sequence[DocumentChunkModel]:
        """
        Retrieve all chunks of a document ordered by ordinal.

        Args:
            session: Async database session
            document_id: Owning document identifier

        Returns:
            Sequence of DocumentChunkModels
        """
        stmt = (
            select(DocumentChunkModel)
            .where(DocumentChunkModel.document_id == document_id)
            .order_by(DocumentChunkModel.chunk_index)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def upsert_chunks(
        self,
        session: AsyncSession,
        document_id: str,
        chunks: Sequence[TextChunk],
    ) -> int:
        """
        Insert or overwrite chunks matched by chunk id.

        A single INSERT ... ON CONFLICT (chunk_id) DO UPDATE, so concurrent
        redeliveries of one document never trip the unique constraint.
        Existing rows keep their primary key, created_at and point reference;
        text, ordinal and owning document are replaced.

        Args:
            session: Async database session
            document_id: Owning document identifier
            chunks: Chunks of the current chunking run

        Returns:
            int: Number of chunk ids that had no row before this call
        """
        if not chunks:
            return 0

        dialect = session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Chunk upsert is not supported on {dialect}")

        chunk_ids = [chunk.id for chunk in chunks]
        result = await session.execute(
            select(DocumentChunkModel.chunk_id).where(DocumentChunkModel.chunk_id.in_(chunk_ids))
        )
        inserted = len(set(chunk_ids) - set(result.scalars().all()))

        now = utc_now()
        stmt = insert(DocumentChunkModel).values(
            [
                {
                    "id": uuid.uuid4(),
                    "chunk_id": chunk.id,
                    "document_id": document_id,
                    "chunk_text": chunk.text,
                    "chunk_index": chunk.index,
                    "created_at": now,
                    "updated_at": now,
                }
                for chunk in chunks
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DocumentChunkModel.chunk_id],
            set_={
                "document_id": stmt.excluded.document_id,
                "chunk_text": stmt.excluded.chunk_text,
                "chunk_index": stmt.excluded.chunk_index,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        # populate_existing refreshes rows this session already holds
        upserted = await session.scalars(
            stmt.returning(DocumentChunkModel),
            execution_options={"populate_existing": True},
        )
        upserted.all()

        logger.debug(
            f"{__name__}:upsert_chunks - Stored {len(chunks)} chunks ({inserted} new)",
            extra={"document_id": document_id, "chunk_count": len(chunks), "inserted": inserted},
        )
        return inserted

    async def prune_stale_chunks(
        self,
        session: AsyncSession,
        document_id: str,
        keep_ids: Iterable[str],
    ) -> int:
        """
        Delete chunks of a document that are not part of the current chunk set.

        Args:
            session: Async database session
            document_id: Owning document identifier
            keep_ids: Chunk ids produced by the latest chunking run

        Returns:
            int: Number of deleted rows
        """
        stmt = delete(DocumentChunkModel).where(
            DocumentChunkModel.document_id == document_id,
            DocumentChunkModel.chunk_id.not_in(list(keep_ids)),
        )
        result = await session.execute(stmt)
        return result.rowcount

    async def set_point_reference(self, session: AsyncSession, chunk_id: str, point_id: str) -> bool:
        """
        Record the vector index point a chunk was embedded into.

        Args:
            session: Async database session
            chunk_id: Chunk identifier
            point_id: Vector index point id

        Returns:
            bool: False when the chunk does not exist
        """
        stmt = (
            update(DocumentChunkModel)
            .where(DocumentChunkModel.chunk_id == chunk_id)
            .values(qdrant_point_id=point_id)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def count_chunks_and_embeddings(self, session: AsyncSession) -> tuple[int, int]:
        """
        Count all chunks and the chunks that carry a point reference.

        Both totals come from one statement, so the embedded count can never
        exceed the chunk count.

        Args:
            session: Async database session

        Returns:
            tuple[int, int]: (total chunks, total embeddings)
        """
        stmt = select(func.count(), func.count(DocumentChunkModel.qdrant_point_id)).select_from(
            DocumentChunkModel
        )
        result = await session.execute(stmt)
        total_chunks, total_embeddings = result.one()
        return int(total_chunks), int(total_embeddings)


document_chunk_crud = DocumentChunkCRUD()
