"""
Document chunking orchestrator.

Runs one document through fetch -> chunk -> persist -> fan-out. Every step
is safe to re-run from scratch: chunk ids are deterministic and chunk rows
are upserted, so a retried message converges on the same state.

Failure policy:
  - fetch, chunking and chunk persistence errors are fatal and re-raised
    for broker-level retry
  - missing or empty content and zero chunks are logged skips
  - the chunk count update is best-effort
  - each chunk-ready publish is isolated; failures are counted and logged

Dependencies: sqlalchemy, rulebook_ingest.boundary, rulebook_ingest.core
System role: Chunking stage orchestration (coordinates only)
"""

import logging
import time
from typing import Protocol

from sqlalchemy.ext.asyncio import async_sessionmaker

from rulebook_ingest.boundary.db.CRUD.cracked_document_crud import (
    CrackedDocumentCRUD,
    cracked_document_crud,
)
from rulebook_ingest.boundary.db.CRUD.document_chunk_crud import (
    DocumentChunkCRUD,
    document_chunk_crud,
)
from rulebook_ingest.core.document_processing.models import (
    ChunkingResult,
    ChunkReadyForEmbeddingMessage,
    DocumentReadyForChunkingMessage,
    PipelineMessage,
    TextChunk,
)
from rulebook_ingest.core.document_processing.tasks.chunking_task import (
    ChunkingTask,
    extract_page_number,
)
from rulebook_ingest.core.exceptions import (
    ChunkingError,
    ChunkPersistenceError,
    DocumentFetchError,
)
from rulebook_ingest.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)

SKIP_DOCUMENT_NOT_FOUND = "document_not_found"
SKIP_EMPTY_CONTENT = "empty_content"
SKIP_NO_CHUNKS = "no_chunks"


class MessagePublisher(Protocol):
    async def publish(self, message: PipelineMessage) -> None: ...


class DocumentChunkingService:
    """Chunk a cracked document and fan out chunk-ready events."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        chunking_task: ChunkingTask,
        publisher: MessagePublisher,
        document_crud: CrackedDocumentCRUD = cracked_document_crud,
        chunk_crud: DocumentChunkCRUD = document_chunk_crud,
    ) -> None:
        """
        Initialize orchestrator with its collaborators.

        Args:
            session_factory: Async session factory for the document/chunk database
            chunking_task: Chunking strategy
            publisher: Outbound message publisher
            document_crud: Cracked document operations
            chunk_crud: Chunk operations
        """
        self.session_factory = session_factory
        self.chunking_task = chunking_task
        self.publisher = publisher
        self.document_crud = document_crud
        self.chunk_crud = chunk_crud

    async def _fetch_content(self, document_id: str) -> str | None:
        try:
            async with self.session_factory() as session:
                return await self.document_crud.get_content(session, document_id)
        except Exception as e:
            raise DocumentFetchError(
                f"Failed to load document content: {e}",
                document_id=document_id,
                details={"error_type": type(e).__name__},
            ) from e

    async def _persist_chunks(self, document_id: str, chunks: list[TextChunk]) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await self.chunk_crud.upsert_chunks(session, document_id, chunks)
                    pruned = await self.chunk_crud.prune_stale_chunks(
                        session, document_id, [chunk.id for chunk in chunks]
                    )
        except Exception as e:
            raise ChunkPersistenceError(
                f"Failed to store chunks: {e}",
                document_id=document_id,
                details={"chunk_count": len(chunks), "error_type": type(e).__name__},
            ) from e

        if pruned:
            logger.info(
                f"{__name__}:process_document - Removed {pruned} stale chunks",
                extra={"document_id": document_id, "pruned_count": pruned},
            )

    async def _update_chunk_count(self, document_id: str, total: int) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    found = await self.document_crud.set_chunk_count(session, document_id, total)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:process_document - Chunk count update failed",
                e,
                document_id=document_id,
                total_chunks=total,
            )
            return

        if not found:
            logger.warning(
                f"{__name__}:process_document - Document not found when updating chunk count",
                extra={"document_id": document_id},
            )

    def _build_event(
        self,
        message: DocumentReadyForChunkingMessage,
        chunk: TextChunk,
        total_chunks: int,
    ) -> ChunkReadyForEmbeddingMessage:
        return ChunkReadyForEmbeddingMessage(
            chunk_id=chunk.id,
            chunk_text=chunk.text,
            chunk_index=chunk.index,
            document_id=message.document_id,
            file_name=message.file_name,
            file_path=message.file_path,
            relative_directory=message.relative_directory,
            file_size=message.file_size,
            page_count=message.page_count,
            page_number=extract_page_number(chunk.text),
            cracked_at=message.cracked_at,
            total_chunks=total_chunks,
            document_kind=message.document_kind,
            ruleset_id=message.ruleset_id,
        )

    async def process_document(self, message: DocumentReadyForChunkingMessage) -> ChunkingResult:
        """
        Chunk one document and publish a chunk-ready event per chunk.

        Args:
            message: Document-ready event from the extraction stage

        Returns:
            ChunkingResult: Counts for persisted, published and failed chunks,
                or a skip reason when there was nothing to chunk

        Raises:
            DocumentFetchError: Content lookup failed
            ChunkingError: Splitter failed
            ChunkPersistenceError: Chunks could not be stored
        """
        start_time = time.perf_counter()
        document_id = message.document_id

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        logger.info(
            f"{__name__}:process_document - Chunking document",
            extra={"document_id": document_id, "file_name": message.file_name},
        )

        content = await self._fetch_content(document_id)
        if content is None or not content.strip():
            reason = SKIP_DOCUMENT_NOT_FOUND if content is None else SKIP_EMPTY_CONTENT
            logger.warning(
                f"{__name__}:process_document - Nothing to chunk ({reason}), skipping",
                extra={"document_id": document_id, "reason": reason},
            )
            return ChunkingResult(
                document_id=document_id,
                skipped_reason=reason,
                processing_time_ms=elapsed_ms(),
            )

        try:
            chunks = list(self.chunking_task.chunk_text(content, document_id))
        except ChunkingError:
            raise
        except Exception as e:
            raise ChunkingError(
                f"Chunking strategy failed: {e}",
                document_id=document_id,
                details={"error_type": type(e).__name__},
            ) from e

        if not chunks:
            logger.warning(
                f"{__name__}:process_document - Document produced no chunks, skipping",
                extra={"document_id": document_id, "content_length": len(content)},
            )
            return ChunkingResult(
                document_id=document_id,
                skipped_reason=SKIP_NO_CHUNKS,
                processing_time_ms=elapsed_ms(),
            )

        await self._persist_chunks(document_id, chunks)
        await self._update_chunk_count(document_id, len(chunks))

        published = 0
        failed = 0
        for chunk in chunks:
            try:
                await self.publisher.publish(self._build_event(message, chunk, len(chunks)))
                published += 1
            except Exception as e:
                failed += 1
                log_exception_with_context(
                    logger,
                    f"{__name__}:process_document - Failed to publish chunk",
                    e,
                    document_id=document_id,
                    chunk_id=chunk.id,
                    chunk_index=chunk.index,
                )

        result = ChunkingResult(
            document_id=document_id,
            chunk_count=len(chunks),
            published_count=published,
            failed_count=failed,
            processing_time_ms=elapsed_ms(),
        )
        log_with_context(
            logger,
            logging.WARNING if failed else logging.INFO,
            f"{__name__}:process_document - Queued {published}/{len(chunks)} chunks for embedding",
            document_id=document_id,
            chunk_count=len(chunks),
            published_count=published,
            failed_count=failed,
            processing_time_ms=round(result.processing_time_ms, 2),
        )
        return result
