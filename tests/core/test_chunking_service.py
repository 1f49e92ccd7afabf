"""Tests for DocumentChunkingService.

Runs the orchestrator against the in-memory SQLite database with a mocked
publisher, so persistence and fan-out are exercised together.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from rulebook_ingest.boundary.db.CRUD import cracked_document_crud, document_chunk_crud
from rulebook_ingest.boundary.db.models import CrackedDocumentModel
from rulebook_ingest.core.document_processing.chunking_service import (
    SKIP_DOCUMENT_NOT_FOUND,
    SKIP_EMPTY_CONTENT,
    SKIP_NO_CHUNKS,
    DocumentChunkingService,
)
from rulebook_ingest.core.document_processing.models import (
    ChunkReadyForEmbeddingMessage,
    DocumentReadyForChunkingMessage,
)
from rulebook_ingest.core.document_processing.tasks.chunking_task import ChunkingTask
from rulebook_ingest.core.exceptions import (
    ChunkingError,
    ChunkPersistenceError,
    DocumentFetchError,
)

CRACKED_AT = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def paged_content(pages: int) -> str:
    """Content with one short paragraph per page, each carrying a page marker."""
    return "\n\n".join(f"--- Page {n} ---\n" + "lore " * 8 for n in range(1, pages + 1))


@pytest.fixture
def chunking_task():
    """
    Chunking task that turns each paged_content paragraph into one chunk.

    Returns:
        ChunkingTask: 60-character budget, no noise filter
    """
    return ChunkingTask(max_chunk_size=60, min_chunk_chars=1)


@pytest.fixture
def chunking_message():
    """
    Create document-ready message for doc-1.

    Returns:
        DocumentReadyForChunkingMessage: Message with full file metadata
    """
    return DocumentReadyForChunkingMessage(
        document_id="doc-1",
        file_path="/library/core/phb.pdf",
        relative_directory="core",
        file_name="phb.pdf",
        file_size=2048,
        page_count=3,
        cracked_at=CRACKED_AT,
        document_kind="Sourcebook",
        ruleset_id="dnd5e",
    )


@pytest.fixture
def service(session_factory, chunking_task, mock_publisher):
    """
    Create DocumentChunkingService wired to the test database.

    Returns:
        DocumentChunkingService: Service with real CRUD and mocked publisher
    """
    return DocumentChunkingService(
        session_factory=session_factory,
        chunking_task=chunking_task,
        publisher=mock_publisher,
    )


async def stored_chunks(session_factory, document_id: str = "doc-1"):
    async with session_factory() as session:
        return list(await document_chunk_crud.get_by_document_id(session, document_id))


async def stored_document(session_factory, document_id: str = "doc-1"):
    async with session_factory() as session:
        return await cracked_document_crud.get_by_id(session, document_id)


def published_events(mock_publisher) -> list[ChunkReadyForEmbeddingMessage]:
    return [call.args[0] for call in mock_publisher.publish.await_args_list]


class TestProcessDocumentHappyPath:
    """Test chunk persistence and fan-out for a normal document."""

    @pytest.mark.asyncio
    async def test_process_document_should_persist_and_publish_every_chunk(
        self, service, seed_document, session_factory, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(3))

        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.chunk_count == 3
        assert result.published_count == 3
        assert result.failed_count == 0
        assert result.skipped is False

        rows = await stored_chunks(session_factory)
        assert [row.chunk_id for row in rows] == ["doc-1_chunk_0", "doc-1_chunk_1", "doc-1_chunk_2"]
        assert [row.chunk_index for row in rows] == [0, 1, 2]
        assert all(row.qdrant_point_id is None for row in rows)

    @pytest.mark.asyncio
    async def test_process_document_should_set_total_chunks_without_marking_processed(
        self, service, seed_document, session_factory, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(3), processed_chunk_count=5, is_processed=True)

        # Act
        await service.process_document(chunking_message)

        # Assert
        document = await stored_document(session_factory)
        assert document.total_chunks == 3
        assert document.processed_chunk_count == 0
        assert document.is_processed is False

    @pytest.mark.asyncio
    async def test_process_document_should_carry_document_metadata_into_events(
        self, service, seed_document, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(3))

        # Act
        await service.process_document(chunking_message)

        # Assert
        events = published_events(mock_publisher)
        assert [event.chunk_index for event in events] == [0, 1, 2]
        assert [event.page_number for event in events] == [1, 2, 3]
        first = events[0]
        assert first.chunk_id == "doc-1_chunk_0"
        assert first.chunk_text.startswith("--- Page 1 ---")
        assert first.document_id == "doc-1"
        assert first.file_name == "phb.pdf"
        assert first.file_path == "/library/core/phb.pdf"
        assert first.relative_directory == "core"
        assert first.file_size == 2048
        assert first.page_count == 3
        assert first.cracked_at == CRACKED_AT
        assert first.total_chunks == 3
        assert first.document_kind == "Sourcebook"
        assert first.ruleset_id == "dnd5e"

    @pytest.mark.asyncio
    async def test_process_document_should_be_idempotent_on_redelivery(
        self, service, seed_document, session_factory, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(3))
        first = await service.process_document(chunking_message)
        first_rows = {row.chunk_id: row.id for row in await stored_chunks(session_factory)}

        # Act
        second = await service.process_document(chunking_message)

        # Assert
        second_rows = {row.chunk_id: row.id for row in await stored_chunks(session_factory)}
        assert second.chunk_count == first.chunk_count == 3
        assert second_rows == first_rows
        ids = [event.chunk_id for event in published_events(mock_publisher)]
        assert ids[:3] == ids[3:]

    @pytest.mark.asyncio
    async def test_process_document_should_prune_chunks_dropped_by_rechunk(
        self, service, seed_document, session_factory, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(3))
        await service.process_document(chunking_message)
        async with session_factory() as session:
            await session.execute(
                update(CrackedDocumentModel)
                .where(CrackedDocumentModel.id == "doc-1")
                .values(content=paged_content(1))
            )
            await session.commit()

        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.chunk_count == 1
        rows = await stored_chunks(session_factory)
        assert [row.chunk_id for row in rows] == ["doc-1_chunk_0"]
        assert (await stored_document(session_factory)).total_chunks == 1


class TestProcessDocumentSkips:
    """Test documents with nothing to chunk."""

    @pytest.mark.asyncio
    async def test_process_document_should_skip_missing_document(
        self, service, mock_publisher, chunking_message
    ) -> None:
        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.skipped_reason == SKIP_DOCUMENT_NOT_FOUND
        assert result.chunk_count == 0
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   \n\t  "])
    async def test_process_document_should_skip_empty_content(
        self, content, service, seed_document, session_factory, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", content)

        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.skipped_reason == SKIP_EMPTY_CONTENT
        assert await stored_chunks(session_factory) == []
        assert (await stored_document(session_factory)).total_chunks == 0
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_document_should_skip_when_every_chunk_is_noise(
        self, session_factory, seed_document, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", "Too short.")
        service = DocumentChunkingService(
            session_factory=session_factory,
            chunking_task=ChunkingTask(min_chunk_chars=100),
            publisher=mock_publisher,
        )

        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.skipped_reason == SKIP_NO_CHUNKS
        assert await stored_chunks(session_factory) == []
        mock_publisher.publish.assert_not_awaited()


class TestProcessDocumentFailures:
    """Test failure policy per step."""

    @pytest.mark.asyncio
    async def test_process_document_should_isolate_publish_failures(
        self, service, seed_document, session_factory, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(3))
        mock_publisher.publish.side_effect = [None, RuntimeError("broker hiccup"), None]

        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.chunk_count == 3
        assert result.published_count == 2
        assert result.failed_count == 1
        assert mock_publisher.publish.await_count == 3
        assert len(await stored_chunks(session_factory)) == 3

    @pytest.mark.asyncio
    async def test_process_document_should_raise_fetch_error_when_lookup_fails(
        self, session_factory, chunking_task, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        document_crud = MagicMock()
        document_crud.get_content = AsyncMock(side_effect=SQLAlchemyError("connection refused"))
        service = DocumentChunkingService(
            session_factory=session_factory,
            chunking_task=chunking_task,
            publisher=mock_publisher,
            document_crud=document_crud,
        )

        # Act & Assert
        with pytest.raises(DocumentFetchError) as exc_info:
            await service.process_document(chunking_message)

        assert exc_info.value.document_id == "doc-1"
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_document_should_raise_persistence_error_and_not_publish(
        self, session_factory, seed_document, chunking_task, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(2))
        chunk_crud = MagicMock()
        chunk_crud.upsert_chunks = AsyncMock(side_effect=SQLAlchemyError("disk full"))
        service = DocumentChunkingService(
            session_factory=session_factory,
            chunking_task=chunking_task,
            publisher=mock_publisher,
            chunk_crud=chunk_crud,
        )

        # Act & Assert
        with pytest.raises(ChunkPersistenceError) as exc_info:
            await service.process_document(chunking_message)

        assert exc_info.value.details["chunk_count"] == 2
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_document_should_raise_chunking_error_from_strategy(
        self, session_factory, seed_document, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(2))
        chunking_task = MagicMock()
        chunking_task.chunk_text.side_effect = ValueError("bad input")
        service = DocumentChunkingService(
            session_factory=session_factory,
            chunking_task=chunking_task,
            publisher=mock_publisher,
        )

        # Act & Assert
        with pytest.raises(ChunkingError):
            await service.process_document(chunking_message)

        mock_publisher.publish.assert_not_awaited()
        assert await stored_chunks(session_factory) == []

    @pytest.mark.asyncio
    async def test_process_document_should_continue_when_count_update_fails(
        self, session_factory, seed_document, chunking_task, mock_publisher, chunking_message
    ) -> None:
        # Arrange
        await seed_document("doc-1", paged_content(2))
        document_crud = MagicMock()
        document_crud.get_content = AsyncMock(return_value=paged_content(2))
        document_crud.set_chunk_count = AsyncMock(side_effect=SQLAlchemyError("lock timeout"))
        service = DocumentChunkingService(
            session_factory=session_factory,
            chunking_task=chunking_task,
            publisher=mock_publisher,
            document_crud=document_crud,
        )

        # Act
        result = await service.process_document(chunking_message)

        # Assert
        assert result.published_count == 2
        assert len(await stored_chunks(session_factory)) == 2
