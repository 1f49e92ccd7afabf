"""Integration tests for DocumentChunkCRUD and CrackedDocumentCRUD against SQLite."""

import pytest
from sqlalchemy import event

from rulebook_ingest.boundary.db.CRUD.cracked_document_crud import (
    CrackedDocumentCRUD,
    cracked_document_crud,
)
from rulebook_ingest.boundary.db.CRUD.document_chunk_crud import (
    DocumentChunkCRUD,
    document_chunk_crud,
)
from rulebook_ingest.boundary.db.models import CrackedDocumentModel, DocumentChunkModel
from rulebook_ingest.core.document_processing.models.chunk import TextChunk, make_chunk_id


def make_chunks(document_id: str, texts: list[str]) -> list[TextChunk]:
    return [
        TextChunk(id=make_chunk_id(document_id, n), text=text, index=n, source_document_id=document_id)
        for n, text in enumerate(texts)
    ]


class TestCRUDInit:
    """Test CRUD singletons are bound to their models."""

    def test_chunk_crud_should_use_document_chunk_model(self) -> None:
        assert isinstance(document_chunk_crud, DocumentChunkCRUD)
        assert document_chunk_crud.model is DocumentChunkModel

    def test_document_crud_should_use_cracked_document_model(self) -> None:
        assert isinstance(cracked_document_crud, CrackedDocumentCRUD)
        assert cracked_document_crud.model is CrackedDocumentModel


class TestUpsertChunks:
    """Test chunk upsert and pruning."""

    @pytest.mark.asyncio
    async def test_upsert_chunks_should_insert_new_rows(self, seed_document, test_async_db) -> None:
        # Arrange
        await seed_document("doc-1", "content")

        # Act
        inserted = await document_chunk_crud.upsert_chunks(
            test_async_db, "doc-1", make_chunks("doc-1", ["alpha", "beta"])
        )

        # Assert
        assert inserted == 2
        rows = await document_chunk_crud.get_by_document_id(test_async_db, "doc-1")
        assert [(row.chunk_id, row.chunk_text, row.chunk_index) for row in rows] == [
            ("doc-1_chunk_0", "alpha", 0),
            ("doc-1_chunk_1", "beta", 1),
        ]

    @pytest.mark.asyncio
    async def test_upsert_chunks_should_overwrite_existing_rows_in_place(
        self, seed_document, test_async_db
    ) -> None:
        # Arrange
        await seed_document("doc-1", "content")
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", make_chunks("doc-1", ["old"]))
        original = await document_chunk_crud.get_by_chunk_id(test_async_db, "doc-1_chunk_0")
        original_id, original_created = original.id, original.created_at

        # Act
        inserted = await document_chunk_crud.upsert_chunks(
            test_async_db, "doc-1", make_chunks("doc-1", ["new"])
        )

        # Assert
        row = await document_chunk_crud.get_by_chunk_id(test_async_db, "doc-1_chunk_0")
        assert inserted == 0
        assert row.id == original_id
        assert row.created_at == original_created
        assert row.chunk_text == "new"
        assert await document_chunk_crud.count(test_async_db) == 1

    @pytest.mark.asyncio
    async def test_upsert_chunks_should_write_with_single_on_conflict_insert(
        self, seed_document, test_async_db, db_engine
    ) -> None:
        # Arrange
        await seed_document("doc-1", "content")
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", make_chunks("doc-1", ["old"]))
        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(db_engine.sync_engine, "before_cursor_execute", capture)

        # Act
        try:
            await document_chunk_crud.upsert_chunks(
                test_async_db, "doc-1", make_chunks("doc-1", ["new", "added"])
            )
        finally:
            event.remove(db_engine.sync_engine, "before_cursor_execute", capture)

        # Assert
        writes = [s for s in statements if s.lstrip().upper().startswith(("INSERT", "UPDATE"))]
        assert len(writes) == 1
        assert "ON CONFLICT" in writes[0].upper()
        rows = await document_chunk_crud.get_by_document_id(test_async_db, "doc-1")
        assert [row.chunk_text for row in rows] == ["new", "added"]

    @pytest.mark.asyncio
    async def test_upsert_chunks_should_keep_point_reference(self, seed_document, test_async_db) -> None:
        # Arrange
        await seed_document("doc-1", "content")
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", make_chunks("doc-1", ["text"]))
        await document_chunk_crud.set_point_reference(test_async_db, "doc-1_chunk_0", "42")

        # Act
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", make_chunks("doc-1", ["text v2"]))

        # Assert
        row = await document_chunk_crud.get_by_chunk_id(test_async_db, "doc-1_chunk_0")
        assert row.qdrant_point_id == "42"

    @pytest.mark.asyncio
    async def test_upsert_chunks_should_return_zero_for_empty_input(self, test_async_db) -> None:
        assert await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", []) == 0

    @pytest.mark.asyncio
    async def test_prune_stale_chunks_should_delete_only_unlisted_rows_of_document(
        self, seed_document, test_async_db
    ) -> None:
        # Arrange
        await seed_document("doc-1", "content")
        await seed_document("doc-2", "content")
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", make_chunks("doc-1", ["a", "b", "c"]))
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-2", make_chunks("doc-2", ["z"]))

        # Act
        pruned = await document_chunk_crud.prune_stale_chunks(test_async_db, "doc-1", ["doc-1_chunk_0"])

        # Assert
        assert pruned == 2
        remaining = await document_chunk_crud.get_by_document_id(test_async_db, "doc-1")
        assert [row.chunk_id for row in remaining] == ["doc-1_chunk_0"]
        assert len(await document_chunk_crud.get_by_document_id(test_async_db, "doc-2")) == 1


class TestChunkTotals:
    """Test status aggregator counts."""

    @pytest.mark.asyncio
    async def test_count_chunks_and_embeddings_should_count_point_references(
        self, seed_document, test_async_db
    ) -> None:
        # Arrange
        await seed_document("doc-1", "content")
        await document_chunk_crud.upsert_chunks(test_async_db, "doc-1", make_chunks("doc-1", ["a", "b", "c"]))
        await document_chunk_crud.set_point_reference(test_async_db, "doc-1_chunk_1", "101")

        # Act
        total_chunks, total_embeddings = await document_chunk_crud.count_chunks_and_embeddings(test_async_db)

        # Assert
        assert (total_chunks, total_embeddings) == (3, 1)
        assert total_embeddings <= total_chunks

    @pytest.mark.asyncio
    async def test_count_chunks_and_embeddings_should_be_zero_for_empty_store(self, test_async_db) -> None:
        assert await document_chunk_crud.count_chunks_and_embeddings(test_async_db) == (0, 0)

    @pytest.mark.asyncio
    async def test_set_point_reference_should_return_false_for_unknown_chunk(self, test_async_db) -> None:
        assert await document_chunk_crud.set_point_reference(test_async_db, "missing", "1") is False


class TestCrackedDocumentCounters:
    """Test per-document progress counters."""

    @pytest.mark.asyncio
    async def test_get_content_should_return_none_for_unknown_document(self, test_async_db) -> None:
        assert await cracked_document_crud.get_content(test_async_db, "nope") is None

    @pytest.mark.asyncio
    async def test_get_content_should_return_raw_text(self, seed_document, test_async_db) -> None:
        await seed_document("doc-1", "Roll for initiative.")

        assert await cracked_document_crud.get_content(test_async_db, "doc-1") == "Roll for initiative."

    @pytest.mark.asyncio
    async def test_set_chunk_count_should_report_missing_document(self, test_async_db) -> None:
        assert await cracked_document_crud.set_chunk_count(test_async_db, "nope", 3) is False

    @pytest.mark.asyncio
    async def test_record_chunk_embedded_should_mark_processed_when_all_chunks_done(
        self, seed_document, test_async_db
    ) -> None:
        # Arrange
        await seed_document("doc-1", "content")
        await cracked_document_crud.set_chunk_count(test_async_db, "doc-1", 2)

        # Act
        await cracked_document_crud.record_chunk_embedded(test_async_db, "doc-1")
        halfway = await cracked_document_crud.count_ready(test_async_db)
        await cracked_document_crud.record_chunk_embedded(test_async_db, "doc-1")

        # Assert
        assert halfway == 0
        assert await cracked_document_crud.count_ready(test_async_db) == 1
        document = await cracked_document_crud.get_by_id(test_async_db, "doc-1")
        assert document.processed_chunk_count == 2
        assert document.is_processed is True

    @pytest.mark.asyncio
    async def test_count_ready_should_ignore_processed_documents_without_chunks(
        self, seed_document, test_async_db
    ) -> None:
        # Arrange
        await seed_document("doc-1", "content", is_processed=True, total_chunks=0)
        await seed_document("doc-2", "content", is_processed=True, total_chunks=4, processed_chunk_count=4)

        # Act
        ready = await cracked_document_crud.count_ready(test_async_db)

        # Assert
        assert ready == 1

    @pytest.mark.asyncio
    async def test_record_chunk_embedded_should_report_missing_document(self, test_async_db) -> None:
        assert await cracked_document_crud.record_chunk_embedded(test_async_db, "nope") is False
