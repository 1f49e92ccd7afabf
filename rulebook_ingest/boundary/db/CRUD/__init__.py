"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from rulebook_ingest.boundary.db.CRUD import cracked_document_crud, document_chunk_crud

    content = await cracked_document_crud.get_content(db, document_id)
    await document_chunk_crud.upsert_chunks(db, document_id, chunks)
"""

from rulebook_ingest.boundary.db.CRUD.base_crud import BaseCRUD
from rulebook_ingest.boundary.db.CRUD.cracked_document_crud import (
    CrackedDocumentCRUD,
    cracked_document_crud,
)
from rulebook_ingest.boundary.db.CRUD.document_chunk_crud import (
    DocumentChunkCRUD,
    document_chunk_crud,
)

__all__ = [
    "BaseCRUD",
    "CrackedDocumentCRUD",
    "cracked_document_crud",
    "DocumentChunkCRUD",
    "document_chunk_crud",
]
