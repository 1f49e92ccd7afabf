"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(): Async connection management
  - CrackedDocumentModel, DocumentChunkModel: Ingestion entities
  - cracked_document_crud, document_chunk_crud: CRUD operation singletons

Dependencies: sqlalchemy, rulebook_ingest.configs
System role: Database adapter for raw document text, chunks and progress counters
"""

from rulebook_ingest.boundary.db.base import Base, TimestampMixin, UUIDMixin
from rulebook_ingest.boundary.db.connection import (
    get_async_engine,
    get_async_session_factory,
)
from rulebook_ingest.boundary.db.models import CrackedDocumentModel, DocumentChunkModel
from rulebook_ingest.boundary.db.CRUD import (
    BaseCRUD,
    CrackedDocumentCRUD,
    DocumentChunkCRUD,
    cracked_document_crud,
    document_chunk_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "CrackedDocumentModel",
    "DocumentChunkModel",
    # CRUD classes
    "BaseCRUD",
    "CrackedDocumentCRUD",
    "DocumentChunkCRUD",
    # CRUD singletons
    "cracked_document_crud",
    "document_chunk_crud",
]
