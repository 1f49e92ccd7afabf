"""
Database models package.

Exports:
  - CrackedDocumentModel: Extracted raw text and per-document progress counters
  - DocumentChunkModel: Persisted chunks keyed by deterministic chunk id

Dependencies: sqlalchemy, rulebook_ingest.boundary.db.base
System role: Database model definitions for the ingestion pipeline
"""

from rulebook_ingest.boundary.db.models.cracked_document_model import CrackedDocumentModel
from rulebook_ingest.boundary.db.models.document_chunk_model import DocumentChunkModel

__all__ = [
    "CrackedDocumentModel",
    "DocumentChunkModel",
]
