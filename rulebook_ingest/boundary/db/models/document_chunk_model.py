"""
Document chunk ORM model.

Chunk rows are keyed by the deterministic chunk id, so re-chunking a
document overwrites rows instead of duplicating them.

Dependencies: sqlalchemy, rulebook_ingest.boundary.db.base
System role: Chunk persistence for the chunking and embedding stages
"""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rulebook_ingest.boundary.db.base import Base, TimestampMixin, UUIDMixin


class DocumentChunkModel(Base, UUIDMixin, TimestampMixin):
    """
    Document chunk ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        chunk_id: Deterministic chunk identifier, unique across all documents
        document_id: Owning cracked document (indexed)
        chunk_text: Chunk content
        chunk_index: Zero-based ordinal within the document
        qdrant_point_id: Vector index point reference, set by the embedding stage
        created_at: First insert time; not rewritten by upserts
    """

    __tablename__ = "document_chunks"

    chunk_id: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        unique=True,
        index=True,
    )
    document_id: Mapped[str] = mapped_column(
        ForeignKey("cracked_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_text: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    qdrant_point_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        default=None,
    )

    document = relationship("CrackedDocumentModel", back_populates="chunks")

    def __repr__(self) -> str:
        return f"<DocumentChunkModel(chunk_id={self.chunk_id}, index={self.chunk_index})>"
