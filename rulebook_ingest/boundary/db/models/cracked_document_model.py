"""
Cracked document ORM model.

Raw text extracted from a source file by the upstream extraction stage,
together with the chunk/embedding progress counters maintained by the
chunking and embedding stages.

Dependencies: sqlalchemy, rulebook_ingest.boundary.db.base
System role: Raw-text source and per-document progress tracking
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rulebook_ingest.boundary.db.base import Base, TimestampMixin, utc_now


class CrackedDocumentModel(Base, TimestampMixin):
    """
    Cracked document ORM model.

    Rows are created once by the extraction collaborator and never deleted
    by the ingestion core. total_chunks is written by the chunking stage;
    processed_chunk_count and is_processed advance as chunks get embedded.

    Attributes:
        id: Document identifier assigned by the extraction stage
        content: Full extracted text
        is_processed: True once every chunk of the current chunk set is embedded
        total_chunks: Chunk count of the latest chunking run
        processed_chunk_count: Chunks embedded since the latest chunking run
        document_kind: Classification tag (e.g. Sourcebook)
        ruleset_id: Ruleset the document belongs to
    """

    __tablename__ = "cracked_documents"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    relative_directory: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    file_name: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cracked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_chunk_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    document_kind: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ruleset_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)

    chunks = relationship(
        "DocumentChunkModel",
        back_populates="document",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return (
            f"<CrackedDocumentModel(id={self.id}, file_name={self.file_name}, "
            f"total_chunks={self.total_chunks}, processed={self.processed_chunk_count})>"
        )
