"""
Chunking result model.

Represents the outcome of running one document through the chunking stage.

Dependencies: pydantic
System role: Return type for DocumentChunkingService.process_document()
"""

from pydantic import BaseModel, Field


class ChunkingResult(BaseModel):
    """Result of chunking a single document."""

    document_id: str = Field(description="Document identifier")
    chunk_count: int = Field(default=0, description="Number of chunks persisted")
    published_count: int = Field(default=0, description="Chunk-ready events published")
    failed_count: int = Field(default=0, description="Chunk-ready events that failed to publish")
    skipped_reason: str | None = Field(
        default=None,
        description="Why the document was skipped without error (empty content, no chunks)",
    )
    processing_time_ms: float = Field(default=0.0, description="Total processing time in milliseconds")

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None
