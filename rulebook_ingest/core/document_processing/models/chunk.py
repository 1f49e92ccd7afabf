"""
Chunk domain models for the chunking stage.

TextChunk is the strategy output; EmbeddingInfo is the flattened read model
rebuilt from vector index payloads.

Dependencies: pydantic
System role: Data structures shared by chunking and vector index layers
"""

from pydantic import BaseModel, Field


def make_chunk_id(document_id: str, ordinal: int) -> str:
    """Build the deterministic chunk identifier for a document ordinal."""
    return f"{document_id}_chunk_{ordinal}"


class TextChunk(BaseModel):
    """Text-only chunk produced by the chunking strategy."""

    id: str = Field(description="Deterministic chunk identifier ({documentId}_chunk_{n})")
    text: str = Field(description="Chunk text content")
    index: int = Field(ge=0, description="Zero-based ordinal after filtering")
    source_document_id: str = Field(description="Owning document identifier")


class EmbeddingInfo(BaseModel):
    """Read model for one stored vector index point."""

    point_id: str = Field(description="Original string chunk id the point was stored under")
    qdrant_point_id: str = Field(description="Numeric point id as a string")
    document_id: str = ""
    file_name: str = ""
    chunk_id: str = ""
    chunk_index: int = 0
    chunk_text: str = ""
