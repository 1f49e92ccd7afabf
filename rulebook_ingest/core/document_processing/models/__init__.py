"""
Models for the chunking stage and pipeline status.

Exports: TextChunk, EmbeddingInfo, ChunkingResult, message contracts, PipelineStatusSnapshot
"""

from .chunk import EmbeddingInfo, TextChunk, make_chunk_id
from .chunking_result import ChunkingResult
from .messages import (
    CHUNKING_QUEUE,
    CRACKING_QUEUE,
    EMBEDDING_QUEUE,
    STATUS_REPORT_QUEUE,
    ChunkReadyForEmbeddingMessage,
    DocumentReadyForChunkingMessage,
    PipelineMessage,
    PipelineQueueSizeReport,
)
from .pipeline_status import (
    STAGE_CHUNKING,
    STAGE_CRACKING,
    STAGE_EMBEDDING,
    STAGES,
    PipelineStatusSnapshot,
)

__all__ = [
    "TextChunk",
    "EmbeddingInfo",
    "make_chunk_id",
    "ChunkingResult",
    "CHUNKING_QUEUE",
    "CRACKING_QUEUE",
    "EMBEDDING_QUEUE",
    "STATUS_REPORT_QUEUE",
    "ChunkReadyForEmbeddingMessage",
    "DocumentReadyForChunkingMessage",
    "PipelineMessage",
    "PipelineQueueSizeReport",
    "STAGE_CHUNKING",
    "STAGE_CRACKING",
    "STAGE_EMBEDDING",
    "STAGES",
    "PipelineStatusSnapshot",
]
