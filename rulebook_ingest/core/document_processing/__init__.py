"""
Chunking stage of the ingestion pipeline.

Fetches cracked document text, splits it into chunks, persists them and
fans out one chunk-ready event per chunk for the embedding stage. The
orchestrator lives in chunking_service and is imported from there so the
database layer can depend on the models here without a cycle.

Dependencies: langchain_text_splitters, pydantic
System role: Chunking stage package
"""

from .models import ChunkingResult, TextChunk
from .tasks import ChunkingTask

__all__ = [
    "ChunkingTask",
    "ChunkingResult",
    "TextChunk",
]
