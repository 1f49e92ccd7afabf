"""
Core business logic module.

Contains the chunking stage, its domain models, and the exception hierarchy.
"""

from rulebook_ingest.core.exceptions import (
    BrokerUnavailableError,
    ChunkingError,
    ChunkPersistenceError,
    DocumentFetchError,
    DocumentProcessingError,
    MessagePublishError,
    RulebookIngestException,
    VectorStoreError,
    VectorStoreUnavailableError,
)

__all__ = [
    "RulebookIngestException",
    "DocumentProcessingError",
    "DocumentFetchError",
    "ChunkingError",
    "ChunkPersistenceError",
    "MessagePublishError",
    "BrokerUnavailableError",
    "VectorStoreError",
    "VectorStoreUnavailableError",
]
