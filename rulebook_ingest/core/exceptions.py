"""
Exception hierarchy for the rulebook ingestion pipeline.

Document-level errors are fatal to one message and are retried by Celery;
publish and vector store errors are raised per chunk or per call and left
to the caller to isolate or retry.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


def _with_context(details: dict[str, Any] | None, **context: Any) -> dict[str, Any]:
    merged = dict(details or {})
    merged.update({key: value for key, value in context.items() if value})
    return merged


class RulebookIngestException(Exception):
    """
    Root of every pipeline error.

    Args:
        message: Human-readable error message
        details: Identifiers of the document, chunk, queue or operation involved
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} | Details: {self.details}"


class DocumentProcessingError(RulebookIngestException):
    """A failure that stops one document; the chunking task retries on it."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.document_id = document_id
        super().__init__(message, _with_context(details, document_id=document_id))


class DocumentFetchError(DocumentProcessingError):
    """Raw document text could not be loaded."""


class ChunkingError(DocumentProcessingError):
    """The text splitter failed."""


class ChunkPersistenceError(DocumentProcessingError):
    """Chunk rows could not be written."""


class MessagePublishError(RulebookIngestException):
    """An outbound message could not be handed to the broker."""

    def __init__(
        self,
        message: str,
        queue: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, _with_context(details, queue=queue))


class BrokerUnavailableError(RulebookIngestException):
    """No broker connection could be opened for queue inspection."""


class VectorStoreError(RulebookIngestException):
    """
    A Qdrant call failed.

    The failing operation (ensure_collection, upsert, scroll, count, delete)
    is recorded under details["operation"].
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, _with_context(details, operation=operation))


class VectorStoreUnavailableError(VectorStoreError):
    """
    Qdrant is unreachable or not ready yet; retry later.

    Ambiguous collection lookups are reported this way rather than as a
    missing collection.
    """
