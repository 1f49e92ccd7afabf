"""
Message contracts for the ingestion pipeline.

Every message type travels on a broker queue named after the type itself.
Bodies are serialised with camelCase aliases so producers and consumers in
other processes agree on field names.

Dependencies: pydantic
System role: Data validation and contract definition between pipeline stages
"""

from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CRACKING_QUEUE = "CrackDocumentMessage"
CHUNKING_QUEUE = "DocumentReadyForChunkingMessage"
EMBEDDING_QUEUE = "ChunkReadyForEmbeddingMessage"
STATUS_REPORT_QUEUE = "PipelineQueueSizeReport"


class PipelineMessage(BaseModel):
    """Base for broker messages with camelCase wire names."""

    QUEUE_NAME: ClassVar[str]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dict keyed by wire names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]):
        return cls.model_validate(payload)


class DocumentReadyForChunkingMessage(PipelineMessage):
    """Raised by the extraction stage once a document's text is stored."""

    QUEUE_NAME: ClassVar[str] = CHUNKING_QUEUE

    document_id: str = Field(default="", description="Cracked document identifier")
    file_path: str = ""
    relative_directory: str = ""
    file_name: str = ""
    file_size: int = 0
    page_count: int = 0
    cracked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    document_kind: str | None = Field(default=None, description="Classification tag (e.g. Sourcebook)")
    ruleset_id: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "documentId": "doc-1",
                "filePath": "/library/core/players-handbook.pdf",
                "relativeDirectory": "core",
                "fileName": "players-handbook.pdf",
                "fileSize": 1024000,
                "pageCount": 320,
                "crackedAt": "2025-01-01T12:00:00Z",
                "documentKind": "Sourcebook",
                "rulesetId": "dnd5e",
            }
        }
    )


class ChunkReadyForEmbeddingMessage(PipelineMessage):
    """One chunk awaiting embedding, with denormalised document metadata."""

    QUEUE_NAME: ClassVar[str] = EMBEDDING_QUEUE

    chunk_id: str
    chunk_text: str
    chunk_index: int
    document_id: str
    file_name: str = ""
    file_path: str = ""
    relative_directory: str = ""
    file_size: int = 0
    page_count: int = 0
    page_number: int | None = Field(default=None, description="First page marker found in the chunk")
    cracked_at: datetime
    total_chunks: int
    document_kind: str | None = None
    ruleset_id: str | None = None


class PipelineQueueSizeReport(PipelineMessage):
    """Queue depth self-reported by a worker to the status aggregator."""

    QUEUE_NAME: ClassVar[str] = STATUS_REPORT_QUEUE

    stage: str
    queue_size: int = Field(ge=0)
    worker_source: str | None = None
