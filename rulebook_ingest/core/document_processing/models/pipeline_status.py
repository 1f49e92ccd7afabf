"""
Pipeline status snapshot model.

Dependencies: pydantic
System role: Composite status pushed to subscribers and returned on demand
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

STAGE_CRACKING = "cracking"
STAGE_CHUNKING = "chunking"
STAGE_EMBEDDING = "embedding"
STAGES = (STAGE_CRACKING, STAGE_CHUNKING, STAGE_EMBEDDING)


class PipelineStatusSnapshot(BaseModel):
    """Queue depths per stage merged with store-derived completion counts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cracking_queue_size: int = 0
    chunking_queue_size: int = 0
    embedding_queue_size: int = 0
    ready_count: int = 0
    total_chunks: int = 0
    total_embeddings: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    worker_source: str | None = None
    from_cache: bool = Field(default=False, description="Queue depths came from the last-known-value cache")
    stale_stages: list[str] = Field(default_factory=list)

    def queue_size(self, stage: str) -> int:
        return getattr(self, f"{stage.lower()}_queue_size")
