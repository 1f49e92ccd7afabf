"""
Pipeline status aggregator.

Builds the composite pipeline status: per-stage queue depths read from the
broker (falling back to worker-reported values when the broker cannot be
reached) merged with completion counts from the chunk store. Snapshots are
pushed to subscribers whenever a worker reports a queue size and on a fixed
interval.

Dependencies: sqlalchemy, rulebook_ingest.boundary, rulebook_ingest.application
System role: Pipeline health monitoring
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.ext.asyncio import async_sessionmaker

from rulebook_ingest.application.services.status_broadcaster import PipelineStatusBroadcaster
from rulebook_ingest.boundary.db.CRUD.cracked_document_crud import (
    CrackedDocumentCRUD,
    cracked_document_crud,
)
from rulebook_ingest.boundary.db.CRUD.document_chunk_crud import (
    DocumentChunkCRUD,
    document_chunk_crud,
)
from rulebook_ingest.core.document_processing.models.messages import (
    CHUNKING_QUEUE,
    CRACKING_QUEUE,
    EMBEDDING_QUEUE,
)
from rulebook_ingest.core.document_processing.models.pipeline_status import (
    STAGE_CHUNKING,
    STAGE_CRACKING,
    STAGE_EMBEDDING,
    STAGES,
    PipelineStatusSnapshot,
)
from rulebook_ingest.core.exceptions import BrokerUnavailableError

logger = logging.getLogger(__name__)

STAGE_QUEUES = {
    STAGE_CRACKING: CRACKING_QUEUE,
    STAGE_CHUNKING: CHUNKING_QUEUE,
    STAGE_EMBEDDING: EMBEDDING_QUEUE,
}


class QueueDepthSource(Protocol):
    async def get_queue_depths(self, queue_names: list[str]) -> dict[str, int]: ...


class QueueSizeCache:
    """
    Last-known queue size per stage with the time it was recorded.

    Keys are stage names, compared case-insensitively. Each (size, timestamp)
    pair is replaced atomically; there is no cross-key consistency.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[int, datetime]] = {}

    def set(self, stage: str, size: int, at: datetime | None = None) -> None:
        entry = (size, at or datetime.now(timezone.utc))
        with self._lock:
            self._entries[stage.lower()] = entry

    def get(self, stage: str) -> tuple[int, datetime | None]:
        with self._lock:
            entry = self._entries.get(stage.lower())
        return entry if entry is not None else (0, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class PipelineStatusService:
    """
    Aggregate and publish pipeline status.

    The live broker is always queried first. When no connection can be
    opened, queue depths come from the cache of worker-reported values and
    stages whose cached value is older than stale_after_seconds (or was
    never reported) are listed in the snapshot's stale_stages.
    """

    def __init__(
        self,
        queue_source: QueueDepthSource,
        session_factory: async_sessionmaker,
        broadcaster: PipelineStatusBroadcaster | None = None,
        cache: QueueSizeCache | None = None,
        stale_after_seconds: float = 60.0,
        document_crud: CrackedDocumentCRUD = cracked_document_crud,
        chunk_crud: DocumentChunkCRUD = document_chunk_crud,
    ) -> None:
        """
        Initialize status service.

        Args:
            queue_source: Broker queue inspector
            session_factory: Async session factory for store counts
            broadcaster: Subscriber fan-out (a private one is created when omitted)
            cache: Worker-reported queue sizes (a private one is created when omitted)
            stale_after_seconds: Age after which a cached value is flagged stale
            document_crud: Cracked document operations
            chunk_crud: Chunk operations
        """
        self.queue_source = queue_source
        self.session_factory = session_factory
        self.broadcaster = broadcaster or PipelineStatusBroadcaster()
        self.cache = cache or QueueSizeCache()
        self.stale_after_seconds = stale_after_seconds
        self.document_crud = document_crud
        self.chunk_crud = chunk_crud

    def _cached_sizes(self) -> tuple[dict[str, int], list[str]]:
        now = datetime.now(timezone.utc)
        sizes = {}
        stale = []
        for stage in STAGES:
            size, updated_at = self.cache.get(stage)
            sizes[stage] = size
            if updated_at is None or (now - updated_at).total_seconds() > self.stale_after_seconds:
                stale.append(stage)
        return sizes, stale

    async def _count_ready(self) -> int:
        try:
            async with self.session_factory() as session:
                return await self.document_crud.count_ready(session)
        except Exception as e:
            logger.warning(f"{__name__}:get_queue_sizes_from_broker - Ready count failed: {e}")
            return 0

    async def _count_chunks_and_embeddings(self) -> tuple[int, int]:
        try:
            async with self.session_factory() as session:
                return await self.chunk_crud.count_chunks_and_embeddings(session)
        except Exception as e:
            logger.warning(f"{__name__}:get_queue_sizes_from_broker - Chunk counts failed: {e}")
            return 0, 0

    async def get_queue_sizes_from_broker(self) -> PipelineStatusSnapshot:
        """
        Build a snapshot from a live broker query and the store counts.

        Returns:
            PipelineStatusSnapshot: Composite status; never raises
        """
        from_cache = False
        stale_stages: list[str] = []
        try:
            depths = await self.queue_source.get_queue_depths(list(STAGE_QUEUES.values()))
            sizes = {stage: depths.get(queue, 0) for stage, queue in STAGE_QUEUES.items()}
        except BrokerUnavailableError as e:
            logger.warning(
                f"{__name__}:get_queue_sizes_from_broker - Broker unreachable, using cached values: {e}"
            )
            sizes, stale_stages = self._cached_sizes()
            from_cache = True

        ready_count = await self._count_ready()
        total_chunks, total_embeddings = await self._count_chunks_and_embeddings()

        return PipelineStatusSnapshot(
            cracking_queue_size=sizes[STAGE_CRACKING],
            chunking_queue_size=sizes[STAGE_CHUNKING],
            embedding_queue_size=sizes[STAGE_EMBEDDING],
            ready_count=ready_count,
            total_chunks=total_chunks,
            total_embeddings=total_embeddings,
            from_cache=from_cache,
            stale_stages=stale_stages,
        )

    async def get_current_status(self) -> PipelineStatusSnapshot:
        """Return a fresh snapshot; always attempts the live broker first."""
        return await self.get_queue_sizes_from_broker()

    async def update_queue_size(
        self,
        stage: str,
        size: int,
        worker_source: str | None = None,
    ) -> PipelineStatusSnapshot:
        """
        Record a worker-reported queue size and broadcast a fresh snapshot.

        Args:
            stage: Stage name (cracking, chunking, embedding; any case)
            size: Reported queue depth
            worker_source: Identity of the reporting worker

        Returns:
            PipelineStatusSnapshot: The broadcast snapshot, annotated with worker_source
        """
        if stage.lower() not in STAGES:
            logger.warning(
                f"{__name__}:update_queue_size - Unknown stage '{stage}'",
                extra={"stage": stage, "worker_source": worker_source},
            )
        self.cache.set(stage, size)

        logger.debug(
            f"{__name__}:update_queue_size - {stage} queue size is {size}",
            extra={"stage": stage, "queue_size": size, "worker_source": worker_source or "unknown"},
        )

        snapshot = await self.get_current_status()
        snapshot = snapshot.model_copy(update={"worker_source": worker_source})
        await self.broadcaster.broadcast(snapshot)
        return snapshot

    async def run_periodic_broadcast(
        self,
        interval_seconds: float,
        stop_event: asyncio.Event,
    ) -> int:
        """
        Broadcast a fresh snapshot every interval until stop_event is set.

        Args:
            interval_seconds: Delay between broadcasts
            stop_event: Ends the loop when set

        Returns:
            int: Number of snapshots broadcast
        """
        sent = 0
        while not stop_event.is_set():
            snapshot = await self.get_current_status()
            await self.broadcaster.broadcast(snapshot)
            sent += 1
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue
        return sent
