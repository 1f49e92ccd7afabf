"""
Document chunking Celery task.

Async task: chunk_document(payload)
Flow: validate -> fetch -> chunk -> persist -> fan-out -> report queue depth

Fatal document errors are retried with exponential backoff; after the last
retry the message is acknowledged and dropped. Messages without a document
id are dropped immediately.

Dependencies: celery, pydantic, tenacity, rulebook_ingest.core, rulebook_ingest.boundary
System role: Chunking stage consumer
"""

import asyncio
import logging
from functools import lru_cache

from celery.signals import worker_ready
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from rulebook_ingest.application.services.pipeline_status_reporter import PipelineStatusReporter
from rulebook_ingest.boundary.db.connection import get_async_engine, get_async_session_factory
from rulebook_ingest.boundary.messaging.celery_publisher import (
    CHUNK_DOCUMENT_TASK,
    CeleryMessagePublisher,
)
from rulebook_ingest.boundary.messaging.queue_inspector import BrokerQueueInspector
from rulebook_ingest.boundary.vdb.qdrant_connection import create_qdrant_client
from rulebook_ingest.boundary.vdb.qdrant_embedding_store import QdrantEmbeddingStore
from rulebook_ingest.core.document_processing.chunking_service import DocumentChunkingService
from rulebook_ingest.core.document_processing.models import (
    CHUNKING_QUEUE,
    STAGE_CHUNKING,
    ChunkingResult,
    DocumentReadyForChunkingMessage,
)
from rulebook_ingest.core.document_processing.tasks.chunking_task import ChunkingTask
from rulebook_ingest.core.exceptions import DocumentProcessingError, VectorStoreUnavailableError
from rulebook_ingest.workers import celery_app, celery_config, settings, worker_consumes

logger = logging.getLogger(__name__)

ENSURE_COLLECTION_ATTEMPTS = 5


@lru_cache
def get_status_reporter() -> PipelineStatusReporter:
    """Process-wide reporter so report throttling survives across tasks."""
    return PipelineStatusReporter(
        publisher=CeleryMessagePublisher(celery_app),
        queue_source=BrokerQueueInspector.for_broker_url(
            celery_config.broker_url,
            connect_timeout_seconds=celery_config.connect_timeout_seconds,
            query_timeout_seconds=celery_config.queue_query_timeout_seconds,
        ),
        worker_name=settings.pipeline_status.worker_name,
        min_interval_seconds=settings.pipeline_status.broadcast_interval_seconds,
    )


def parse_chunking_message(payload: dict) -> DocumentReadyForChunkingMessage | None:
    """
    Validate an incoming chunking message.

    Args:
        payload: Message body keyed by wire names

    Returns:
        DocumentReadyForChunkingMessage | None: None when the message cannot be processed
    """
    try:
        message = DocumentReadyForChunkingMessage.from_payload(payload)
    except ValidationError as e:
        logger.error(
            f"{__name__}:chunk_document - Invalid message, dropping: {e.error_count()} errors",
            extra={"errors": str(e.errors(include_url=False))},
        )
        return None

    if not message.document_id.strip():
        logger.error(f"{__name__}:chunk_document - Message has no document id, dropping")
        return None
    return message


async def run_chunking(message: DocumentReadyForChunkingMessage) -> ChunkingResult:
    """
    Process one message with a per-call database engine.

    Args:
        message: Validated chunking message

    Returns:
        ChunkingResult: Outcome of the run
    """
    engine = get_async_engine()
    try:
        service = DocumentChunkingService(
            session_factory=get_async_session_factory(engine),
            chunking_task=ChunkingTask.from_settings(settings.chunking),
            publisher=CeleryMessagePublisher(celery_app),
        )
        return await service.process_document(message)
    finally:
        await engine.dispose()
        await get_status_reporter().report_own_queue(STAGE_CHUNKING, CHUNKING_QUEUE)


@celery_app.task(
    bind=True,
    name=CHUNK_DOCUMENT_TASK,
    max_retries=celery_config.task_max_retries,
    autoretry_for=(DocumentProcessingError,),
    retry_backoff=celery_config.task_retry_backoff,
    retry_backoff_max=celery_config.task_retry_backoff_max,
    acks_late=True,
    task_reject_on_worker_lost=True,
)
def chunk_document(self, payload: dict) -> dict:
    """
    Chunk a cracked document and queue its chunks for embedding.

    Args:
        payload: DocumentReadyForChunkingMessage body (camelCase keys)

    Returns:
        dict: ChunkingResult fields, or a dropped marker for invalid messages
    """
    message = parse_chunking_message(payload)
    if message is None:
        return {"status": "dropped"}

    logger.info(
        f"{__name__}:chunk_document - Received document",
        extra={"document_id": message.document_id, "attempt": self.request.retries + 1},
    )
    result = asyncio.run(run_chunking(message))
    return result.model_dump(mode="json")


@retry(
    retry=retry_if_exception_type(VectorStoreUnavailableError),
    stop=stop_after_attempt(ENSURE_COLLECTION_ATTEMPTS),
    wait=wait_exponential_jitter(initial=1, max=15, jitter=2),
    before_sleep=lambda retry_state: logger.warning(
        f"{__name__}:ensure_collection - Retry {retry_state.attempt_number}/"
        f"{ENSURE_COLLECTION_ATTEMPTS}, Qdrant not ready"
    ),
    reraise=True,
)
async def ensure_collection() -> bool:
    """Create the embeddings collection if it does not exist yet."""
    client = create_qdrant_client(settings.vector_store)
    try:
        store = QdrantEmbeddingStore.from_settings(client, settings.vector_store)
        return await store.ensure_collection_exists()
    finally:
        await client.close()


@worker_ready.connect
def bootstrap_collection(sender=None, **kwargs) -> None:
    """Ensure the embeddings collection on chunking worker startup; failures only warn."""
    if sender is None or not worker_consumes(sender.app, CHUNKING_QUEUE):
        return
    try:
        created = asyncio.run(ensure_collection())
    except Exception as e:
        logger.warning(
            f"{__name__}:bootstrap_collection - Collection check failed, "
            f"embedding writers will create it on first store: {e}"
        )
        return
    logger.info(
        f"{__name__}:bootstrap_collection - Collection "
        f"{'created' if created else 'already present'}",
        extra={"collection": settings.vector_store.collection_name},
    )
