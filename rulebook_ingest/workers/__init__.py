"""
Celery workers module.

Chunking and status-aggregation tasks. Each message type travels on the
queue named after it; start one worker per stage, for example:

    celery -A rulebook_ingest.workers worker -Q DocumentReadyForChunkingMessage
    celery -A rulebook_ingest.workers worker -Q PipelineQueueSizeReport --pool=solo

Dependencies: celery, rulebook_ingest.configs
System role: Background task processing
"""

import logging

from celery import Celery

from rulebook_ingest.boundary.messaging.celery_publisher import (
    CHUNK_DOCUMENT_TASK,
    EMBED_CHUNK_TASK,
    REPORT_QUEUE_SIZE_TASK,
)
from rulebook_ingest.configs import get_settings
from rulebook_ingest.core.document_processing.models.messages import (
    CHUNKING_QUEUE,
    EMBEDDING_QUEUE,
    STATUS_REPORT_QUEUE,
)
from rulebook_ingest.observability import configure_logging

settings = get_settings()
celery_config = settings.celery

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)
logger.info(
    f"{__name__}:startup - {settings.service_name} workers loading",
    extra={"environment": settings.environment, "log_level": settings.log_level},
)

celery_app = Celery(
    "rulebook_ingest",
    broker=celery_config.broker_url,
    include=[
        "rulebook_ingest.workers.tasks.document_chunking",
        "rulebook_ingest.workers.tasks.pipeline_status",
    ],
)

celery_app.conf.update(
    task_serializer=celery_config.task_serializer,
    accept_content=celery_config.accept_content,
    timezone=celery_config.timezone,
    task_ignore_result=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_hijack_root_logger=False,
    broker_connection_retry_on_startup=True,
    task_routes={
        CHUNK_DOCUMENT_TASK: {"queue": CHUNKING_QUEUE},
        EMBED_CHUNK_TASK: {"queue": EMBEDDING_QUEUE},
        REPORT_QUEUE_SIZE_TASK: {"queue": STATUS_REPORT_QUEUE},
    },
)


def worker_consumes(app: Celery, queue_name: str) -> bool:
    """True when this worker was started with -Q including queue_name."""
    selected = app.amqp.queues.consume_from
    return bool(selected) and queue_name in selected
