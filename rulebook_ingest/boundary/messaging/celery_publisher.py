"""
Celery message publisher.

Hands pipeline messages to the broker as Celery tasks routed to the queue
named after the message type. Consumers in other processes register tasks
under the names in TASK_NAMES.

Dependencies: celery, kombu
System role: Outbound message adapter for the chunking and status stages
"""

import asyncio
import logging

from celery import Celery

from rulebook_ingest.core.document_processing.models.messages import (
    CHUNKING_QUEUE,
    EMBEDDING_QUEUE,
    STATUS_REPORT_QUEUE,
    PipelineMessage,
)
from rulebook_ingest.core.exceptions import MessagePublishError

logger = logging.getLogger(__name__)

CHUNK_DOCUMENT_TASK = "rulebook_ingest.chunk_document"
EMBED_CHUNK_TASK = "rulebook_ingest.embed_chunk"
REPORT_QUEUE_SIZE_TASK = "rulebook_ingest.report_queue_size"

TASK_NAMES = {
    CHUNKING_QUEUE: CHUNK_DOCUMENT_TASK,
    EMBEDDING_QUEUE: EMBED_CHUNK_TASK,
    STATUS_REPORT_QUEUE: REPORT_QUEUE_SIZE_TASK,
}


class CeleryMessagePublisher:
    """Publish pipeline messages through a Celery app."""

    def __init__(self, app: Celery) -> None:
        """
        Initialize publisher.

        Args:
            app: Celery application bound to the broker
        """
        self.app = app

    def publish_sync(self, message: PipelineMessage) -> None:
        """
        Publish a message from synchronous code.

        Args:
            message: Message to send; its type decides queue and task name

        Raises:
            MessagePublishError: When the broker rejects or cannot accept the message
        """
        queue = message.QUEUE_NAME
        task_name = TASK_NAMES.get(queue)
        if task_name is None:
            raise MessagePublishError(f"No task registered for {type(message).__name__}", queue=queue)

        try:
            self.app.send_task(task_name, args=[message.to_payload()], queue=queue)
        except Exception as e:
            raise MessagePublishError(
                f"Failed to publish {type(message).__name__}: {e}",
                queue=queue,
                details={"error_type": type(e).__name__},
            ) from e

        logger.debug(
            f"{__name__}:publish - Sent {type(message).__name__}",
            extra={"queue": queue, "task_name": task_name},
        )

    async def publish(self, message: PipelineMessage) -> None:
        """
        Publish a message without blocking the event loop.

        Args:
            message: Message to send

        Raises:
            MessagePublishError: When the broker rejects or cannot accept the message
        """
        await asyncio.to_thread(self.publish_sync, message)
