"""
Message broker boundary layer.

Dependencies: celery, kombu
System role: Outbound publishing and queue-depth inspection
"""

from rulebook_ingest.boundary.messaging.celery_publisher import (
    CHUNK_DOCUMENT_TASK,
    EMBED_CHUNK_TASK,
    REPORT_QUEUE_SIZE_TASK,
    TASK_NAMES,
    CeleryMessagePublisher,
)
from rulebook_ingest.boundary.messaging.queue_inspector import BrokerQueueInspector

__all__ = [
    "CHUNK_DOCUMENT_TASK",
    "EMBED_CHUNK_TASK",
    "REPORT_QUEUE_SIZE_TASK",
    "TASK_NAMES",
    "BrokerQueueInspector",
    "CeleryMessagePublisher",
]
