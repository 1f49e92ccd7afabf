"""
Pipeline status Celery task.

Async task: report_queue_size(payload)
Flow: validate -> cache reported size -> live snapshot -> broadcast

Run this worker with a single process (--pool=solo) so every report lands
in the same queue-size cache.

Dependencies: celery, pydantic, rulebook_ingest.application
System role: Status aggregator consumer
"""

import logging

from celery.signals import worker_ready, worker_shutdown
from pydantic import ValidationError

from rulebook_ingest.application.services.pipeline_status_service import PipelineStatusService
from rulebook_ingest.application.services.status_broadcaster import PipelineStatusBroadcaster
from rulebook_ingest.boundary.db.connection import get_async_session_factory
from rulebook_ingest.boundary.messaging.celery_publisher import REPORT_QUEUE_SIZE_TASK
from rulebook_ingest.boundary.messaging.queue_inspector import BrokerQueueInspector
from rulebook_ingest.core.document_processing.models.messages import (
    STATUS_REPORT_QUEUE,
    PipelineQueueSizeReport,
)
from rulebook_ingest.workers import celery_app, celery_config, settings, worker_consumes
from rulebook_ingest.workers.status_runtime import StatusRuntime

logger = logging.getLogger(__name__)

STATUS_CALL_TIMEOUT_SECONDS = 60.0


def build_status_service() -> PipelineStatusService:
    """Create the aggregator from settings. Must run on the runtime loop."""
    return PipelineStatusService(
        queue_source=BrokerQueueInspector.for_broker_url(
            celery_config.broker_url,
            connect_timeout_seconds=celery_config.connect_timeout_seconds,
            query_timeout_seconds=celery_config.queue_query_timeout_seconds,
        ),
        session_factory=get_async_session_factory(),
        broadcaster=PipelineStatusBroadcaster(),
        stale_after_seconds=settings.pipeline_status.cache_stale_after_seconds,
    )


status_runtime = StatusRuntime(build_status_service)


@celery_app.task(name=REPORT_QUEUE_SIZE_TASK, acks_late=False)
def report_queue_size(payload: dict) -> dict:
    """
    Apply a worker queue-size report and broadcast the resulting snapshot.

    Args:
        payload: PipelineQueueSizeReport body (camelCase keys)

    Returns:
        dict: Broadcast snapshot (camelCase keys), or a dropped marker
    """
    try:
        report = PipelineQueueSizeReport.from_payload(payload)
    except ValidationError as e:
        logger.error(f"{__name__}:report_queue_size - Invalid report, dropping: {e.error_count()} errors")
        return {"status": "dropped"}

    snapshot = status_runtime.run(
        lambda service: service.update_queue_size(report.stage, report.queue_size, report.worker_source),
        timeout=STATUS_CALL_TIMEOUT_SECONDS,
    )
    return snapshot.model_dump(mode="json", by_alias=True)


@worker_ready.connect
def start_status_broadcast(sender=None, **kwargs) -> None:
    if sender is None or not worker_consumes(sender.app, STATUS_REPORT_QUEUE):
        return
    status_runtime.start_periodic_broadcast(settings.pipeline_status.broadcast_interval_seconds)


@worker_shutdown.connect
def stop_status_runtime(**kwargs) -> None:
    status_runtime.stop()
