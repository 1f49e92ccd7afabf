"""
Worker-side pipeline status reporter.

Workers report the depth of the queue they consume to the status aggregator
through the broker. Reporting is a monitoring side channel: failures are
logged at debug level and never interrupt message processing.

Dependencies: rulebook_ingest.boundary.messaging
System role: Queue-size reporting from pipeline workers
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

from rulebook_ingest.core.document_processing.models.messages import (
    PipelineMessage,
    PipelineQueueSizeReport,
)

logger = logging.getLogger(__name__)


class MessagePublisher(Protocol):
    async def publish(self, message: PipelineMessage) -> None: ...


class QueueDepthSource(Protocol):
    async def get_queue_depth(self, queue_name: str) -> int: ...


class PipelineStatusReporter:
    """Send queue-size reports for one worker."""

    def __init__(
        self,
        publisher: MessagePublisher,
        queue_source: QueueDepthSource,
        worker_name: str,
        min_interval_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize reporter.

        Args:
            publisher: Outbound message publisher
            queue_source: Reads the depth of the worker's own queue
            worker_name: Identity attached to every report
            min_interval_seconds: Minimum spacing between throttled reports
            clock: Monotonic clock
        """
        self.publisher = publisher
        self.queue_source = queue_source
        self.worker_name = worker_name
        self.min_interval_seconds = min_interval_seconds
        self.clock = clock
        self._last_report: dict[str, float] = {}

    async def report_queue_size(self, stage: str, queue_size: int) -> bool:
        """
        Send one queue-size report.

        Returns:
            bool: True when the report was handed to the broker
        """
        report = PipelineQueueSizeReport(
            stage=stage,
            queue_size=max(queue_size, 0),
            worker_source=self.worker_name,
        )
        try:
            await self.publisher.publish(report)
        except Exception as e:
            logger.debug(
                f"{__name__}:report_queue_size - Report for {stage} not sent: {e}",
                extra={"stage": stage, "worker_source": self.worker_name},
            )
            return False
        return True

    async def report_own_queue(self, stage: str, queue_name: str) -> bool:
        """
        Read and report the depth of the worker's own queue, at most once per interval.

        Args:
            stage: Stage the queue belongs to
            queue_name: Broker queue consumed by this worker

        Returns:
            bool: True when a report was sent
        """
        now = self.clock()
        last = self._last_report.get(stage)
        if last is not None and now - last < self.min_interval_seconds:
            return False
        self._last_report[stage] = now

        try:
            depth = await self.queue_source.get_queue_depth(queue_name)
        except Exception as e:
            logger.debug(
                f"{__name__}:report_own_queue - Could not read {queue_name} depth: {e}",
                extra={"queue": queue_name, "worker_source": self.worker_name},
            )
            return False
        return await self.report_queue_size(stage, depth)
