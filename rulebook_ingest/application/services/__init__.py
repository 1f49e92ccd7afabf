"""Service orchestrators."""

from .pipeline_status_reporter import PipelineStatusReporter
from .pipeline_status_service import PipelineStatusService, QueueSizeCache
from .status_broadcaster import PipelineStatusBroadcaster

__all__ = [
    "PipelineStatusBroadcaster",
    "PipelineStatusReporter",
    "PipelineStatusService",
    "QueueSizeCache",
]
