"""Tests for PipelineStatusReporter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from rulebook_ingest.application.services.pipeline_status_reporter import PipelineStatusReporter
from rulebook_ingest.core.document_processing.models import PipelineQueueSizeReport
from rulebook_ingest.core.exceptions import BrokerUnavailableError, MessagePublishError


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    """Controllable monotonic clock."""
    return FakeClock()


@pytest.fixture
def queue_source():
    """
    Create mock queue depth source.

    Returns:
        MagicMock: get_queue_depth returns 4
    """
    source = MagicMock()
    source.get_queue_depth = AsyncMock(return_value=4)
    return source


@pytest.fixture
def reporter(mock_publisher, queue_source, clock):
    """
    Create reporter with a 10 second throttle.

    Returns:
        PipelineStatusReporter: Reporter for DocumentChunkingWorker
    """
    return PipelineStatusReporter(
        publisher=mock_publisher,
        queue_source=queue_source,
        worker_name="DocumentChunkingWorker",
        min_interval_seconds=10,
        clock=clock,
    )


class TestReportQueueSize:
    """Test single reports."""

    @pytest.mark.asyncio
    async def test_report_queue_size_should_publish_report_with_worker_name(self, reporter, mock_publisher) -> None:
        # Act
        sent = await reporter.report_queue_size("chunking", 6)

        # Assert
        assert sent is True
        report = mock_publisher.publish.await_args.args[0]
        assert isinstance(report, PipelineQueueSizeReport)
        assert (report.stage, report.queue_size, report.worker_source) == ("chunking", 6, "DocumentChunkingWorker")

    @pytest.mark.asyncio
    async def test_report_queue_size_should_swallow_publish_failures(self, reporter, mock_publisher) -> None:
        # Arrange
        mock_publisher.publish.side_effect = MessagePublishError("broker down", queue="PipelineQueueSizeReport")

        # Act
        sent = await reporter.report_queue_size("chunking", 6)

        # Assert
        assert sent is False

    @pytest.mark.asyncio
    async def test_report_queue_size_should_clamp_negative_sizes(self, reporter, mock_publisher) -> None:
        await reporter.report_queue_size("embedding", -3)

        assert mock_publisher.publish.await_args.args[0].queue_size == 0


class TestReportOwnQueue:
    """Test throttled self-reporting."""

    @pytest.mark.asyncio
    async def test_report_own_queue_should_report_current_depth(self, reporter, queue_source, mock_publisher) -> None:
        # Act
        sent = await reporter.report_own_queue("chunking", "DocumentReadyForChunkingMessage")

        # Assert
        assert sent is True
        queue_source.get_queue_depth.assert_awaited_once_with("DocumentReadyForChunkingMessage")
        assert mock_publisher.publish.await_args.args[0].queue_size == 4

    @pytest.mark.asyncio
    async def test_report_own_queue_should_throttle_within_interval(self, reporter, clock, mock_publisher) -> None:
        # Arrange
        await reporter.report_own_queue("chunking", "DocumentReadyForChunkingMessage")
        clock.now += 5

        # Act
        throttled = await reporter.report_own_queue("chunking", "DocumentReadyForChunkingMessage")
        clock.now += 6
        resumed = await reporter.report_own_queue("chunking", "DocumentReadyForChunkingMessage")

        # Assert
        assert throttled is False
        assert resumed is True
        assert mock_publisher.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_report_own_queue_should_throttle_each_stage_separately(self, reporter, mock_publisher) -> None:
        await reporter.report_own_queue("chunking", "DocumentReadyForChunkingMessage")
        await reporter.report_own_queue("embedding", "ChunkReadyForEmbeddingMessage")

        assert mock_publisher.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_report_own_queue_should_not_raise_when_broker_unreachable(
        self, reporter, queue_source, mock_publisher
    ) -> None:
        # Arrange
        queue_source.get_queue_depth.side_effect = BrokerUnavailableError("connection refused")

        # Act
        sent = await reporter.report_own_queue("chunking", "DocumentReadyForChunkingMessage")

        # Assert
        assert sent is False
        mock_publisher.publish.assert_not_awaited()
