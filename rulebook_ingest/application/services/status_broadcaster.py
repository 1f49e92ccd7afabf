"""
Pipeline status broadcaster.

In-process fan-out of status snapshots. Each subscriber owns a bounded
asyncio.Queue; broadcasting pushes to every queue without awaiting, and a
subscriber whose queue is full is disconnected instead of slowing the rest.

All methods must be called from the event loop that owns the subscribers.

Dependencies: asyncio (stdlib)
System role: Push channel for pipeline status observers
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from rulebook_ingest.core.document_processing.models.pipeline_status import PipelineStatusSnapshot

logger = logging.getLogger(__name__)


class PipelineStatusBroadcaster:
    """Broadcast PipelineStatusSnapshots to in-process subscribers."""

    def __init__(self, max_queue_size: int = 16) -> None:
        self.max_queue_size = max_queue_size
        self._queues: list[asyncio.Queue[PipelineStatusSnapshot | None]] = []

    async def subscribe(self) -> AsyncGenerator[PipelineStatusSnapshot, None]:
        """
        Receive snapshots until the broadcaster shuts down or drops this subscriber.

        Unsubscribes automatically when the consumer stops iterating.

        Yields:
            PipelineStatusSnapshot: Snapshots in broadcast order
        """
        queue: asyncio.Queue[PipelineStatusSnapshot | None] = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues.append(queue)
        try:
            while True:
                snapshot = await queue.get()
                if snapshot is None:
                    break
                yield snapshot
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    @staticmethod
    def _close(queue: asyncio.Queue) -> None:
        # Make room for the end-of-stream marker on a full queue.
        while queue.full():
            queue.get_nowait()
        queue.put_nowait(None)

    async def broadcast(self, snapshot: PipelineStatusSnapshot) -> int:
        """
        Push a snapshot to every subscriber.

        Args:
            snapshot: Snapshot to deliver

        Returns:
            int: Number of subscribers the snapshot was delivered to
        """
        delivered = 0
        dead_queues = []
        for queue in self._queues:
            try:
                queue.put_nowait(snapshot)
                delivered += 1
            except asyncio.QueueFull:
                dead_queues.append(queue)

        for queue in dead_queues:
            logger.warning(f"{__name__}:broadcast - Subscriber queue full, disconnecting")
            self._queues.remove(queue)
            self._close(queue)

        return delivered

    async def shutdown(self) -> None:
        """Disconnect all subscribers."""
        for queue in self._queues:
            self._close(queue)
        self._queues.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)
