"""
Event loop host for the status aggregator worker.

The aggregator keeps state across messages (queue-size cache, subscriber
queues, the periodic broadcast), so it runs on one long-lived event loop in
a background thread instead of a fresh loop per task. Celery tasks submit
coroutines to that loop and wait for the result.

Dependencies: asyncio, threading (stdlib), rulebook_ingest.application
System role: Process-level runtime for pipeline status aggregation
"""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from concurrent.futures import Future
from typing import TypeVar

from rulebook_ingest.application.services.pipeline_status_service import PipelineStatusService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StatusRuntime:
    """Own the aggregator's event loop, service instance and background tasks."""

    def __init__(self, service_factory: Callable[[], PipelineStatusService]) -> None:
        """
        Initialize runtime.

        Args:
            service_factory: Builds the service; called once, on the runtime loop
        """
        self.service_factory = service_factory
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._service: PipelineStatusService | None = None
        self._stop_event: asyncio.Event | None = None
        self._background: list[Future] = []

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name="pipeline-status-loop", daemon=True)
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop

    async def _get_service(self) -> PipelineStatusService:
        if self._service is None:
            self._service = self.service_factory()
            self._stop_event = asyncio.Event()
        return self._service

    def run(self, operation: Callable[[PipelineStatusService], Awaitable[T]], timeout: float | None = None) -> T:
        """
        Run an operation against the service on the runtime loop.

        Args:
            operation: Receives the service and returns an awaitable
            timeout: Seconds to wait for the result

        Returns:
            The operation's result
        """
        async def _call() -> T:
            return await operation(await self._get_service())

        loop = self._ensure_loop()
        return asyncio.run_coroutine_threadsafe(_call(), loop).result(timeout)

    async def _log_snapshots(self, service: PipelineStatusService) -> None:
        async for snapshot in service.broadcaster.subscribe():
            logger.info(
                f"{__name__}:status - cracking={snapshot.cracking_queue_size} "
                f"chunking={snapshot.chunking_queue_size} embedding={snapshot.embedding_queue_size} "
                f"ready={snapshot.ready_count} chunks={snapshot.total_chunks} "
                f"embeddings={snapshot.total_embeddings}",
                extra={"from_cache": snapshot.from_cache, "worker_source": snapshot.worker_source},
            )

    def start_periodic_broadcast(self, interval_seconds: float) -> None:
        """Start the interval broadcast and a subscriber that logs every snapshot."""
        async def _start() -> None:
            service = await self._get_service()
            loop = asyncio.get_running_loop()
            loop.create_task(self._log_snapshots(service))
            await service.run_periodic_broadcast(interval_seconds, self._stop_event)

        loop = self._ensure_loop()
        self._background.append(asyncio.run_coroutine_threadsafe(_start(), loop))
        logger.info(
            f"{__name__}:start_periodic_broadcast - Broadcasting every {interval_seconds}s",
            extra={"interval_seconds": interval_seconds},
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop background work, disconnect subscribers and close the loop."""
        loop = self._loop
        if loop is None:
            return

        async def _shutdown() -> None:
            if self._stop_event is not None:
                self._stop_event.set()
            if self._service is not None:
                await self._service.broadcaster.shutdown()

        try:
            asyncio.run_coroutine_threadsafe(_shutdown(), loop).result(timeout)
            for future in self._background:
                future.result(timeout)
        except Exception as e:
            logger.warning(f"{__name__}:stop - Status runtime did not stop cleanly: {e}")
        finally:
            loop.call_soon_threadsafe(loop.stop)
            if self._thread is not None:
                self._thread.join(timeout)
            if self._thread is None or not self._thread.is_alive():
                loop.close()
            self._loop = None
            self._thread = None
            self._background.clear()
