"""
Broker queue inspector.

Reads queue depths with passive declares, which never create a queue that
does not exist yet. One connection is opened per inspection; each queue is
queried on its own channel with its own timeout so a single missing or
stuck queue cannot block the others.

Dependencies: kombu
System role: Broker read side of the pipeline status aggregator
"""

import asyncio
import logging
from collections.abc import Callable, Iterable

from kombu import Connection

from rulebook_ingest.core.exceptions import BrokerUnavailableError

logger = logging.getLogger(__name__)


def _passive_depth(connection: Connection, queue_name: str) -> int:
    channel = connection.channel()
    try:
        declared = channel.queue_declare(queue=queue_name, passive=True)
        return int(declared.message_count)
    finally:
        try:
            channel.close()
        except Exception as e:
            # A failed passive declare already closes the channel on the server side.
            logger.debug(f"{__name__}:_passive_depth - Channel close failed: {e}")


def _release(connection: Connection, abandoned: asyncio.Future | None = None) -> None:
    if abandoned is not None and not abandoned.cancelled():
        # Consume the abandoned query's outcome so it is not reported as unretrieved.
        abandoned.exception()
    try:
        connection.release()
    except Exception as e:
        logger.debug(f"{__name__}:get_queue_depths - Connection release failed: {e}")


class BrokerQueueInspector:
    """Query RabbitMQ queue depths through kombu."""

    def __init__(
        self,
        connection_factory: Callable[[], Connection],
        connect_timeout_seconds: float = 5.0,
        query_timeout_seconds: float = 3.0,
    ) -> None:
        """
        Initialize inspector.

        Args:
            connection_factory: Returns a new, unopened kombu Connection
            connect_timeout_seconds: Bound on opening the connection
            query_timeout_seconds: Bound on each passive queue query
        """
        self.connection_factory = connection_factory
        self.connect_timeout_seconds = connect_timeout_seconds
        self.query_timeout_seconds = query_timeout_seconds

    @classmethod
    def for_broker_url(
        cls,
        broker_url: str,
        connect_timeout_seconds: float = 5.0,
        query_timeout_seconds: float = 3.0,
    ) -> "BrokerQueueInspector":
        return cls(
            lambda: Connection(broker_url, connect_timeout=connect_timeout_seconds),
            connect_timeout_seconds=connect_timeout_seconds,
            query_timeout_seconds=query_timeout_seconds,
        )

    async def _query(self, connection: Connection, queue_name: str) -> tuple[int, asyncio.Future | None]:
        """Return (depth, None), or (0, pending) when the query outlived its timeout."""
        pending = asyncio.ensure_future(asyncio.to_thread(_passive_depth, connection, queue_name))
        try:
            return await asyncio.wait_for(asyncio.shield(pending), timeout=self.query_timeout_seconds), None
        except asyncio.TimeoutError:
            logger.warning(
                f"{__name__}:get_queue_depths - Query for {queue_name} timed out",
                extra={"queue": queue_name, "timeout_seconds": self.query_timeout_seconds},
            )
            return 0, pending
        except Exception as e:
            logger.debug(
                f"{__name__}:get_queue_depths - Queue {queue_name} unavailable, reporting 0: {e}",
                extra={"queue": queue_name, "error_type": type(e).__name__},
            )
        return 0, None

    async def get_queue_depths(self, queue_names: Iterable[str]) -> dict[str, int]:
        """
        Read the depth of each queue.

        py-amqp connections are not thread-safe, so once a query times out its
        thread still owns the connection: the remaining queues report 0 and the
        connection is released only after that thread returns.

        Args:
            queue_names: Queues to inspect

        Returns:
            dict[str, int]: Depth per queue; missing, failed, timed out or skipped queues report 0

        Raises:
            BrokerUnavailableError: When no connection to the broker can be opened
        """
        connection = self.connection_factory()
        stuck: asyncio.Future | None = None
        try:
            connecting = asyncio.ensure_future(asyncio.to_thread(connection.connect))
            try:
                await asyncio.wait_for(asyncio.shield(connecting), timeout=self.connect_timeout_seconds)
            except Exception as e:
                if not connecting.done():
                    stuck = connecting
                raise BrokerUnavailableError(
                    f"Cannot connect to broker: {e}",
                    details={"error_type": type(e).__name__},
                ) from e

            depths = {}
            skipped = []
            for queue_name in queue_names:
                if stuck is not None:
                    depths[queue_name] = 0
                    skipped.append(queue_name)
                    continue
                depths[queue_name], stuck = await self._query(connection, queue_name)
            if skipped:
                logger.warning(
                    f"{__name__}:get_queue_depths - Connection busy after timeout, reporting 0",
                    extra={"queues": skipped},
                )
            return depths
        finally:
            if stuck is None:
                _release(connection)
            else:
                stuck.add_done_callback(lambda done: _release(connection, done))

    async def get_queue_depth(self, queue_name: str) -> int:
        depths = await self.get_queue_depths([queue_name])
        return depths[queue_name]
