"""
Qdrant embedding store.

Manages the single embeddings collection: idempotent creation, point upsert,
paginated enumeration and deletion. Point ids are derived from string chunk
ids by hashing; the hash cannot be reversed, so every point keeps its chunk
id in the payload and deletions filter on that field.

Only store_embedding creates the collection. The other operations treat a
missing collection as empty.

Dependencies: qdrant_client, grpc
System role: Vector index adapter for the embedding stage
"""

import hashlib
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import grpc
from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models as rest
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from rulebook_ingest.configs.vector_store import VectorStoreSettings
from rulebook_ingest.core.document_processing.models.chunk import EmbeddingInfo
from rulebook_ingest.core.exceptions import VectorStoreError, VectorStoreUnavailableError

logger = logging.getLogger(__name__)

CHUNK_ID_FIELD = "chunkId"

_ABSENT_MARKERS = ("not found", "doesn't exist", "does not exist")
_TRANSPORT_MARKERS = ("protocol_error", "http/2")
_EXISTS_MARKERS = ("already exists", "duplicate")


def point_id_for(chunk_id: str) -> int:
    """
    Map a string chunk id to a non-zero unsigned 64-bit point id.

    Uses the first 8 bytes of SHA-256, big endian. Zero is reserved as
    invalid and remapped to 1.

    Args:
        chunk_id: Original string id

    Returns:
        int: Deterministic point id in [1, 2**64 - 1]
    """
    digest = hashlib.sha256(chunk_id.encode("utf-8")).digest()
    value = int.from_bytes(digest[:8], "big")
    return value or 1


def _status_code(exc: Exception) -> int | None:
    if isinstance(exc, UnexpectedResponse):
        return exc.status_code
    return None


def _is_absent(exc: Exception) -> bool:
    """
    Decide whether a collection lookup failure means 'collection absent'.

    Transport and protocol failures are never 'absent', even when the
    message happens to mention a missing resource.
    """
    if isinstance(exc, ResponseHandlingException):
        return False
    if isinstance(exc, grpc.RpcError) and hasattr(exc, "code"):
        return exc.code() == grpc.StatusCode.NOT_FOUND

    status = _status_code(exc)
    if status is not None:
        return status == 404

    message = str(exc).lower()
    if any(marker in message for marker in _TRANSPORT_MARKERS):
        return False
    return any(marker in message for marker in _ABSENT_MARKERS)


def _is_already_exists(exc: Exception) -> bool:
    if isinstance(exc, grpc.RpcError) and hasattr(exc, "code"):
        if exc.code() == grpc.StatusCode.ALREADY_EXISTS:
            return True
    if _status_code(exc) == 409:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _EXISTS_MARKERS)


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, (ResponseHandlingException, grpc.RpcError, ConnectionError, TimeoutError)):
        return True
    status = _status_code(exc)
    if status is not None:
        return status >= 500
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSPORT_MARKERS)


def _wrap_error(exc: Exception, operation: str, collection: str) -> VectorStoreError:
    details = {"collection": collection, "error_type": type(exc).__name__}
    if _is_transient(exc):
        return VectorStoreUnavailableError(
            f"Qdrant unavailable during {operation}: {exc}",
            operation=operation,
            details=details,
        )
    return VectorStoreError(f"Qdrant {operation} failed: {exc}", operation=operation, details=details)


def _parse_index(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class QdrantEmbeddingStore:
    """Single-collection embedding store on the async Qdrant client."""

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection_name: str = "document-embeddings",
        embedding_dimension: int = 768,
        scroll_batch_size: int = 100,
    ) -> None:
        """
        Initialize the store.

        Args:
            client: Async Qdrant client
            collection_name: Name of the embeddings collection
            embedding_dimension: Required vector length
            scroll_batch_size: Page size when enumerating points
        """
        self.client = client
        self.collection_name = collection_name
        self.embedding_dimension = embedding_dimension
        self.scroll_batch_size = scroll_batch_size

    @classmethod
    def from_settings(cls, client: AsyncQdrantClient, settings: VectorStoreSettings) -> "QdrantEmbeddingStore":
        return cls(
            client,
            collection_name=settings.collection_name,
            embedding_dimension=settings.embedding_dimension,
            scroll_batch_size=settings.scroll_batch_size,
        )

    async def _collection_exists(self, operation: str) -> bool:
        """
        Look up the collection.

        Returns:
            bool: False only when the backend positively reports it absent

        Raises:
            VectorStoreUnavailableError: On transport, protocol or ambiguous failures
        """
        try:
            await self.client.get_collection(collection_name=self.collection_name)
            return True
        except Exception as e:
            if _is_absent(e):
                return False
            logger.warning(
                f"{__name__}:{operation} - Qdrant lookup failed, treating as transient: {e}",
                extra={"collection": self.collection_name, "error_type": type(e).__name__},
            )
            raise VectorStoreUnavailableError(
                f"Could not determine whether collection exists: {e}",
                operation=operation,
                details={"collection": self.collection_name, "error_type": type(e).__name__},
            ) from e

    async def ensure_collection_exists(self) -> bool:
        """
        Create the collection if it is absent.

        Returns:
            bool: True when this call created the collection

        Raises:
            VectorStoreUnavailableError: When the backend is unreachable or not ready
        """
        if await self._collection_exists("ensure_collection"):
            logger.debug(f"{__name__}:ensure_collection_exists - Collection {self.collection_name} exists")
            return False

        logger.info(
            f"{__name__}:ensure_collection_exists - Creating collection {self.collection_name}",
            extra={"collection": self.collection_name, "dimension": self.embedding_dimension},
        )
        try:
            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=rest.VectorParams(
                    size=self.embedding_dimension,
                    distance=rest.Distance.COSINE,
                ),
            )
        except Exception as e:
            if _is_already_exists(e):
                logger.debug(f"{__name__}:ensure_collection_exists - Created concurrently by another worker")
                return False
            raise VectorStoreUnavailableError(
                f"Failed to create collection {self.collection_name}: {e}",
                operation="ensure_collection",
                details={"collection": self.collection_name, "error_type": type(e).__name__},
            ) from e

        try:
            await self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name=CHUNK_ID_FIELD,
                field_schema=rest.PayloadSchemaType.KEYWORD,
            )
        except Exception as e:
            logger.warning(
                f"{__name__}:ensure_collection_exists - Payload index on {CHUNK_ID_FIELD} not created: {e}",
                extra={"collection": self.collection_name},
            )
        return True

    async def store_embedding(
        self,
        point_id: str,
        vector: Sequence[float],
        metadata: Mapping[str, Any] | None = None,
    ) -> int:
        """
        Upsert one point, creating the collection first if needed.

        Args:
            point_id: Original string id (the chunk id)
            vector: Embedding vector of the configured dimension
            metadata: Payload fields; values are stored as strings and any
                chunkId entry is replaced by point_id

        Returns:
            int: Numeric point id the vector was stored under

        Raises:
            ValueError: When the vector length does not match the collection
            VectorStoreError: When the upsert fails
        """
        if len(vector) != self.embedding_dimension:
            raise ValueError(
                f"Vector has {len(vector)} dimensions, expected {self.embedding_dimension}"
            )

        await self.ensure_collection_exists()

        payload = {str(key): str(value) for key, value in (metadata or {}).items() if value is not None}
        # chunkId is the delete key; it always holds the id the point is stored under
        payload[CHUNK_ID_FIELD] = point_id
        numeric_id = point_id_for(point_id)

        try:
            await self.client.upsert(
                collection_name=self.collection_name,
                points=[
                    rest.PointStruct(
                        id=numeric_id,
                        vector=[float(v) for v in vector],
                        payload=payload,
                    )
                ],
                wait=True,
            )
        except Exception as e:
            logger.error(
                f"{__name__}:store_embedding - Upsert failed for {point_id}",
                exc_info=True,
                extra={"point_id": point_id, "collection": self.collection_name},
            )
            raise _wrap_error(e, "upsert", self.collection_name) from e

        logger.debug(
            f"{__name__}:store_embedding - Stored point {point_id}",
            extra={"point_id": point_id, "qdrant_point_id": numeric_id},
        )
        return numeric_id

    async def list_embeddings(self) -> list[EmbeddingInfo]:
        """
        Enumerate every point in the collection.

        Returns:
            list[EmbeddingInfo]: Flattened payloads; empty when the collection is absent

        Raises:
            VectorStoreError: When a scroll page fails
        """
        if not await self._collection_exists("scroll"):
            logger.info(f"{__name__}:list_embeddings - Collection {self.collection_name} absent, nothing to list")
            return []

        embeddings: list[EmbeddingInfo] = []
        offset = None
        while True:
            try:
                records, offset = await self.client.scroll(
                    collection_name=self.collection_name,
                    limit=self.scroll_batch_size,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
            except Exception as e:
                raise _wrap_error(e, "scroll", self.collection_name) from e

            for record in records:
                payload = record.payload
                if not isinstance(payload, dict):
                    logger.warning(
                        f"{__name__}:list_embeddings - Skipping point {record.id} without payload",
                        extra={"qdrant_point_id": str(record.id)},
                    )
                    continue
                chunk_id = str(payload.get(CHUNK_ID_FIELD, ""))
                embeddings.append(
                    EmbeddingInfo(
                        point_id=chunk_id,
                        qdrant_point_id=str(record.id),
                        document_id=str(payload.get("documentId", "")),
                        file_name=str(payload.get("fileName", "")),
                        chunk_id=chunk_id,
                        chunk_index=_parse_index(payload.get("chunkIndex")),
                        chunk_text=str(payload.get("chunkText", "")),
                    )
                )

            if offset is None:
                break

        logger.info(
            f"{__name__}:list_embeddings - Retrieved {len(embeddings)} embeddings",
            extra={"collection": self.collection_name, "count": len(embeddings)},
        )
        return embeddings

    async def delete_embedding(self, point_id: str) -> None:
        """
        Delete the point stored under a chunk id.

        Matches the chunkId payload field exactly; the numeric id is not used.

        Args:
            point_id: Original string id the point was stored under

        Raises:
            VectorStoreError: When the delete fails
        """
        if not await self._collection_exists("delete"):
            logger.debug(f"{__name__}:delete_embedding - Collection absent, nothing to delete")
            return

        try:
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=rest.FilterSelector(
                    filter=rest.Filter(
                        must=[
                            rest.FieldCondition(
                                key=CHUNK_ID_FIELD,
                                match=rest.MatchValue(value=point_id),
                            )
                        ]
                    )
                ),
                wait=True,
            )
        except Exception as e:
            raise _wrap_error(e, "delete", self.collection_name) from e

        logger.info(
            f"{__name__}:delete_embedding - Deleted point {point_id}",
            extra={"point_id": point_id, "collection": self.collection_name},
        )

    async def delete_all_embeddings(self) -> int:
        """
        Delete every point in the collection with an unconditional filter.

        Returns:
            int: Number of points present before deletion (0 when absent)

        Raises:
            VectorStoreError: When counting or deleting fails
        """
        if not await self._collection_exists("delete_all"):
            logger.info(f"{__name__}:delete_all_embeddings - Collection absent, nothing to delete")
            return 0

        try:
            result = await self.client.count(collection_name=self.collection_name, exact=True)
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=rest.FilterSelector(filter=rest.Filter()),
                wait=True,
            )
        except Exception as e:
            raise _wrap_error(e, "delete_all", self.collection_name) from e

        logger.info(
            f"{__name__}:delete_all_embeddings - Deleted {result.count} embeddings",
            extra={"collection": self.collection_name, "count": result.count},
        )
        return result.count
