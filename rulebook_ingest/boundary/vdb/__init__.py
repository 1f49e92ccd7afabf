"""
Vector database boundary layer.

Provides the Qdrant embedding store and its connection helpers.

Dependencies: qdrant_client
System role: Vector store adapter for the embedding index
"""

from rulebook_ingest.boundary.vdb.qdrant_connection import (
    QdrantConnectionInfo,
    create_qdrant_client,
    parse_qdrant_connection_string,
)
from rulebook_ingest.boundary.vdb.qdrant_embedding_store import (
    CHUNK_ID_FIELD,
    QdrantEmbeddingStore,
    point_id_for,
)

__all__ = [
    "CHUNK_ID_FIELD",
    "QdrantConnectionInfo",
    "QdrantEmbeddingStore",
    "create_qdrant_client",
    "parse_qdrant_connection_string",
    "point_id_for",
]
