"""
Vector store configuration settings.

Manages the Qdrant connection and the single embeddings collection:
vector dimensionality, pagination size and optional connection string.

Dependencies: pydantic, pydantic_settings
System role: Vector database configuration for the embedding index
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rulebook_ingest.configs.base import ENV_FILE


class VectorStoreSettings(BaseSettings):
    """Qdrant vector store configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="QDRANT_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Qdrant host")
    port: int = Field(default=6333, description="Qdrant REST port")
    grpc_port: int = Field(default=6334, description="Qdrant gRPC port")
    prefer_grpc: bool = Field(default=False, description="Use gRPC transport when available")
    https: bool = Field(default=False, description="Use TLS for the Qdrant connection")
    api_key: str | None = Field(default=None, description="Qdrant API key")
    connection_string: str = Field(
        default="",
        description="Optional connection string (URL, host:port or Endpoint=...;ApiKey=...)",
    )
    timeout_seconds: int = Field(default=10, description="Qdrant request timeout in seconds")

    collection_name: str = Field(
        default="document-embeddings",
        description="Name of the single embeddings collection",
    )
    embedding_dimension: int = Field(
        default=768,
        description="Embedding vector dimension (nomic-embed-text produces 768)",
    )
    scroll_batch_size: int = Field(
        default=100,
        description="Page size used when enumerating points",
    )
