"""
Qdrant connection helpers.

Parses the connection strings handed out by the hosting environment and
builds the async Qdrant client from VectorStoreSettings.

Accepted connection string forms:
  - URL: https://qdrant.example.com:6334?api-key=secret
  - host:port: qdrant:6334
  - segments: Endpoint=http://qdrant:6334;ApiKey=secret (also Host, Port, GrpcPort)

Dependencies: qdrant_client
System role: Vector store connection factory
"""

import logging
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlsplit

from qdrant_client import AsyncQdrantClient

from rulebook_ingest.configs.vector_store import VectorStoreSettings

logger = logging.getLogger(__name__)

_API_KEY_QUERY_NAMES = {"api-key", "apikey", "api_key"}
_API_KEY_SEGMENT_NAMES = {"apikey", "api-key", "api_key"}
_ENDPOINT_SEGMENT_NAMES = {"endpoint", "uri", "grpcuri"}
_HOST_SEGMENT_NAMES = {"host", "hostname"}
_PORT_SEGMENT_NAMES = {"port", "grpcport"}


@dataclass
class QdrantConnectionInfo:
    """Connection fields recovered from a connection string. First value found wins."""

    host: str | None = None
    port: int | None = None
    api_key: str | None = None
    https: bool | None = None


def _parse_port(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"{__name__}:_parse_port - Ignoring non-numeric port '{value}'")
        return None


def _apply(connection_string: str, info: QdrantConnectionInfo) -> None:
    value = connection_string.strip()
    if not value:
        return

    parts = urlsplit(value)
    if parts.scheme and parts.netloc:
        info.host = info.host or parts.hostname
        if info.port is None:
            try:
                info.port = parts.port
            except ValueError:
                logger.warning(f"{__name__}:_apply - Invalid port in URL '{value}'")
        if info.https is None:
            info.https = parts.scheme.lower() == "https"
        if not info.api_key:
            for key, query_value in parse_qsl(parts.query):
                if key.lower() in _API_KEY_QUERY_NAMES:
                    info.api_key = query_value
                    break
        return

    if "=" not in value:
        host, _, port = value.partition(":")
        if host:
            info.host = info.host or host
        if info.port is None:
            info.port = _parse_port(port)
        return

    for segment in value.split(";"):
        key, sep, segment_value = segment.partition("=")
        if not sep:
            continue
        key = key.strip().lower()
        segment_value = segment_value.strip()

        if key in _ENDPOINT_SEGMENT_NAMES:
            _apply(segment_value, info)
        elif key in _HOST_SEGMENT_NAMES:
            info.host = info.host or segment_value
        elif key in _PORT_SEGMENT_NAMES:
            if info.port is None:
                info.port = _parse_port(segment_value)
        elif key in _API_KEY_SEGMENT_NAMES:
            info.api_key = info.api_key or segment_value


def parse_qdrant_connection_string(connection_string: str) -> QdrantConnectionInfo:
    """
    Parse a Qdrant connection string.

    Args:
        connection_string: URL, host:port, or semicolon separated key=value segments

    Returns:
        QdrantConnectionInfo: Parsed fields; missing fields stay None
    """
    info = QdrantConnectionInfo()
    _apply(connection_string or "", info)
    return info


def create_qdrant_client(settings: VectorStoreSettings) -> AsyncQdrantClient:
    """
    Build the async Qdrant client.

    Values from connection_string take precedence over the individual
    host/port/api_key settings.

    Args:
        settings: Vector store settings

    Returns:
        AsyncQdrantClient: Configured client (connections are opened lazily)
    """
    info = parse_qdrant_connection_string(settings.connection_string)

    host = info.host or settings.host
    port = settings.port
    grpc_port = settings.grpc_port
    if info.port is not None:
        if settings.prefer_grpc:
            grpc_port = info.port
        else:
            port = info.port

    https = info.https if info.https is not None else settings.https

    logger.info(
        f"{__name__}:create_qdrant_client - Connecting to Qdrant",
        extra={
            "host": host,
            "port": port,
            "grpc_port": grpc_port,
            "prefer_grpc": settings.prefer_grpc,
            "https": https,
        },
    )

    return AsyncQdrantClient(
        host=host,
        port=port,
        grpc_port=grpc_port,
        prefer_grpc=settings.prefer_grpc,
        https=https,
        api_key=info.api_key or settings.api_key,
        timeout=settings.timeout_seconds,
    )
