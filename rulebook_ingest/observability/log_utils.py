"""
Bounded structured logging for the ingest workers.

Chunk text and Qdrant payload maps can run to kilobytes. Everything routed
through ``extra`` here is flattened to a short string so a single log line
stays readable and never collides with LogRecord's own attributes.

Dependencies: logging (stdlib), pydantic
System role: Logging helper functions
"""

import logging
from typing import Any, Mapping

from pydantic import BaseModel

# LogRecord attributes that may not be overwritten through ``extra``
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def _describe(value: Any) -> str:
    if value is None:
        return "None"
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"{type(value).__name__}({len(value)} bytes)"
    if isinstance(value, BaseModel):
        return f"{type(value).__name__}({len(type(value).model_fields)} fields)"
    if isinstance(value, Mapping):
        return f"dict({len(value)} keys)"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{type(value).__name__}({len(value)} items)"
    return str(value)


def safe_log_value(value: Any, max_length: int = 200) -> str:
    """
    Render a value as a bounded string for a log record.

    Collections and models are summarised by size rather than dumped.

    Args:
        value: Value to render
        max_length: Characters kept before the text is cut

    Returns:
        str: Printable representation, never longer than max_length plus a suffix
    """
    try:
        text = _describe(value)
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... (truncated, {len(text)} total)"


def _as_extra(context: Mapping[str, Any]) -> dict[str, str]:
    return {
        (f"ctx_{key}" if key in _RESERVED_ATTRS else key): safe_log_value(val)
        for key, val in context.items()
    }


def log_with_context(logger: logging.Logger, level: int, message: str, /, **context: Any) -> None:
    """Log message at level with context attached as bounded ``extra`` fields."""
    logger.log(level, message, extra=_as_extra(context))


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    /,
    **context: Any,
) -> None:
    """
    Log an error with exc's traceback, its type and message as extra fields.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception being reported; need not be the one currently handled
        **context: Identifiers such as document_id or chunk_id
    """
    extra = _as_extra(context)
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = safe_log_value(str(exc))
    logger.error(message, exc_info=exc, extra=extra)
