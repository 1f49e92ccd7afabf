"""
Root logging setup for the Celery worker processes.

Celery's own root-logger hijack is disabled in the app config, so this is
the single place handlers are installed. Calling it again replaces them.

Dependencies: logging (stdlib)
System role: Centralized logging configuration
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(processName)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Broker heartbeats, HTTP transport and Qdrant client chatter
_NOISY_LOGGERS = ("amqp", "kombu", "celery.bootsteps", "httpx", "httpcore", "qdrant_client")


def configure_logging(level: str = "INFO") -> None:
    """
    Install a stdout handler on the root logger.

    Args:
        level: Root level name; unknown names fall back to INFO
    """
    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    resolved = logging.getLevelName(level.upper())
    root_logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
