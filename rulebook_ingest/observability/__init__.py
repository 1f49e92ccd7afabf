"""
Observability module.

Provides logging configuration and structured-logging helpers.
"""

from rulebook_ingest.observability.logger import configure_logging

__all__ = ["configure_logging"]
