"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from rulebook_ingest.configs.base import BaseSettings
from rulebook_ingest.configs.celery_config import CelerySettings
from rulebook_ingest.configs.chunking import ChunkingSettings
from rulebook_ingest.configs.database import DatabaseSettings
from rulebook_ingest.configs.pipeline_status import PipelineStatusSettings
from rulebook_ingest.configs.vector_store import VectorStoreSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    database: DatabaseSettings = DatabaseSettings()
    celery: CelerySettings = CelerySettings()
    vector_store: VectorStoreSettings = VectorStoreSettings()
    chunking: ChunkingSettings = ChunkingSettings()
    pipeline_status: PipelineStatusSettings = PipelineStatusSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables are loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from rulebook_ingest.configs import get_settings
        settings = get_settings()
    """
    return Settings()
