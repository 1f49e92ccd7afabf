"""
Pipeline status configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Status aggregation and reporting configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rulebook_ingest.configs.base import ENV_FILE


class PipelineStatusSettings(BaseSettings):
    """Settings for the pipeline status aggregator and worker reporters."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="PIPELINE_STATUS_",
        case_sensitive=False,
        extra="ignore",
    )

    broadcast_interval_seconds: float = Field(
        default=10.0,
        description="Interval between periodic status broadcasts",
    )
    cache_stale_after_seconds: float = Field(
        default=60.0,
        description="Age after which a cached queue size is flagged as stale",
    )
    worker_name: str = Field(
        default="DocumentChunkingWorker",
        description="Identity attached to queue-size reports from this process",
    )
