"""
Base configuration settings.

Process-wide settings shared by the chunking and status workers: which
environment file to read, the deployment environment and the root log level.

Dependencies: pydantic, pydantic_settings
System role: Foundation for all configuration classes
"""

import logging
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict

ENV_FILE = os.getenv("RULEBOOK_INGEST_ENV_FILE", ".env")


class BaseSettings(PydanticBaseSettings):
    """Worker process settings; unprefixed environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(
        default="rulebook-ingest",
        description="Name reported in worker logs",
    )
    environment: str = Field(
        default="development",
        description="Deployment environment (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for worker processes",
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level
