"""
Chunking configuration settings.

Separator profile, length budget and noise filtering for the chunking
strategy.

Dependencies: pydantic, pydantic_settings
System role: Chunking strategy configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rulebook_ingest.configs.base import ENV_FILE


class ChunkingSettings(BaseSettings):
    """Settings for splitting raw document text into chunks."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="CHUNKING_",
        case_sensitive=False,
        extra="ignore",
    )

    separator_profile: str = Field(
        default="text",
        description="Separator profile: 'text', 'markdown' or 'html'",
    )
    max_chunk_size: int = Field(
        default=1000,
        description="Maximum chunk size, measured in length_unit",
    )
    length_unit: str = Field(
        default="characters",
        description="How chunk size is measured: 'characters' or 'tokens'",
    )
    chunk_overlap: int = Field(
        default=0,
        description="Overlap between consecutive chunks",
    )
    min_chunk_chars: int = Field(
        default=100,
        description="Chunks shorter than this are dropped as noise",
    )
    strip_html: bool = Field(
        default=False,
        description="Strip HTML tags from chunk text",
    )
