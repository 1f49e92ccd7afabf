"""
Database configuration settings.

Holds the PostgreSQL location of the cracked_documents and document_chunks
tables plus engine pool limits.

Dependencies: pydantic, pydantic_settings, sqlalchemy
System role: Database connection configuration for ORM
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict
from sqlalchemy.engine import URL

from rulebook_ingest.configs.base import ENV_FILE, BaseSettings


class DatabaseSettings(BaseSettings):
    """PostgreSQL settings read from POSTGRES_* variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="POSTGRES_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    db: str = Field(default="documents", description="Database holding the ingest tables")
    sslmode: Literal["disable", "require"] = "disable"

    pool_size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=20, ge=0)
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    echo_sql: bool = False

    @property
    def async_database_url(self) -> str:
        """asyncpg URL; credentials are escaped and asyncpg takes ``ssl`` rather than ``sslmode``."""
        url = URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.db,
            query={"ssl": "require"} if self.sslmode == "require" else {},
        )
        return url.render_as_string(hide_password=False)
