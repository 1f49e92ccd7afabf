"""
Celery configuration settings.

Manages Celery broker configuration for the chunking and status workers.
Includes retry policies and the timeouts used for passive queue-depth queries.

Dependencies: pydantic, pydantic_settings
System role: Message broker configuration for the ingestion pipeline
"""

from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rulebook_ingest.configs.base import ENV_FILE


class CelerySettings(BaseSettings):
    """Celery and RabbitMQ configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="CELERY_",
        case_sensitive=False,
        extra="ignore",
    )

    broker_host: str = Field(default="localhost", description="RabbitMQ host")
    broker_port: int = Field(default=5672, description="RabbitMQ port")
    broker_user: str = Field(default="guest", description="RabbitMQ user")
    broker_password: str = Field(default="guest", description="RabbitMQ password")
    broker_vhost: str = Field(default="/", description="RabbitMQ virtual host")

    task_serializer: str = Field(default="json", description="Task serialization format")
    accept_content: list[str] = Field(
        default=["json"],
        description="Accepted content types",
    )
    timezone: str = Field(default="UTC", description="Celery timezone")

    # Retry policy
    task_max_retries: int = Field(default=3, description="Maximum task retry attempts")
    task_retry_backoff: int = Field(default=60, description="Retry backoff base in seconds")
    task_retry_backoff_max: int = Field(
        default=600,
        description="Maximum retry backoff in seconds",
    )

    # Broker inspection
    connect_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for opening a broker connection",
    )
    queue_query_timeout_seconds: float = Field(
        default=3.0,
        description="Timeout for a single passive queue-depth query",
    )

    @property
    def broker_url(self) -> str:
        """AMQP URL for Celery and kombu; credentials and vhost are percent-encoded."""
        user = quote(self.broker_user, safe="")
        password = quote(self.broker_password, safe="")
        vhost = quote(self.broker_vhost.lstrip("/"), safe="")
        return f"amqp://{user}:{password}@{self.broker_host}:{self.broker_port}/{vhost}"
