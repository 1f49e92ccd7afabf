"""
Declarative base and column mixins for the ingest tables.

Both tables carry UTC created/updated stamps; only document_chunks uses a
surrogate UUID key, cracked_documents is keyed by the upstream document id.

Dependencies: sqlalchemy
System role: Foundation for all database models
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Registry for cracked_documents and document_chunks."""


class UUIDMixin:
    """Surrogate UUID4 key; native UUID on PostgreSQL, CHAR(32) on SQLite."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    """
    UTC row stamps.

    created_at is written by the insert default only, so chunk upserts that
    update in place keep the first-seen time. updated_at moves on every update.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
