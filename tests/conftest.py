"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory async database, session factory, seeded documents, publisher mocks
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest


@pytest.fixture
async def db_engine():
    """
    Create in-memory SQLite async engine with all tables.

    Yields:
        AsyncEngine: Engine shared by every session of the test (lazy imported to avoid settings issues)
    """
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    from rulebook_ingest.boundary.db.base import Base
    import rulebook_ingest.boundary.db.models  # noqa: F401  registers tables

    # Use SQLite in-memory database for tests
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """
    Session factory bound to the in-memory engine.

    Returns:
        async_sessionmaker: Factory configured like the production one
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_async_db(session_factory):
    """
    Create a session on the in-memory database.

    Yields:
        AsyncSession: Test database session with rollback on exit
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def seed_document(session_factory):
    """
    Insert a cracked document row and commit it.

    Returns:
        Callable: async (document_id, content, **fields) -> None
    """
    from rulebook_ingest.boundary.db.models import CrackedDocumentModel

    async def _seed(document_id: str = "doc-1", content: str = "", **fields) -> None:
        async with session_factory() as session:
            session.add(
                CrackedDocumentModel(
                    id=document_id,
                    file_path=fields.pop("file_path", f"/library/{document_id}.pdf"),
                    relative_directory=fields.pop("relative_directory", "core"),
                    file_name=fields.pop("file_name", f"{document_id}.pdf"),
                    content=content,
                    cracked_at=fields.pop("cracked_at", datetime(2025, 1, 1, tzinfo=timezone.utc)),
                    **fields,
                )
            )
            await session.commit()

    return _seed


@pytest.fixture
def mock_publisher():
    """
    Create mock message publisher.

    Returns:
        AsyncMock: Publisher whose publish() records every message
    """
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value=None)
    return publisher
