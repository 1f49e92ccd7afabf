"""
Async engine and session factory for the ingest database.

asyncpg connections belong to the event loop that opened them. The chunking
task runs each message under its own asyncio.run, so it builds an engine per
message and disposes it; the status worker keeps one for its runtime loop.

Dependencies: sqlalchemy, asyncpg, rulebook_ingest.configs
System role: Database connection lifecycle management
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from rulebook_ingest.configs import get_settings


def get_async_engine() -> AsyncEngine:
    """Build a pooled asyncpg engine from POSTGRES_* settings."""
    db = get_settings().database
    return create_async_engine(
        db.async_database_url,
        echo=db.echo_sql,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_pre_ping=True,
    )


def get_async_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker:
    """
    Session factory with explicit commits and attributes kept after commit.

    Args:
        engine: Engine to bind; one is built from settings when omitted

    Returns:
        async_sessionmaker: Factory whose sessions never autoflush
    """
    return async_sessionmaker(
        bind=engine if engine is not None else get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
    )
