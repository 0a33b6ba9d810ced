"""Async database engine and session factory for Newsdesk.

Usage:
    from newsdesk.db.session import get_session

    async with get_session() as session:
        result = await session.execute(select(News))

IMPORTANT: Each request/operation must get its own session from the factory.
AsyncSession is NOT safe to share across concurrent coroutines or requests.

Batch jobs (trending recompute, scheduled publication, tag cleanup) are written
against a sync ``Session``.  Route handlers run them with
``await session.run_sync(job, ...)``; the CLI and the Celery worker call them
with a session from ``newsdesk.cli.client.SessionFactory``.
"""

from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from newsdesk.config import settings

# Module-level async engine shared across the process lifetime
engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=10,
    max_overflow=20,
)

# expire_on_commit=False keeps ORM objects readable after commit
AsyncSessionFactory = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncSession:
    """Async context manager that yields a database session.

    The session is closed and its connection returned to the pool when the
    context exits, whether normally or via exception.
    """
    async with AsyncSessionFactory() as session:
        yield session
