"""Async Session Factory — provides async DB sessions outside the FastAPI request cycle.

Invariants:
    - Meant for the reconciliation job, scripts, and test fixtures
    - expire_on_commit=False, same as DatabaseSessionManager

Design Decisions:
    - Separate from infrastructure/database.py: batch jobs need a raw factory without
      the request-scoped error mapping
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker


def create_session_factory(
    database_url: str,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory for the given database URL."""
    engine = create_async_engine(database_url, echo=False)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
