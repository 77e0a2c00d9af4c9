"""Dialect-aware INSERT ... ON CONFLICT — the single atomic write primitive.

Invariants:
    - Only PostgreSQL (asyncpg) and SQLite (aiosqlite) are supported; anything else raises
    - The conflict target is always a full unique constraint (index_elements)

Design Decisions:
    - Both dialects expose the same on_conflict_do_update / on_conflict_do_nothing API,
      so callers build statements once and stay dialect-agnostic
"""

from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def dialect_insert(session: AsyncSession, table: Table):
    """Return an INSERT construct that supports ON CONFLICT for the session's dialect."""
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect](table)
    except KeyError:
        raise NotImplementedError(
            f"ON CONFLICT upserts are not supported on '{dialect}'",
        ) from None
