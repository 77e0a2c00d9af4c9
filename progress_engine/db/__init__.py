"""Database Package — declarative Base and standalone session factories.

Invariants:
    - Single async engine per process for the API (initialized via init_db)
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL in production, aiosqlite in tests
"""
