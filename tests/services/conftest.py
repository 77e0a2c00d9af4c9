"""Service test fixtures — async DB, seeded hierarchy, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db and get_session_factory overridden to use the test engine
    - `seeded` holds one league (2 weeks x 2 sections x 2 resources) with a badge,
      an enrolled learner, and an active user who is not enrolled

Design Decisions:
    - SQLite in-memory: fast, no external dependency; the upsert helper emits the
      SQLite flavour of INSERT ... ON CONFLICT so the same SQL paths run here
    - Race tests use a file-backed database instead (see file_session_factory) so two
      sessions really hold two connections
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from progress_engine.db.base import Base
import progress_engine.models  # noqa: F401
from progress_engine.infrastructure.database import (
    DatabaseSessionManager, get_db, get_session_factory,
)
import progress_engine.infrastructure.database as db_module
from progress_engine.main import app
from tests.services.seed import seed_hierarchy


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def seeded(test_session_factory):
    async with test_session_factory() as session:
        return await seed_hierarchy(session)


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: test_session_factory

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
