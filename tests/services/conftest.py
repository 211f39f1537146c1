"""Service test fixtures — file-backed SQLite per test, one session per "process".

Invariants:
    - Every test gets a fresh database file under tmp_path
    - Each session from session_factory is its own connection, standing in for
      an independent process reading and writing the same rows
    - Document id=7 is seeded at version 3 by seed_document

Design Decisions:
    - File database instead of :memory:: aiosqlite shares one connection for
      :memory:, which would let one writer see another's uncommitted UPDATE
"""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from optilock.db.base import Base
from optilock.services.versioned_repository import VersionedRepository
from tests.sample_models import Document, sample_config


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'optilock.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
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
def locking_config():
    return sample_config()


@pytest.fixture
async def seed_document(test_session_factory, locking_config):
    """Document id=7 stored at version 3."""
    async with test_session_factory() as db:
        repo = VersionedRepository(db, Document, locking_config)
        doc = await repo.create(Document(id=7, title="Draft", lock_version=3))
        await db.commit()
    return doc


@pytest.fixture
def stored_row(test_session_factory):
    """Read a row's current columns through a fresh session."""

    async def _read(model, entity_id):
        async with test_session_factory() as db:
            result = await db.execute(
                select(model.__table__).where(model.__table__.c.id == entity_id),
            )
            return result.mappings().one_or_none()

    return _read
