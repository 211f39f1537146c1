"""Database Session Manager — rollback and re-raise without translation.

Tests cover:
    - health_check() True against a reachable SQLite file
    - store errors leave the session as the same exception object
    - lock signals leave the session unchanged as well
    - get_db() refuses to run before init_db()
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from optilock.core.errors import StaleVersionConflict
from optilock.infrastructure import database
from optilock.infrastructure.database import DatabaseSessionManager


@pytest.fixture
async def manager(tmp_path):
    mgr = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'health.db'}")
    yield mgr
    await mgr.dispose()


async def test_health_check(manager):
    assert await manager.health_check() is True


async def test_store_error_is_reraised_unchanged(manager):
    error = OperationalError("UPDATE documents", {}, Exception("database is locked"))
    with pytest.raises(OperationalError) as exc_info:
        async with manager.session():
            raise error
    assert exc_info.value is error


async def test_conflict_is_reraised_unchanged(manager):
    conflict = StaleVersionConflict("Document", 7, 3)
    with pytest.raises(StaleVersionConflict) as exc_info:
        async with manager.session():
            raise conflict
    assert exc_info.value is conflict


async def test_get_db_requires_init(monkeypatch):
    monkeypatch.setattr(database, "db_manager", None)
    with pytest.raises(RuntimeError):
        async for _ in database.get_db():
            pass


async def test_get_db_yields_session_after_init(monkeypatch, tmp_path):
    monkeypatch.setattr(database, "db_manager", None)
    mgr = database.init_db(f"sqlite+aiosqlite:///{tmp_path / 'init.db'}")
    try:
        async for session in database.get_db():
            result = await session.execute(text("SELECT 1"))
            assert result.scalar() == 1
    finally:
        await mgr.dispose()
