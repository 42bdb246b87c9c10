"""Tests for engine and session lifecycle."""

from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy import inspect, select

from app.config import Settings
from app.db import session as db_session
from app.db.models import User


@pytest_asyncio.fixture
async def file_db_settings(tmp_path):
    """Point the engine at a throwaway SQLite file and reset it afterwards."""
    settings = Settings(
        access_token_secret="test-secret-key",
        database_url=f"sqlite:///{tmp_path}/vidtube.db",
    )
    await db_session.dispose_engine()
    with patch("app.db.session.get_settings", return_value=settings):
        yield settings
    await db_session.dispose_engine()


@pytest.mark.asyncio
async def test_plain_sqlite_url_uses_aiosqlite(file_db_settings):
    """Test that a sync SQLite URL is rewritten for the async driver."""
    engine = db_session.get_engine()

    assert engine.url.drivername == "sqlite+aiosqlite"
    assert db_session.get_engine() is engine


@pytest.mark.asyncio
async def test_init_models_creates_tables(file_db_settings):
    """Test that startup creates every table."""
    await db_session.init_models()

    async with db_session.get_engine().connect() as conn:
        tables = await conn.run_sync(lambda c: inspect(c).get_table_names())

    assert {"users", "subscriptions", "videos", "watch_history"} <= set(tables)


@pytest.mark.asyncio
async def test_sqlite_connections_enforce_foreign_keys(file_db_settings):
    """Test that cascading deletes are honoured on SQLite."""
    async with db_session.get_engine().connect() as conn:
        result = await conn.exec_driver_sql("PRAGMA foreign_keys")

        assert result.scalar() == 1


@pytest.mark.asyncio
async def test_dispose_engine_resets_state(file_db_settings):
    """Test that disposing forgets both engine and sessionmaker."""
    first = db_session.get_engine()
    db_session.get_sessionmaker()

    await db_session.dispose_engine()

    assert db_session._engine is None
    assert db_session._sessionmaker is None
    assert db_session.get_engine() is not first


@pytest.mark.asyncio
async def test_get_session_yields_session(file_db_settings):
    """Test the request dependency hands out a working session."""
    await db_session.init_models()

    gen = db_session.get_session()
    session = await gen.__anext__()
    try:
        result = await session.execute(select(User))
        assert result.all() == []
    finally:
        await gen.aclose()
