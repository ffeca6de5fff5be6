"""
Wanderlust — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets its own SQLite file under tmp_path (aiosqlite driver)
       and its own storage directory, so tests never share state.

Fixture Hierarchy (all function-scoped):
    settings          Settings pointing at tmp_path, no .env lookup
    sequencer         StartupSequencer with CONFIG already complete
    database          connected Database with the schema created
    context           AppContext from build_context()
    app               FastAPI app from create_app()
    client            httpx AsyncClient over ASGITransport
    make_client       factory for extra clients (separate cookie jars)
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from wanderlust.bootstrap import StartupSequencer, StartupStage, build_context
from wanderlust.config import Settings
from wanderlust.database import Database
from wanderlust.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_root=str(tmp_path / "storage"),
        secret="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def sequencer() -> StartupSequencer:
    sequencer = StartupSequencer()
    sequencer.mark_complete(StartupStage.CONFIG)
    return sequencer


@pytest_asyncio.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    database = Database.from_settings(settings)
    await database.connect()
    await database.create_schema()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def context(settings, sequencer):
    ctx = await build_context(settings, sequencer)
    yield ctx
    await ctx.database.dispose()


@pytest.fixture
def app(context, sequencer):
    return create_app(context, sequencer)


@pytest_asyncio.fixture
async def make_client(app):
    """
    Factory fixture: `client = make_client()`.

    Each client has its own cookie jar, i.e. its own browser session.
    """
    clients = []

    def factory() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def client(make_client) -> AsyncClient:
    return make_client()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Smallest valid JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        b"\xff\xd9"
    )
