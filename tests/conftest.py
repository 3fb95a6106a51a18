"""Shared pytest fixtures: temporary SQLite database, repository, app client."""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from url_shortener.core.rate_limit import limiter
from url_shortener.core.setting import Settings
from url_shortener.db.repository import URLRepository
from url_shortener.db.session import Database
from url_shortener.main import create_app

BASE_URL = "http://short.test"


class FakeClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        BASE_URL=BASE_URL,
        AUTO_CREATE_TABLES=False,
        RATE_LIMIT_ENABLED=False,
        LOG_REMOTE_URL=None,
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    database = Database(settings.DATABASE_URL)
    await database.create_tables()
    yield database
    await database.drop_tables()
    await database.dispose()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def repository(session: AsyncSession) -> URLRepository:
    return URLRepository(session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def client(settings: Settings, database: Database) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(settings, database=database)
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.reset()
