"""
Database Session Management

This module owns the async engine and the session factory.

Key Features:
- Database abstraction: adapter chosen from the URL dialect (SQLite, PostgreSQL)
- Explicit lifetime: the application factory constructs one Database,
  stores it on app.state and disposes it on shutdown; nothing here is a
  module-level global
- Async session management: one session per request via get_session()
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from url_shortener.db import models  # noqa: F401  (registers tables on SQLModel.metadata)
from url_shortener.db.interface import DatabaseAdapter
from url_shortener.db.postgresql_adapter import PostgreSQLAdapter
from url_shortener.db.sqlite_adapter import SQLiteAdapter

_ADAPTERS = (SQLiteAdapter, PostgreSQLAdapter)


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a connection string.

    Raises:
        ValueError: If the URL's backend has no adapter
    """
    backend = make_url(database_url).get_backend_name()
    for adapter_class in _ADAPTERS:
        adapter = adapter_class()
        if adapter.get_dialect_name() == backend:
            return adapter
    raise ValueError(f"Unsupported database backend: {backend}")


class Database:
    """
    Storage handle: engine plus session factory.

    Constructed once by the application entry point and passed to whatever
    needs sessions.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.adapter = get_database_adapter(database_url)
        self.engine = self.adapter.create_engine(database_url, echo=echo)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=SQLModelAsyncSession,
            expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
            autoflush=False,
        )

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def drop_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session; roll back on error, always close.

        Writes are committed by the repository as they happen, so there is
        nothing left to commit here.
        """
        async with self.session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: a session from the application's Database.

    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(session: AsyncSession = Depends(get_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
