"""
SQLite Database Adapter

SQLite is the default backend:
- File-based (single .db file), no server required
- Single writer at a time (file locking)
- Good fit for local development, tests and single-instance deployments
"""

from typing import Any

from sqlalchemy.pool import NullPool

from url_shortener.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """SQLite engine configuration (aiosqlite driver)."""

    def get_pool_class(self) -> type[NullPool]:
        """
        SQLite uses NullPool: a file-based database gains nothing from
        pooling, and each session gets a fresh connection.
        """
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": 15,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False
        }

    def get_dialect_name(self) -> str:
        return "sqlite"
