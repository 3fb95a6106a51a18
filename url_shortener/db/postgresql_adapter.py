"""
PostgreSQL Database Adapter

Used when DATABASE_URL starts with postgresql+asyncpg://.
Requires the optional ``asyncpg`` driver (``pip install .[postgres]``).
"""

from typing import Any, Optional

from sqlalchemy.pool import Pool

from url_shortener.db.interface import DatabaseAdapter


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL engine configuration with a pooled connection set."""

    def get_pool_class(self) -> Optional[type[Pool]]:
        # AsyncAdaptedQueuePool (SQLAlchemy default for async engines)
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "timeout": 10,
            "command_timeout": 30,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": 20,
            "max_overflow": 10,
            "pool_pre_ping": True,
        }

    def get_dialect_name(self) -> str:
        return "postgresql"
