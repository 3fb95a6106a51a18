"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface with SQLite and PostgreSQL implementations
- Database: engine + session factory owned by the application
- URLRepository: every query the service layer runs

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register it in get_database_adapter() in session.py
"""

from url_shortener.db.interface import DatabaseAdapter
from url_shortener.db.repository import URLRepository
from url_shortener.db.session import Database, get_database_adapter, get_session

__all__ = [
    "DatabaseAdapter",
    "Database",
    "URLRepository",
    "get_database_adapter",
    "get_session",
]
