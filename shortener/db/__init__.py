"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: engine configuration per database backend
- SQLiteAdapter: SQLite-specific implementation (default)
- URLRepository: contract for the canonical short URL store
- Session helpers: engine / session factory construction

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Update get_database_adapter() in sqlite_adapter.py to return the new adapter
"""

from shortener.db.interface import DatabaseAdapter
from shortener.db.repository import Click, SQLURLRepository, URLRepository
from shortener.db.session import build_engine, build_session_maker

__all__ = [
    "DatabaseAdapter",
    "URLRepository",
    "SQLURLRepository",
    "Click",
    "build_engine",
    "build_session_maker",
]
