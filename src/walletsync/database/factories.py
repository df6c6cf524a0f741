"""Database factory functions for creating database instances."""

from typing import Optional

from walletsync.config import default_database_path
from walletsync.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks WALLETSYNC_DB_PATH
            environment variable, then defaults to ~/.walletsync/walletsync.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    database_path = default_database_path(database_path)
    database = SQLAlchemyDatabase(f"sqlite:///{database_path}")
    database.database_path = database_path
    return database
