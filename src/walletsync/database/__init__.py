"""Database layer for walletsync application."""

from walletsync.database.base import Database
from walletsync.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
