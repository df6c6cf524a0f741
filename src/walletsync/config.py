"""Runtime configuration for walletsync.

Settings come from environment variables (overridable by explicit arguments
and CLI options). Sync policy constants are grouped in ``SyncPolicy`` so tests
and hosts can shorten intervals without patching module globals.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

DB_PATH_ENV = "WALLETSYNC_DB_PATH"
TOKEN_ENV = "WALLETSYNC_MONOBANK_TOKEN"
API_URL_ENV = "WALLETSYNC_API_URL"
LOG_LEVEL_ENV = "WALLETSYNC_LOG_LEVEL"

DEFAULT_API_URL = "https://api.monobank.ua"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class SyncPolicy:
    """Limits and windows used by the sync core."""

    rate_limit_interval: float = 60.0
    max_rate_limit_wait: float = 300.0
    statement_days: int = 30
    max_statement_span: timedelta = timedelta(days=31, hours=1)
    rate_staleness: timedelta = timedelta(hours=24)
    rate_retention: timedelta = timedelta(days=7)
    pivot_currency: str = "UAH"
    connect_timeout: float = 30.0
    read_timeout: float = 60.0
    bank_label: str = "monobank"
    rate_source: str = "monobank"


DEFAULT_POLICY = SyncPolicy()


def default_database_path(database_path: Optional[str] = None) -> str:
    """Resolve the SQLite database path.

    Args:
        database_path: Explicit path. If None, checks WALLETSYNC_DB_PATH
            environment variable, then defaults to ~/.walletsync/walletsync.db

    Returns:
        Database file path
    """
    if database_path is None:
        database_path = os.environ.get(DB_PATH_ENV)

    if database_path is None:
        db_dir = Path.home() / ".walletsync"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "walletsync.db")

    return database_path


def api_base_url(base_url: Optional[str] = None) -> str:
    """Resolve the remote API base URL."""
    if base_url is None:
        base_url = os.environ.get(API_URL_ENV, DEFAULT_API_URL)
    return base_url
