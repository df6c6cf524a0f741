"""Persisted bookkeeping for the sync coordinator."""

import json
import logging
from datetime import datetime
from typing import Optional

from walletsync.database.base import Database

logger = logging.getLogger(__name__)

LAST_SUCCESSFUL_SYNC_KEY = "sync.last_successful_sync"
ACCOUNT_IDS_KEY = "sync.account_ids"
LAST_API_CALL_KEY = "sync.last_api_call"


class SyncStateStore:
    """Sync bookkeeping: last success, last remote call, cached account IDs.

    Stored in the database settings table so they survive restarts.
    """

    def __init__(self, db: Database):
        """Initialize sync state store.

        Args:
            db: Database instance
        """
        self.db = db

    def get_last_successful_sync(self) -> Optional[datetime]:
        return self._get_timestamp(LAST_SUCCESSFUL_SYNC_KEY)

    def set_last_successful_sync(self, when: datetime) -> None:
        self.db.set_setting(LAST_SUCCESSFUL_SYNC_KEY, when.isoformat())

    def get_last_api_call(self) -> Optional[datetime]:
        return self._get_timestamp(LAST_API_CALL_KEY)

    def set_last_api_call(self, when: datetime) -> None:
        self.db.set_setting(LAST_API_CALL_KEY, when.isoformat())

    def _get_timestamp(self, key: str) -> Optional[datetime]:
        value = self.db.get_setting(key)
        if value is None:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.warning("Ignoring unreadable timestamp %r under %s", value, key)
            return None

    def get_account_ids(self) -> list[str]:
        value = self.db.get_setting(ACCOUNT_IDS_KEY)
        if not value:
            return []
        try:
            ids = json.loads(value)
        except ValueError:
            logger.warning("Ignoring unreadable cached account IDs")
            return []
        return [str(account_id) for account_id in ids]

    def set_account_ids(self, account_ids: list[str]) -> None:
        self.db.set_setting(ACCOUNT_IDS_KEY, json.dumps(list(account_ids)))

    def clear_account_ids(self) -> None:
        self.db.set_setting(ACCOUNT_IDS_KEY, None)
