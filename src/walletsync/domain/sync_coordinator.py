"""Rate-limited sync queue.

The coordinator owns a FIFO of sync tasks and drains it with a single asyncio
worker, spacing remote calls at least ``SyncPolicy.rate_limit_interval``
apart. Progress and outcome are published as ``SyncSnapshot`` objects to
subscribers; no exception escapes the worker.
"""

import asyncio
import logging
import math
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from walletsync.config import DEFAULT_POLICY, SyncPolicy
from walletsync.credentials import SecretProvider
from walletsync.domain.account_sync import AccountSyncExecutor
from walletsync.domain.errors import ConfigurationError, DomainError, token_not_configured
from walletsync.domain.sync_state import SyncStateStore
from walletsync.remote.errors import (
    RemoteAPIError,
    RemoteAuthorizationError,
    RemoteRateLimitError,
)
from walletsync.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

MAX_RATE_LIMIT_RETRIES = 1


class SyncTaskType(str, Enum):
    """Kind of queued work."""

    FETCH_CLIENT_INFO = "fetch_client_info"
    FETCH_STATEMENT = "fetch_statement"


@dataclass(frozen=True)
class SyncTask:
    """One unit of queued work; each makes one rate-limited remote call."""

    type: SyncTaskType
    created_at: datetime
    account_id: Optional[str] = None
    attempts: int = 0


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Syncing:
    progress: str


@dataclass(frozen=True)
class WaitingForRateLimit:
    seconds_remaining: int


@dataclass(frozen=True)
class Completed:
    accounts_count: int
    transactions_count: int


@dataclass(frozen=True)
class Failed:
    reason: str


SyncStatus = Union[Idle, Syncing, WaitingForRateLimit, Completed, Failed]


@dataclass(frozen=True)
class SyncSnapshot:
    """Immutable view of coordinator state handed to subscribers."""

    status: SyncStatus
    is_processing: bool
    pending_tasks_count: int
    last_successful_sync: Optional[datetime]


Subscriber = Callable[[SyncSnapshot], None]
Sleep = Callable[[float], Awaitable[None]]


class _RunAborted(Exception):
    """Internal signal that the current run must stop and drain the queue."""


class SyncCoordinator:
    """Serializes remote-API work into one rate-limited queue.

    Enqueue methods must be called from a running event loop; they start the
    worker task on demand. Use ``wait_until_idle()`` to await the run.

    Args:
        executor: Does the actual remote calls and reconciliation
        secrets: Token source; no token means no run
        state: Persisted sync bookkeeping
        policy: Rate-limit interval and statement window
        clock: Source of the current time
        sleep: Awaitable sleep used by the rate-limit countdown
    """

    def __init__(
        self,
        executor: AccountSyncExecutor,
        secrets: SecretProvider,
        state: SyncStateStore,
        policy: SyncPolicy = DEFAULT_POLICY,
        clock: Clock = utcnow,
        sleep: Sleep = asyncio.sleep,
    ):
        self.executor = executor
        self.secrets = secrets
        self.state = state
        self.policy = policy
        self.clock = clock
        self.sleep = sleep

        self._queue: deque[SyncTask] = deque()
        self._status: SyncStatus = Idle()
        self._worker: Optional[asyncio.Task] = None
        self._subscribers: list[Subscriber] = []
        self._last_api_call: Optional[datetime] = state.get_last_api_call()
        self._extra_wait = 0.0
        self._last_successful_sync: Optional[datetime] = state.get_last_successful_sync()
        self._synced_accounts: set[str] = set()
        self._transactions_count = 0

    # Observable state
    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def pending_tasks_count(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def last_successful_sync(self) -> Optional[datetime]:
        return self._last_successful_sync

    @property
    def snapshot(self) -> SyncSnapshot:
        return SyncSnapshot(
            status=self._status,
            is_processing=self.is_processing,
            pending_tasks_count=self.pending_tasks_count,
            last_successful_sync=self._last_successful_sync,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a snapshot callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, status: Optional[SyncStatus] = None) -> None:
        if status is not None:
            self._status = status
        snapshot = self.snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Sync subscriber raised")

    # Public API
    def enqueue_full_sync(self) -> None:
        """Queue statement fetches for known accounts, or account discovery first.

        Known accounts come from the cached account-ID list, falling back to
        wallets already linked to the bank.
        """
        if not self._has_token():
            return

        self._reset_run()
        account_ids = self.state.get_account_ids() or self.executor.linked_account_ids()
        now = self.clock()
        if account_ids:
            logger.info("Queueing statement sync for %d known accounts", len(account_ids))
            for account_id in account_ids:
                self._queue.append(SyncTask(SyncTaskType.FETCH_STATEMENT, now, account_id))
        else:
            logger.info("No known accounts, queueing account discovery")
            self._queue.append(SyncTask(SyncTaskType.FETCH_CLIENT_INFO, now))

        self._start_worker()

    def enqueue_full_sync_with_account_refresh(self) -> None:
        """Queue account discovery first, refreshing balances and new accounts."""
        if not self._has_token():
            return

        self._reset_run()
        logger.info("Queueing account refresh")
        self._queue.append(SyncTask(SyncTaskType.FETCH_CLIENT_INFO, self.clock()))
        self._start_worker()

    def should_sync(self, throttle_interval: float = 30.0) -> bool:
        """True if never synced or the last success is at least ``throttle_interval`` seconds old."""
        if self._last_successful_sync is None:
            return True
        elapsed = (self.clock() - self._last_successful_sync).total_seconds()
        return elapsed >= throttle_interval

    def cancel_sync(self) -> None:
        """Stop the worker and any countdown, drop queued work, go idle."""
        worker = self._worker
        self._worker = None
        self._queue.clear()
        if worker is not None and not worker.done():
            worker.cancel()
            logger.info("Sync cancelled")
        self._publish(Idle())

    async def wait_until_idle(self) -> None:
        """Wait until no worker is running."""
        while self._worker is not None and not self._worker.done():
            await asyncio.wait({self._worker})

    # Worker
    def _has_token(self) -> bool:
        if self.secrets.has_token():
            return True
        logger.error(token_not_configured())
        self._publish(Failed(token_not_configured()))
        return False

    def _reset_run(self) -> None:
        self._queue.clear()
        self._synced_accounts = set()
        self._transactions_count = 0

    def _start_worker(self) -> None:
        if self.is_processing:
            self._publish()
            return
        if not self._queue:
            return
        self._worker = asyncio.get_running_loop().create_task(self._process_queue())
        self._publish()

    async def _process_queue(self) -> None:
        try:
            while self._queue:
                wait = self._seconds_until_next_call()
                if wait > 0:
                    await self._count_down(math.ceil(wait))
                    continue

                task = self._queue.popleft()
                self._mark_api_call()
                try:
                    await self._execute(task)
                except _RunAborted:
                    return

            self._finish_run()
        except Exception as e:
            logger.exception("Sync worker stopped; dropping %d queued tasks", len(self._queue))
            self._queue.clear()
            self._publish(Failed(str(e)))
        finally:
            if self._worker is asyncio.current_task():
                self._worker = None
                self._publish()

    def _seconds_until_next_call(self) -> float:
        if self._last_api_call is None:
            return 0.0
        elapsed = (self.clock() - self._last_api_call).total_seconds()
        return self.policy.rate_limit_interval + self._extra_wait - elapsed

    async def _count_down(self, seconds: int) -> None:
        logger.info("Rate limit: waiting %ds before next API call", seconds)
        for remaining in range(seconds, 0, -1):
            self._publish(WaitingForRateLimit(remaining))
            await self.sleep(1)

    def _mark_api_call(self) -> None:
        self._last_api_call = self.clock()
        self._extra_wait = 0.0
        self.state.set_last_api_call(self._last_api_call)

    async def _execute(self, task: SyncTask) -> None:
        try:
            if task.type == SyncTaskType.FETCH_CLIENT_INFO:
                await self._fetch_client_info()
            else:
                await self._fetch_statement(task)
        except (RemoteAuthorizationError, ConfigurationError) as e:
            self._abort(f"{task.type.value} failed: {e}", e)
        except RemoteRateLimitError as e:
            if task.type == SyncTaskType.FETCH_CLIENT_INFO:
                self._abort(f"Account discovery was rate limited: {e}", e)
            self._retry_later(task, e)
        except Exception as e:
            if task.type == SyncTaskType.FETCH_CLIENT_INFO:
                self._abort(f"Account discovery failed: {e}", e)
            logger.exception("Statement sync failed for account %s", task.account_id)

    def _abort(self, message: str, error: Exception) -> None:
        logger.error("%s; dropping %d queued tasks", message, len(self._queue), exc_info=error)
        self._queue.clear()
        self._publish(Failed(str(error)))
        raise _RunAborted()

    def _retry_later(self, task: SyncTask, error: RemoteRateLimitError) -> None:
        if task.attempts >= MAX_RATE_LIMIT_RETRIES:
            logger.error(
                "Giving up on account %s after repeated rate limiting", task.account_id
            )
            return
        retry_after = error.retry_after
        if retry_after is None or not math.isfinite(retry_after):
            retry_after = 0.0
        self._extra_wait = min(
            max(self.policy.rate_limit_interval, retry_after), self.policy.max_rate_limit_wait
        )
        self._queue.append(replace(task, attempts=task.attempts + 1))
        logger.warning(
            "Account %s rate limited; retrying after the queue with %.0fs extra wait",
            task.account_id,
            self._extra_wait,
        )
        self._publish()

    async def _fetch_client_info(self) -> None:
        self._publish(Syncing("Fetching accounts..."))

        try:
            await self.executor.sync_currency_rates()
        except (RemoteAPIError, DomainError) as e:
            logger.warning("Currency rate sync failed, continuing without it: %s", e)

        wallets = await self.executor.sync_accounts()
        account_ids = [wallet.external_account_id for wallet in wallets]
        self.state.set_account_ids(account_ids)
        self._synced_accounts.update(account_ids)

        now = self.clock()
        for account_id in account_ids:
            self._queue.append(SyncTask(SyncTaskType.FETCH_STATEMENT, now, account_id))
        logger.info("Discovered %d accounts", len(account_ids))
        self._publish()

    async def _fetch_statement(self, task: SyncTask) -> None:
        self._publish(Syncing(f"Syncing transactions for account {task.account_id}..."))
        count = await self.executor.sync_transactions_for_account(
            task.account_id, days_back=self.policy.statement_days
        )
        self._synced_accounts.add(task.account_id)
        self._transactions_count += count

    def _finish_run(self) -> None:
        if not self._synced_accounts and not self._transactions_count:
            logger.info("Sync finished but nothing was synced")
            return

        self._last_successful_sync = self.clock()
        self.state.set_last_successful_sync(self._last_successful_sync)
        logger.info(
            "Sync completed: %d accounts, %d transactions",
            len(self._synced_accounts),
            self._transactions_count,
        )
        self._publish(Completed(len(self._synced_accounts), self._transactions_count))
