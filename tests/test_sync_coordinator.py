"""Tests for the rate-limited SyncCoordinator."""

import asyncio
from datetime import timedelta

import pytest

from walletsync.credentials import StaticSecretProvider
from walletsync.domain.sync_coordinator import (
    Completed,
    Failed,
    Idle,
    SyncCoordinator,
    Syncing,
    WaitingForRateLimit,
)
from walletsync.remote.errors import (
    RemoteAuthorizationError,
    RemoteRateLimitError,
    RemoteServerError,
    RemoteTransportError,
)
from walletsync.remote.models import ClientInfo


@pytest.fixture
def coordinator(executor, sync_state, clock):
    """Coordinator whose countdown runs on the fake clock."""
    return SyncCoordinator(
        executor, StaticSecretProvider("token"), sync_state, clock=clock, sleep=clock.sleep
    )


@pytest.fixture
def statuses(coordinator):
    """Every status published by the coordinator, in order."""
    seen = []
    coordinator.subscribe(lambda snapshot: seen.append(snapshot.status))
    return seen


@pytest.fixture
def two_accounts(executor, bank_client, make_account, make_statement_item):
    """Two linked wallets with statements waiting at the bank."""
    bank_client.client_info = ClientInfo(
        client_id="client-1",
        name="Test Client",
        accounts=[make_account("acc-1"), make_account("acc-2", currency_code=840)],
    )
    executor.sync_accounts_from_client_info(bank_client.client_info)
    bank_client.statements["acc-1"] = [make_statement_item("a"), make_statement_item("b")]
    bank_client.statements["acc-2"] = [make_statement_item("c", currency_code=840)]
    return ["acc-1", "acc-2"]


def _call_times(bank_client, start):
    return [(key, (when - start).total_seconds()) for key, when in bank_client.calls]


@pytest.mark.asyncio
async def test_syncs_linked_accounts_one_minute_apart(
    coordinator, bank_client, clock, statuses, two_accounts, sync_state
):
    """Test the fast path: one statement call per account, spaced by the rate limit."""
    start = clock()

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert _call_times(bank_client, start) == [("acc-1", 0), ("acc-2", 60)]
    assert clock.sleeps == [1] * 60
    assert coordinator.status == Completed(accounts_count=2, transactions_count=3)
    assert coordinator.last_successful_sync == start + timedelta(seconds=60)
    assert sync_state.get_last_successful_sync() == start + timedelta(seconds=60)
    assert not coordinator.is_processing
    assert coordinator.pending_tasks_count == 0

    waits = [s.seconds_remaining for s in statuses if isinstance(s, WaitingForRateLimit)]
    assert waits == list(range(60, 0, -1))
    assert Syncing("Syncing transactions for account acc-1...") in statuses


@pytest.mark.asyncio
async def test_cached_account_ids_take_precedence(
    coordinator, bank_client, two_accounts, sync_state
):
    """Test that the cached account list decides which statements are fetched."""
    sync_state.set_account_ids(["acc-2"])

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-2"]
    assert coordinator.status == Completed(accounts_count=1, transactions_count=1)


@pytest.mark.asyncio
async def test_first_sync_discovers_accounts(
    coordinator, bank_client, clock, make_account, make_statement_item, sync_state, temp_db
):
    """Test that with no known accounts the client info is fetched first."""
    bank_client.client_info = ClientInfo(
        client_id="client-1",
        name="Test Client",
        accounts=[make_account("acc-1"), make_account("acc-2")],
    )
    bank_client.statements["acc-2"] = [make_statement_item("x")]
    start = clock()

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert _call_times(bank_client, start) == [
        ("currency", 0),
        ("client_info", 0),
        ("acc-1", 60),
        ("acc-2", 120),
    ]
    assert sync_state.get_account_ids() == ["acc-1", "acc-2"]
    assert len(temp_db.list_wallets()) == 2
    assert coordinator.status == Completed(accounts_count=2, transactions_count=1)


@pytest.mark.asyncio
async def test_account_refresh_fetches_client_info_first(
    coordinator, bank_client, two_accounts
):
    """Test that a refresh run rediscovers accounts even when some are known."""
    coordinator.enqueue_full_sync_with_account_refresh()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["currency", "client_info", "acc-1", "acc-2"]
    assert isinstance(coordinator.status, Completed)


@pytest.mark.asyncio
async def test_rate_sync_failure_does_not_stop_discovery(coordinator, bank_client, make_account):
    """Test that a failing rate table is only logged."""
    bank_client.client_info = ClientInfo(
        client_id="client-1", name="Test Client", accounts=[make_account("acc-1")]
    )
    bank_client.fail("currency", RemoteTransportError("timeout"))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert coordinator.status == Completed(accounts_count=1, transactions_count=0)


@pytest.mark.asyncio
async def test_client_info_failure_fails_the_run(coordinator, bank_client):
    """Test that failing account discovery aborts with the error."""
    bank_client.fail("client_info", RemoteServerError("Server error (500): boom", 500))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert coordinator.status == Failed("Server error (500): boom")
    assert coordinator.last_successful_sync is None


@pytest.mark.asyncio
async def test_statement_failure_skips_only_that_account(
    coordinator, bank_client, two_accounts
):
    """Test partial success when one account's statement fails."""
    bank_client.fail("acc-1", RemoteServerError("Server error (502): bad gateway", 502))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-1", "acc-2"]
    assert coordinator.status == Completed(accounts_count=1, transactions_count=1)


@pytest.mark.asyncio
async def test_authorization_error_is_fatal(coordinator, bank_client, two_accounts, sync_state):
    """Test that a rejected token stops the run and drops queued work."""
    bank_client.fail("acc-1", RemoteAuthorizationError("Unauthorized"))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-1"]
    assert coordinator.status == Failed("Unauthorized")
    assert coordinator.pending_tasks_count == 0
    assert sync_state.get_last_successful_sync() is None


@pytest.mark.asyncio
async def test_rate_limited_statement_is_retried_at_the_end(
    coordinator, bank_client, clock, two_accounts
):
    """Test that a 429 re-queues the account once behind an extra wait."""
    start = clock()
    bank_client.fail("acc-1", RemoteRateLimitError("slow down", retry_after=90))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert _call_times(bank_client, start) == [("acc-1", 0), ("acc-2", 150), ("acc-1", 210)]
    assert coordinator.status == Completed(accounts_count=2, transactions_count=3)


@pytest.mark.asyncio
async def test_rate_limited_twice_gives_up(coordinator, bank_client, two_accounts):
    """Test that a second 429 for the same account is not retried again."""
    bank_client.fail(
        "acc-1", RemoteRateLimitError("slow down"), RemoteRateLimitError("slow down")
    )

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-1", "acc-2", "acc-1"]
    assert coordinator.status == Completed(accounts_count=1, transactions_count=1)


@pytest.mark.asyncio
async def test_missing_token_fails_without_calls(executor, sync_state, clock, bank_client):
    """Test that no work is queued without a token."""
    coordinator = SyncCoordinator(
        executor, StaticSecretProvider("  "), sync_state, clock=clock, sleep=clock.sleep
    )

    coordinator.enqueue_full_sync()

    assert coordinator.status == Failed("Monobank token not configured")
    assert not coordinator.is_processing
    assert bank_client.calls == []


@pytest.mark.asyncio
async def test_last_api_call_survives_restart(clock, two_accounts, sync_state, executor):
    """Test that a call made by a previous run still counts against the limit."""
    sync_state.set_last_api_call(clock() - timedelta(seconds=20))
    restarted = SyncCoordinator(
        executor, StaticSecretProvider("token"), sync_state, clock=clock, sleep=clock.sleep
    )

    restarted.enqueue_full_sync()
    await restarted.wait_until_idle()

    assert clock.sleeps == [1] * (40 + 60)
    assert sync_state.get_last_api_call() == clock()


@pytest.mark.asyncio
async def test_cancel_during_countdown(coordinator, bank_client, clock, two_accounts):
    """Test that cancelling stops the countdown and empties the queue."""
    waiting = asyncio.Event()
    coordinator.subscribe(
        lambda snapshot: waiting.set()
        if isinstance(snapshot.status, WaitingForRateLimit)
        else None
    )

    coordinator.enqueue_full_sync()
    await waiting.wait()
    workers = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    coordinator.cancel_sync()
    await asyncio.gather(*workers, return_exceptions=True)

    assert coordinator.status == Idle()
    assert coordinator.pending_tasks_count == 0
    assert not coordinator.is_processing
    assert [key for key, _ in bank_client.calls] == ["acc-1"]
    assert coordinator.last_successful_sync is None


@pytest.mark.asyncio
async def test_enqueue_while_running_does_not_start_second_worker(
    coordinator, bank_client, two_accounts
):
    """Test that enqueueing again during a run reuses the single worker."""
    coordinator.enqueue_full_sync()
    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-1", "acc-2"]


@pytest.mark.asyncio
async def test_subscriber_errors_are_contained(coordinator, two_accounts):
    """Test that a failing subscriber neither breaks the run nor other subscribers."""
    seen = []

    def broken(snapshot):
        raise RuntimeError("subscriber bug")

    coordinator.subscribe(broken)
    unsubscribe = coordinator.subscribe(lambda snapshot: seen.append(snapshot.status))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert isinstance(seen[-1], Completed)
    count = len(seen)
    unsubscribe()
    coordinator.cancel_sync()
    assert len(seen) == count


def test_should_sync_throttle(executor, sync_state, clock):
    """Test the throttle window on the last successful sync."""
    coordinator = SyncCoordinator(executor, StaticSecretProvider("token"), sync_state, clock=clock)
    assert coordinator.should_sync()

    sync_state.set_last_successful_sync(clock())
    coordinator = SyncCoordinator(executor, StaticSecretProvider("token"), sync_state, clock=clock)
    assert not coordinator.should_sync(throttle_interval=30.0)

    clock.advance(30)
    assert coordinator.should_sync(throttle_interval=30.0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "retry_after,acc2_at,retry_at",
    [(float("inf"), 120, 180), (float("nan"), 120, 180), (1e9, 360, 420)],
)
async def test_rate_limit_wait_is_bounded(
    coordinator, bank_client, clock, two_accounts, retry_after, acc2_at, retry_at
):
    """Test that unusable or huge Retry-After values cannot stall the queue."""
    start = clock()
    bank_client.fail("acc-1", RemoteRateLimitError("slow down", retry_after=retry_after))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert _call_times(bank_client, start) == [
        ("acc-1", 0),
        ("acc-2", acc2_at),
        ("acc-1", retry_at),
    ]
    assert coordinator.status == Completed(accounts_count=2, transactions_count=3)


@pytest.mark.asyncio
async def test_rate_limited_discovery_is_fatal(coordinator, bank_client, clock):
    """Test that a 429 on client info fails the run without a retry."""
    bank_client.fail("client_info", RemoteRateLimitError("slow down", retry_after=30))

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["currency", "client_info"]
    assert coordinator.status == Failed("slow down")
    assert coordinator.pending_tasks_count == 0
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_cached_account_without_wallet_is_skipped(
    coordinator, bank_client, two_accounts, sync_state
):
    """Test that a cached ID with no linked wallet fails alone."""
    sync_state.set_account_ids(["closed-account", "acc-1"])

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-1"]
    assert coordinator.status == Completed(accounts_count=1, transactions_count=2)


@pytest.mark.asyncio
async def test_database_error_skips_only_that_account(
    coordinator, bank_client, two_accounts, temp_db, lock_table_once
):
    """Test that a failed write for one account leaves the next one syncable."""
    lock_table_once("transactions")

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert [key for key, _ in bank_client.calls] == ["acc-1", "acc-2"]
    assert coordinator.status == Completed(accounts_count=1, transactions_count=1)
    failed_wallet = temp_db.get_wallet_by_external_id("acc-1")
    assert temp_db.list_transactions(wallet_id=failed_wallet.id) == []


@pytest.mark.asyncio
async def test_state_write_failure_fails_the_run(
    coordinator, bank_client, two_accounts, lock_table_once
):
    """Test that an error outside a task still ends with a Failed status."""
    lock_table_once("settings")

    coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()

    assert isinstance(coordinator.status, Failed)
    assert "database is locked" in coordinator.status.reason
    assert bank_client.calls == []
    assert coordinator.pending_tasks_count == 0
    assert not coordinator.is_processing


@pytest.mark.asyncio
async def test_cancel_during_remote_call_keeps_committed_work(
    coordinator, bank_client, two_accounts, temp_db, sync_state
):
    """Test that cancelling mid-request goes idle and keeps earlier accounts."""
    in_flight = asyncio.Event()
    fetch_statement = bank_client.get_statement

    async def hanging_statement(account_id, from_time, to_time):
        if account_id == "acc-2":
            in_flight.set()
            await asyncio.Event().wait()
        return await fetch_statement(account_id, from_time, to_time)

    bank_client.get_statement = hanging_statement

    coordinator.enqueue_full_sync()
    await in_flight.wait()
    workers = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    coordinator.cancel_sync()
    await asyncio.gather(*workers, return_exceptions=True)

    assert coordinator.status == Idle()
    assert not coordinator.is_processing
    assert coordinator.last_successful_sync is None
    assert sync_state.get_last_successful_sync() is None
    wallet = temp_db.get_wallet_by_external_id("acc-1")
    assert len(temp_db.list_transactions(wallet_id=wallet.id)) == 2
