"""Shared pytest fixtures for walletsync tests."""

import asyncio
import os
import sqlite3
import tempfile
from collections import defaultdict, deque
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from walletsync.database.factories import create_sqlite_database
from walletsync.domain.account_sync import AccountSyncExecutor
from walletsync.domain.categorization import CategorizationEngine
from walletsync.domain.category import CategoryService
from walletsync.domain.currency import CurrencyRateResolver
from walletsync.domain.rules import RuleService
from walletsync.domain.sync_state import SyncStateStore
from walletsync.domain.transaction import TransactionService
from walletsync.domain.wallet import WalletService
from walletsync.remote.base import BankClient
from walletsync.remote.models import ClientInfo, CurrencyRate, RemoteAccount, StatementItem


class FakeClock:
    """Settable clock whose ``sleep`` advances time instead of waiting."""

    def __init__(self, start: datetime):
        self.now = start
        self.sleeps = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


class FakeBankClient(BankClient):
    """In-memory bank with scripted failures and a call log.

    ``fail(key, *errors)`` queues exceptions for "client_info", "currency" or
    an account ID; each call pops one before falling back to the canned data.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.client_info = ClientInfo(client_id="client-1", name="Test Client", accounts=[])
        self.statements: dict[str, list[StatementItem]] = {}
        self.rates: list[CurrencyRate] = []
        self.errors: dict[str, deque] = defaultdict(deque)
        self.calls: list[tuple[str, datetime]] = []

    def fail(self, key: str, *errors: Exception) -> None:
        self.errors[key].extend(errors)

    def _record(self, key: str) -> None:
        self.calls.append((key, self.clock()))
        if self.errors[key]:
            raise self.errors[key].popleft()

    async def get_client_info(self) -> ClientInfo:
        self._record("client_info")
        return self.client_info

    async def get_statement(self, account_id, from_time, to_time):
        self._record(account_id)
        return list(self.statements.get(account_id, []))

    async def get_currency_rates(self):
        self._record("currency")
        return list(self.rates)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def lock_table_once(temp_db):
    """Make the next INSERT into the given table fail as if the file were locked."""
    engine = temp_db.session_factory.kw["bind"]
    armed = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if armed and statement.startswith(f"INSERT INTO {armed[0]} "):
            armed.clear()
            locked = sqlite3.OperationalError("database is locked")
            raise OperationalError(statement, parameters, locked)

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    yield armed.append
    event.remove(engine, "before_cursor_execute", before_cursor_execute)


@pytest.fixture
def clock():
    """A fake clock starting at a fixed instant."""
    return FakeClock(datetime(2024, 3, 15, 12, 0, tzinfo=UTC))


@pytest.fixture
def resolver(temp_db, clock):
    """Create a CurrencyRateResolver on the fake clock."""
    return CurrencyRateResolver(temp_db, clock=clock)


@pytest.fixture
def engine(temp_db, clock):
    """Create a CategorizationEngine on the fake clock."""
    return CategorizationEngine(temp_db, clock=clock)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a RuleService with a temporary database."""
    return RuleService(temp_db)


@pytest.fixture
def wallet_service(temp_db, resolver):
    """Create a WalletService with a temporary database."""
    return WalletService(temp_db, resolver)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def sync_state(temp_db):
    """Create a SyncStateStore with a temporary database."""
    return SyncStateStore(temp_db)


@pytest.fixture
def bank_client(clock):
    """Create a scripted fake bank."""
    return FakeBankClient(clock)


@pytest.fixture
def executor(temp_db, bank_client, clock):
    """Create an AccountSyncExecutor against the fake bank."""
    return AccountSyncExecutor(temp_db, bank_client, clock=clock)


@pytest.fixture
def make_account():
    """Build a remote account; balance is in minor units."""

    def _make(account_id="acc-1", balance=1050000, currency_code=980, type="black", **kwargs):
        kwargs.setdefault("iban", f"UA00{account_id}")
        kwargs.setdefault("masked_pan", ["537541******1234"])
        return RemoteAccount(
            id=account_id,
            balance=balance,
            currency_code=currency_code,
            type=type,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_statement_item(clock):
    """Build a statement item that happened an hour before the fake now."""

    def _make(item_id="tx-1", amount=-12500, description="Silpo", mcc=5411, **kwargs):
        kwargs.setdefault("time", int((clock() - timedelta(hours=1)).timestamp()))
        kwargs.setdefault("operation_amount", amount)
        kwargs.setdefault("currency_code", 980)
        kwargs.setdefault("balance", 1037500)
        return StatementItem(
            id=item_id,
            amount=amount,
            description=description,
            mcc=mcc,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_categories(category_service):
    """Create a few categories with a sub-category."""
    groceries = category_service.create_category("Groceries")
    cafes = category_service.create_category("Cafes")
    salary = category_service.create_category("Salary", "income")
    supermarket = category_service.create_sub_category("Supermarket", "Groceries")
    return {
        "Groceries": groceries,
        "Cafes": cafes,
        "Salary": salary,
        "Groceries > Supermarket": supermarket,
    }


@pytest.fixture
def sample_wallet(temp_db):
    """Create a manual UAH wallet."""
    wallet_id = temp_db.create_wallet(
        name="Cash", currency_code="UAH", initial_balance=0, wallet_type="cash"
    )
    return temp_db.get_wallet(wallet_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
