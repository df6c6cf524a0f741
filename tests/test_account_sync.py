"""Tests for AccountSyncExecutor."""

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from walletsync.domain.entities import WalletType
from walletsync.domain.errors import DataError, NotFoundError, ValidationError
from walletsync.remote.models import ClientInfo, CurrencyRate


def _client_info(*accounts):
    return ClientInfo(client_id="client-1", name="Test Client", accounts=list(accounts))


class TestSyncAccounts:
    """Tests for account reconciliation."""

    @pytest.mark.asyncio
    async def test_creates_wallet_for_new_account(
        self, executor, bank_client, make_account, clock
    ):
        """Test that an unseen account becomes a linked wallet."""
        bank_client.client_info = _client_info(make_account("acc-1", balance=1050075))

        wallets = await executor.sync_accounts()

        assert len(wallets) == 1
        wallet = wallets[0]
        assert wallet.name == "monobank black UAH"
        assert wallet.currency_code == "UAH"
        assert wallet.wallet_type == WalletType.BANK_ACCOUNT
        assert wallet.external_account_id == "acc-1"
        assert wallet.external_masked_pan == "537541******1234"
        assert wallet.current_balance == Decimal("10500.75")
        assert wallet.last_synced_at == clock()

    @pytest.mark.asyncio
    async def test_resync_updates_instead_of_duplicating(
        self, temp_db, executor, bank_client, make_account, clock
    ):
        """Test that a second sync refreshes the same wallet."""
        bank_client.client_info = _client_info(make_account("acc-1", balance=100))
        first = (await executor.sync_accounts())[0]

        clock.advance(300)
        bank_client.client_info = _client_info(
            make_account("acc-1", balance=250, type="white", masked_pan=["444111******9999"])
        )
        second = (await executor.sync_accounts())[0]

        assert second.id == first.id
        assert len(temp_db.list_wallets()) == 1
        assert second.current_balance == Decimal("2.50")
        assert second.external_card_type == "white"
        assert second.external_masked_pan == "444111******9999"
        # Name is kept; the user may have renamed it
        assert second.name == "monobank black UAH"
        assert second.last_synced_at == clock()

    @pytest.mark.asyncio
    async def test_unknown_currency_saves_nothing(
        self, temp_db, executor, bank_client, make_account
    ):
        """Test that a bad account rolls back the whole response."""
        bank_client.client_info = _client_info(
            make_account("acc-1"), make_account("acc-2", currency_code=1)
        )

        with pytest.raises(DataError):
            await executor.sync_accounts()

        assert temp_db.list_wallets() == []

    @pytest.mark.asyncio
    async def test_zero_decimal_currency(self, executor, bank_client, make_account):
        """Test minor-unit conversion for a currency without decimals."""
        bank_client.client_info = _client_info(make_account("acc-jpy", balance=1500, currency_code=392))

        wallet = (await executor.sync_accounts())[0]

        assert wallet.current_balance == Decimal("1500")

    @pytest.mark.asyncio
    async def test_linked_account_ids_skip_archived(
        self, temp_db, executor, bank_client, make_account
    ):
        """Test that archived wallets are not synced."""
        bank_client.client_info = _client_info(make_account("acc-1"), make_account("acc-2"))
        wallets = await executor.sync_accounts()
        temp_db.set_wallet_archived(wallets[1].id, True)
        temp_db.create_wallet(name="Cash", currency_code="UAH")

        assert executor.linked_account_ids() == ["acc-1"]


class TestSyncTransactions:
    """Tests for statement reconciliation."""

    @pytest.mark.asyncio
    async def test_creates_transactions(
        self, temp_db, executor, bank_client, make_account, make_statement_item, clock
    ):
        """Test storing new statement items."""
        bank_client.client_info = _client_info(make_account("acc-1"))
        wallet = (await executor.sync_accounts())[0]
        bank_client.statements["acc-1"] = [
            make_statement_item(
                "tx-1",
                amount=-412500,
                operation_amount=-10000,
                currency_code=840,
                cashback_amount=4125,
                commission_rate=500,
                hold=True,
            ),
            make_statement_item("tx-2", amount=2000000, description="Salary", mcc=4829),
        ]

        created = await executor.sync_transactions_for_account("acc-1")

        assert created == 2
        txn = temp_db.get_transaction_by_external_id(wallet.id, "tx-1")
        assert txn.amount == Decimal("-4125.00")
        assert txn.original_amount == Decimal("-100.00")
        assert txn.original_currency_code == "USD"
        assert txn.cashback_amount == Decimal("41.25")
        assert txn.commission_amount == Decimal("5.00")
        assert txn.balance_after == Decimal("10375.00")
        assert txn.is_hold
        assert txn.is_from_bank
        assert txn.mcc == 5411
        assert txn.occurred_at == clock() - timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_requests_trailing_window(
        self, executor, bank_client, make_account, clock, monkeypatch
    ):
        """Test that the statement window ends now and spans the requested days."""
        bank_client.client_info = _client_info(make_account("acc-1"))
        await executor.sync_accounts()
        seen = {}

        async def get_statement(account_id, from_time, to_time):
            seen.update(account_id=account_id, from_time=from_time, to_time=to_time)
            return []

        monkeypatch.setattr(bank_client, "get_statement", get_statement)

        await executor.sync_transactions_for_account("acc-1", days_back=7)

        now = int(clock().timestamp())
        assert seen == {"account_id": "acc-1", "from_time": now - 7 * 86400, "to_time": now}

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(
        self, temp_db, executor, bank_client, make_account, make_statement_item
    ):
        """Test that syncing the same statement twice stores each item once."""
        bank_client.client_info = _client_info(make_account("acc-1"))
        wallet = (await executor.sync_accounts())[0]
        bank_client.statements["acc-1"] = [make_statement_item("tx-1", hold=True)]
        await executor.sync_transactions_for_account("acc-1")

        bank_client.statements["acc-1"] = [
            make_statement_item("tx-1", hold=False, balance=1000000)
        ]
        created = await executor.sync_transactions_for_account("acc-1")

        assert created == 0
        transactions = temp_db.list_transactions(wallet_id=wallet.id)
        assert len(transactions) == 1
        assert not transactions[0].is_hold
        assert transactions[0].balance_after == Decimal("10000.00")

    @pytest.mark.asyncio
    async def test_new_transactions_are_categorized(
        self,
        temp_db,
        executor,
        bank_client,
        make_account,
        make_statement_item,
        category_service,
    ):
        """Test that rules run over freshly synced transactions."""
        category_service.seed_defaults()
        bank_client.client_info = _client_info(make_account("acc-1"))
        wallet = (await executor.sync_accounts())[0]
        bank_client.statements["acc-1"] = [
            make_statement_item("tx-1", mcc=5411),
            make_statement_item("tx-2", mcc=None, description="NETFLIX.COM"),
            make_statement_item("tx-3", mcc=1234, description="Unknown shop"),
        ]

        await executor.sync_transactions_for_account("acc-1")

        def category_of(external_id):
            txn = temp_db.get_transaction_by_external_id(wallet.id, external_id)
            return temp_db.get_category(txn.category_id).name if txn.category_id else None

        assert category_of("tx-1") == "Groceries"
        assert category_of("tx-2") == "Subscriptions"
        assert category_of("tx-3") is None

    @pytest.mark.asyncio
    async def test_unlinked_account(self, executor):
        """Test that a statement for an unknown account is refused."""
        with pytest.raises(NotFoundError):
            await executor.sync_transactions_for_account("nope")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days_back", [0, 32])
    async def test_window_limits(self, executor, days_back):
        """Test that empty and too-long windows are refused before calling the bank."""
        with pytest.raises(ValidationError):
            await executor.sync_transactions_for_account("acc-1", days_back=days_back)


class TestSyncCurrencyRates:
    """Tests for rate ingestion."""

    @pytest.mark.asyncio
    async def test_effective_rate_selection(self, executor, bank_client, resolver):
        """Test cross first, then mid of buy/sell, then whichever exists."""
        bank_client.rates = [
            CurrencyRate(840, 980, 0, Decimal("41.0"), Decimal("41.5")),
            CurrencyRate(978, 980, 0, Decimal("44.0"), Decimal("45.0"), Decimal("44.6")),
            CurrencyRate(985, 980, 0, rate_sell=Decimal("10.4")),
            CurrencyRate(826, 980, 0, Decimal("0"), None, None),
            CurrencyRate(1, 980, 0, rate_cross=Decimal("1")),
        ]

        stored = await executor.sync_currency_rates()

        assert stored == 3
        assert resolver.get_rate("USD", "UAH") == Decimal("41.25")
        assert resolver.get_rate("EUR", "UAH") == Decimal("44.6")
        assert resolver.get_rate("PLN", "UAH") == Decimal("10.4")
        assert resolver.get_rate("GBP", "UAH") is None

    @pytest.mark.asyncio
    async def test_buy_and_sell_are_kept(self, temp_db, executor, bank_client):
        """Test that the bank's buy and sell sides are stored with the rate."""
        bank_client.rates = [CurrencyRate(840, 980, 0, Decimal("41.0"), Decimal("41.5"))]

        await executor.sync_currency_rates()

        rate = temp_db.find_exchange_rate("USD", "UAH", "monobank")
        assert rate.buy_rate == Decimal("41.0")
        assert rate.sell_rate == Decimal("41.5")

    @pytest.mark.asyncio
    async def test_dropped_pair_is_logged(self, executor, bank_client, caplog):
        """Test that a pair with no usable rate is reported at warning level."""
        bank_client.rates = [
            CurrencyRate(826, 980, 0),
            CurrencyRate(840, 980, 0, rate_cross=Decimal("41.3")),
        ]

        with caplog.at_level(logging.WARNING, logger="walletsync.domain.account_sync"):
            stored = await executor.sync_currency_rates()

        assert stored == 1
        dropped = [
            r for r in caplog.records
            if r.name == "walletsync.domain.account_sync" and r.levelno == logging.WARNING
        ]
        assert [r.getMessage() for r in dropped] == [
            "Dropping rate GBP/UAH: no cross, buy or sell value"
        ]
