"""Reconciliation of remote bank data into the local store."""

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Optional

from walletsync.config import DEFAULT_POLICY, SyncPolicy
from walletsync.database.base import Database
from walletsync.domain.categorization import CategorizationEngine
from walletsync.domain.currency import CurrencyRateResolver, RateQuote
from walletsync.domain.entities import Wallet, WalletType
from walletsync.domain.errors import (
    DataError,
    NotFoundError,
    ValidationError,
    linked_wallet_not_found,
    statement_window_too_long,
    unknown_currency,
)
from walletsync.remote.base import BankClient
from walletsync.remote.models import ClientInfo, CurrencyRate, RemoteAccount, StatementItem
from walletsync.utils import iso4217
from walletsync.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class AccountSyncExecutor:
    """Pulls accounts, statements and rates from the bank and stores them.

    Every method that talks to the bank makes exactly one remote call, so the
    coordinator can space calls out. Reconciliation is idempotent: replaying
    the same remote data never creates duplicates.
    """

    def __init__(
        self,
        db: Database,
        client: BankClient,
        resolver: Optional[CurrencyRateResolver] = None,
        engine: Optional[CategorizationEngine] = None,
        policy: SyncPolicy = DEFAULT_POLICY,
        clock: Clock = utcnow,
    ):
        """Initialize account sync executor.

        Args:
            db: Database instance
            client: Remote banking API
            resolver: Rate store for ingested rates (created if not given)
            engine: Categorizer for new transactions (created if not given)
            policy: Statement window and naming settings
            clock: Source of the current time
        """
        self.db = db
        self.client = client
        self.policy = policy
        self.clock = clock
        self.resolver = resolver or CurrencyRateResolver(db, policy=policy, clock=clock)
        self.engine = engine or CategorizationEngine(db, clock=clock)

    # Currency rates
    async def sync_currency_rates(self) -> int:
        """Fetch the public rate table and store every usable pair.

        Returns:
            Number of pairs stored
        """
        rates = await self.client.get_currency_rates()

        quotes = []
        for remote_rate in rates:
            quote = self._rate_quote(remote_rate)
            if quote is not None:
                quotes.append(quote)

        stored = self.resolver.save_rates(quotes, source=self.policy.rate_source)
        logger.info("Stored %d of %d currency rates", stored, len(rates))
        return stored

    def _rate_quote(self, remote_rate: CurrencyRate) -> Optional[RateQuote]:
        from_code = iso4217.alpha_code(remote_rate.currency_code_a)
        to_code = iso4217.alpha_code(remote_rate.currency_code_b)
        if from_code is None or to_code is None:
            logger.debug(
                "Skipping rate %d/%d: unknown currency code",
                remote_rate.currency_code_a,
                remote_rate.currency_code_b,
            )
            return None

        buy = _positive(remote_rate.rate_buy)
        sell = _positive(remote_rate.rate_sell)
        cross = _positive(remote_rate.rate_cross)

        if cross is not None:
            effective = cross
        elif buy is not None and sell is not None:
            effective = (buy + sell) / 2
        elif buy is not None or sell is not None:
            effective = buy if buy is not None else sell
        else:
            logger.warning("Dropping rate %s/%s: no cross, buy or sell value", from_code, to_code)
            return None

        return RateQuote(from_code, to_code, effective, buy_rate=buy, sell_rate=sell)

    # Accounts
    async def sync_accounts(self) -> list[Wallet]:
        """Fetch client info and reconcile every account."""
        info = await self.client.get_client_info()
        return self.sync_accounts_from_client_info(info)

    def sync_accounts_from_client_info(self, info: ClientInfo) -> list[Wallet]:
        """Reconcile all accounts of a client-info response in one commit.

        Returns:
            Synced wallets, in response order

        Raises:
            DataError: If a new account has an unknown currency (nothing is saved)
        """
        with self.db.batch():
            wallets = [self.sync_account(account) for account in info.accounts]
        logger.info("Synced %d accounts", len(wallets))
        return wallets

    def sync_account(self, account: RemoteAccount) -> Wallet:
        """Create or refresh the wallet linked to one remote account.

        Existing wallets get fresh bank descriptors; new ones are named
        "<bank label> <type> <currency>". Either way the balance is
        overwritten with the bank's and the sync time is stamped.

        Raises:
            DataError: If the account is new and its currency code is unknown
        """
        wallet = self.db.get_wallet_by_external_id(account.id)

        if wallet is not None:
            self.db.update_wallet_external_metadata(
                wallet.id,
                external_iban=account.iban,
                external_card_type=account.type,
                external_masked_pan=account.primary_masked_pan,
            )
            wallet_id = wallet.id
            currency_code = wallet.currency_code
        else:
            currency_code = iso4217.alpha_code(account.currency_code)
            if currency_code is None:
                raise DataError(unknown_currency(account.currency_code))
            wallet_id = self.db.create_wallet(
                name=f"{self.policy.bank_label} {account.type} {currency_code}",
                currency_code=currency_code,
                initial_balance=iso4217.from_minor_units(account.balance, currency_code),
                wallet_type=WalletType.BANK_ACCOUNT.value,
                external_account_id=account.id,
                external_iban=account.iban,
                external_card_type=account.type,
                external_masked_pan=account.primary_masked_pan,
            )
            logger.info("Created wallet %d for account %s", wallet_id, account.id)

        self.db.update_wallet_balance(
            wallet_id,
            iso4217.from_minor_units(account.balance, currency_code),
            synced_at=self.clock(),
        )
        return self.db.get_wallet(wallet_id)

    def linked_account_ids(self) -> list[str]:
        """External IDs of linked, non-archived wallets."""
        return [
            wallet.external_account_id
            for wallet in self.db.list_wallets(include_archived=False)
            if wallet.is_linked
        ]

    # Statements
    async def sync_transactions_for_account(
        self, account_id: str, days_back: Optional[int] = None
    ) -> int:
        """Fetch the trailing statement window of one account and reconcile it.

        Each item is committed on its own, so a failure part-way keeps what
        was already stored. New transactions are run through the rules.

        Args:
            account_id: Remote account ID
            days_back: Window length in days (defaults to the policy's 30)

        Returns:
            Number of new transactions

        Raises:
            NotFoundError: If no wallet is linked to the account
            ValidationError: If the window is empty or longer than the bank allows
        """
        if days_back is None:
            days_back = self.policy.statement_days
        if days_back <= 0:
            raise ValidationError("Statement window must be at least one day")
        if timedelta(days=days_back) > self.policy.max_statement_span:
            raise ValidationError(statement_window_too_long(days_back))

        wallet = self.db.get_wallet_by_external_id(account_id)
        if wallet is None:
            raise NotFoundError(linked_wallet_not_found(account_id))

        to_time = int(self.clock().timestamp())
        from_time = to_time - days_back * 86400
        items = await self.client.get_statement(account_id, from_time, to_time)

        created = 0
        for item in items:
            if self.reconcile_statement_item(item, wallet):
                created += 1

        if created:
            self.engine.apply_rules_to_uncategorized(wallet_id=wallet.id)

        logger.info(
            "Account %s: %d statement items, %d new transactions", account_id, len(items), created
        )
        return created

    def reconcile_statement_item(self, item: StatementItem, wallet: Wallet) -> bool:
        """Store one statement item, or refresh it if already stored.

        Known items only get their hold flag and balance snapshot updated.
        New items are stored with the amount in the wallet currency and the
        original amount in the operation's currency.

        Returns:
            True if a transaction was created
        """
        currency = wallet.currency_code
        balance_after = (
            iso4217.from_minor_units(item.balance, currency) if item.balance is not None else None
        )

        existing = self.db.get_transaction_by_external_id(wallet.id, item.id)
        if existing is not None:
            if existing.is_hold != item.hold or existing.balance_after != balance_after:
                self.db.update_transaction_sync_fields(existing.id, item.hold, balance_after)
            return False

        original_currency = iso4217.alpha_code(item.currency_code) or currency
        self.db.create_transaction(
            wallet_id=wallet.id,
            external_id=item.id,
            amount=iso4217.from_minor_units(item.amount, currency),
            original_amount=iso4217.from_minor_units(item.operation_amount, original_currency),
            original_currency_code=original_currency,
            description=item.description,
            occurred_at=datetime.fromtimestamp(item.time, UTC),
            mcc=item.mcc,
            is_hold=item.hold,
            cashback_amount=iso4217.from_minor_units(item.cashback_amount, currency),
            commission_amount=iso4217.from_minor_units(item.commission_rate, currency),
            balance_after=balance_after,
            is_from_bank=True,
        )
        return True


def _positive(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None or value <= 0:
        return None
    return value
