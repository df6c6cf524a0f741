"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from walletsync.domain.entities import (
    Wallet,
    Category,
    SubCategory,
    Rule,
    Transaction,
    ExchangeRate,
)


class Database(ABC):
    """Abstract database interface for walletsync.

    Every mutating operation commits on its own unless it runs inside
    ``batch()``, in which case the whole block is committed once at exit
    (or rolled back if the block raises).
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    @contextmanager
    def batch(self) -> Iterator[None]:
        """Group several operations into one commit."""
        pass

    # Wallet operations
    @abstractmethod
    def create_wallet(
        self,
        name: str,
        currency_code: str,
        initial_balance: Decimal = Decimal("0"),
        wallet_type: str = "other",
        external_account_id: Optional[str] = None,
        external_iban: Optional[str] = None,
        external_card_type: Optional[str] = None,
        external_masked_pan: Optional[str] = None,
    ) -> int:
        """Create a new wallet. Returns wallet ID."""
        pass

    @abstractmethod
    def get_wallet(self, wallet_id: int) -> Optional[Wallet]:
        """Get wallet by ID."""
        pass

    @abstractmethod
    def get_wallet_by_external_id(self, external_account_id: str) -> Optional[Wallet]:
        """Get wallet linked to a remote account."""
        pass

    @abstractmethod
    def list_wallets(self, include_archived: bool = True) -> list[Wallet]:
        """List wallets."""
        pass

    @abstractmethod
    def update_wallet_external_metadata(
        self,
        wallet_id: int,
        external_iban: Optional[str],
        external_card_type: Optional[str],
        external_masked_pan: Optional[str],
    ) -> None:
        """Refresh the bank-side descriptors of a linked wallet."""
        pass

    @abstractmethod
    def update_wallet_balance(
        self, wallet_id: int, balance: Decimal, synced_at: Optional[datetime] = None
    ) -> None:
        """Overwrite current balance and optionally stamp the sync time."""
        pass

    @abstractmethod
    def set_wallet_archived(self, wallet_id: int, is_archived: bool) -> None:
        """Archive or unarchive a wallet."""
        pass

    @abstractmethod
    def delete_wallet(self, wallet_id: int) -> None:
        """Delete a wallet and its transactions."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self, name: str, category_type: str = "expense", is_default: bool = False
    ) -> int:
        """Create a new category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Get category by name."""
        pass

    @abstractmethod
    def list_categories(self, category_type: Optional[str] = None) -> list[Category]:
        """List categories, optionally filtered by type."""
        pass

    @abstractmethod
    def create_sub_category(self, name: str, category_id: int) -> int:
        """Create a sub-category. Returns sub-category ID."""
        pass

    @abstractmethod
    def get_sub_category(self, sub_category_id: int) -> Optional[SubCategory]:
        """Get sub-category by ID."""
        pass

    @abstractmethod
    def list_sub_categories(self, category_id: Optional[int] = None) -> list[SubCategory]:
        """List sub-categories, optionally for one category."""
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self,
        name: str,
        rule_type: str,
        match_value: str,
        category_id: int,
        sub_category_id: Optional[int] = None,
        priority: int = 10,
        is_active: bool = True,
    ) -> int:
        """Create a categorization rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[Rule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, active_only: bool = False) -> list[Rule]:
        """List rules ordered by priority, then creation order."""
        pass

    @abstractmethod
    def update_rule(
        self,
        rule_id: int,
        name: Optional[str] = None,
        match_value: Optional[str] = None,
        category_id: Optional[int] = None,
        sub_category_id: Optional[int] = None,
        priority: Optional[int] = None,
        clear_sub_category: bool = False,
    ) -> None:
        """Update rule fields. Only provided fields are changed.

        Pass ``clear_sub_category=True`` to drop the sub-category target.
        """
        pass

    @abstractmethod
    def set_rule_active(self, rule_id: int, is_active: bool) -> None:
        """Enable or disable a rule."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule, clearing its attribution on transactions."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        wallet_id: int,
        amount: Decimal,
        description: str,
        occurred_at: datetime,
        external_id: Optional[str] = None,
        original_amount: Optional[Decimal] = None,
        original_currency_code: Optional[str] = None,
        mcc: Optional[int] = None,
        is_hold: bool = False,
        cashback_amount: Optional[Decimal] = None,
        commission_amount: Optional[Decimal] = None,
        balance_after: Optional[Decimal] = None,
        category_id: Optional[int] = None,
        sub_category_id: Optional[int] = None,
        note: Optional[str] = None,
        is_from_bank: bool = False,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def get_transaction_by_external_id(
        self, wallet_id: int, external_id: str
    ) -> Optional[Transaction]:
        """Get transaction by its bank-side ID within a wallet."""
        pass

    @abstractmethod
    def update_transaction_sync_fields(
        self, transaction_id: int, is_hold: bool, balance_after: Optional[Decimal]
    ) -> None:
        """Update the fields a bank statement may change after creation."""
        pass

    @abstractmethod
    def set_transaction_categorization(
        self,
        transaction_id: int,
        category_id: Optional[int],
        sub_category_id: Optional[int],
        rule_id: Optional[int],
    ) -> None:
        """Set (or clear) category, sub-category and attributing rule together."""
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> None:
        """Update user-editable transaction fields. Only provided fields are changed."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        wallet_id: Optional[int] = None,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        uncategorized_only: bool = False,
        rule_attributed_only: bool = False,
        rule_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first."""
        pass

    # Exchange rate operations
    @abstractmethod
    def find_exchange_rate(
        self, from_currency: str, to_currency: str, source: str
    ) -> Optional[ExchangeRate]:
        """Get the stored rate for a pair from one source."""
        pass

    @abstractmethod
    def upsert_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        source: str,
        fetched_at: datetime,
        buy_rate: Optional[Decimal] = None,
        sell_rate: Optional[Decimal] = None,
    ) -> int:
        """Insert or replace the rate keyed by (from, to, source). Returns rate ID."""
        pass

    @abstractmethod
    def get_latest_rate(
        self, from_currency: str, to_currency: str, fetched_since: datetime
    ) -> Optional[ExchangeRate]:
        """Get the most recent rate for a pair fetched at or after a cutoff."""
        pass

    @abstractmethod
    def delete_rates_older_than(self, cutoff: datetime) -> int:
        """Delete rates fetched before the cutoff. Returns number deleted."""
        pass

    @abstractmethod
    def list_exchange_rates(self) -> list[ExchangeRate]:
        """List all stored rates ordered by pair."""
        pass

    # Settings
    @abstractmethod
    def get_setting(self, key: str) -> Optional[str]:
        """Get a stored setting value."""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Optional[str]) -> None:
        """Store a setting value (None deletes it)."""
        pass
