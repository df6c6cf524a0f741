"""Domain model entities for walletsync.

These are pure data classes representing business concepts, independent of
database schema. Services and the sync core pass these around; only the
database layer knows about ORM objects.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class WalletType(str, Enum):
    """Kind of wallet."""

    BANK_ACCOUNT = "bank_account"
    CASH = "cash"
    OTHER = "other"


class CategoryType(str, Enum):
    """Whether a category collects spending or earnings."""

    EXPENSE = "expense"
    INCOME = "income"


class RuleType(str, Enum):
    """Match strategy of a categorization rule."""

    MCC = "mcc"
    DESCRIPTION = "description"
    DESCRIPTION_EXACT = "description_exact"
    AMOUNT = "amount"


@dataclass(frozen=True)
class Wallet:
    """Wallet (account) domain entity."""

    id: int
    name: str
    currency_code: str
    initial_balance: Decimal
    current_balance: Decimal
    wallet_type: WalletType
    is_archived: bool
    created_at: datetime
    external_account_id: Optional[str] = None
    external_iban: Optional[str] = None
    external_card_type: Optional[str] = None
    external_masked_pan: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    @property
    def is_linked(self) -> bool:
        return self.external_account_id is not None

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.currency_code}"


@dataclass(frozen=True)
class Category:
    """Top-level category domain entity."""

    id: int
    name: str
    category_type: CategoryType
    is_default: bool
    created_at: datetime


@dataclass(frozen=True)
class SubCategory:
    """Sub-category domain entity, always owned by one category."""

    id: int
    name: str
    category_id: int
    created_at: datetime


@dataclass(frozen=True)
class Rule:
    """Categorization rule domain entity."""

    id: int
    name: str
    rule_type: RuleType
    match_value: str
    category_id: int
    sub_category_id: Optional[int]
    priority: int
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity.

    Amounts are signed and expressed in the wallet currency; the original
    amount/currency carry the pre-conversion value of foreign operations.
    """

    id: int
    wallet_id: int
    amount: Decimal
    description: str
    occurred_at: datetime
    created_at: datetime
    external_id: Optional[str] = None
    original_amount: Optional[Decimal] = None
    original_currency_code: Optional[str] = None
    mcc: Optional[int] = None
    is_hold: bool = False
    cashback_amount: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    balance_after: Optional[Decimal] = None
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    rule_id: Optional[int] = None
    note: Optional[str] = None
    is_from_bank: bool = False

    @property
    def absolute_amount(self) -> Decimal:
        return abs(self.amount)

    @property
    def is_manually_categorized(self) -> bool:
        return self.category_id is not None and self.rule_id is None


@dataclass(frozen=True)
class ExchangeRate:
    """Stored exchange rate for one currency pair from one source."""

    id: int
    from_currency: str
    to_currency: str
    rate: Decimal
    source: str
    fetched_at: datetime
    buy_rate: Optional[Decimal] = None
    sell_rate: Optional[Decimal] = None

    @property
    def currency_pair(self) -> str:
        return f"{self.from_currency}/{self.to_currency}"
