"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the rest of the code never sees
ORM objects.
"""

from decimal import Decimal
from typing import Optional

from walletsync.domain import entities as domain
from walletsync.database.models import (
    Wallet as ORMWallet,
    Category as ORMCategory,
    SubCategory as ORMSubCategory,
    Rule as ORMRule,
    Transaction as ORMTransaction,
    ExchangeRate as ORMExchangeRate,
)


def _decimal(value) -> Optional[Decimal]:
    """Normalize numeric column values, which SQLite may hand back as floats."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def wallet_to_domain(orm_wallet: ORMWallet) -> domain.Wallet:
    """Convert SQLAlchemy Wallet model to domain Wallet entity."""
    return domain.Wallet(
        id=orm_wallet.id,
        name=orm_wallet.name,
        currency_code=orm_wallet.currency_code,
        initial_balance=_decimal(orm_wallet.initial_balance),
        current_balance=_decimal(orm_wallet.current_balance),
        wallet_type=domain.WalletType(orm_wallet.wallet_type),
        is_archived=orm_wallet.is_archived,
        created_at=orm_wallet.created_at,
        external_account_id=orm_wallet.external_account_id,
        external_iban=orm_wallet.external_iban,
        external_card_type=orm_wallet.external_card_type,
        external_masked_pan=orm_wallet.external_masked_pan,
        last_synced_at=orm_wallet.last_synced_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        category_type=domain.CategoryType(orm_category.category_type),
        is_default=orm_category.is_default,
        created_at=orm_category.created_at,
    )


def sub_category_to_domain(orm_sub_category: ORMSubCategory) -> domain.SubCategory:
    """Convert SQLAlchemy SubCategory model to domain SubCategory entity."""
    return domain.SubCategory(
        id=orm_sub_category.id,
        name=orm_sub_category.name,
        category_id=orm_sub_category.category_id,
        created_at=orm_sub_category.created_at,
    )


def rule_to_domain(orm_rule: ORMRule) -> domain.Rule:
    """Convert SQLAlchemy Rule model to domain Rule entity."""
    return domain.Rule(
        id=orm_rule.id,
        name=orm_rule.name,
        rule_type=domain.RuleType(orm_rule.rule_type),
        match_value=orm_rule.match_value,
        category_id=orm_rule.category_id,
        sub_category_id=orm_rule.sub_category_id,
        priority=orm_rule.priority,
        is_active=orm_rule.is_active,
        created_at=orm_rule.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        wallet_id=orm_transaction.wallet_id,
        amount=_decimal(orm_transaction.amount),
        description=orm_transaction.description,
        occurred_at=orm_transaction.occurred_at,
        created_at=orm_transaction.created_at,
        external_id=orm_transaction.external_id,
        original_amount=_decimal(orm_transaction.original_amount),
        original_currency_code=orm_transaction.original_currency_code,
        mcc=orm_transaction.mcc,
        is_hold=orm_transaction.is_hold,
        cashback_amount=_decimal(orm_transaction.cashback_amount),
        commission_amount=_decimal(orm_transaction.commission_amount),
        balance_after=_decimal(orm_transaction.balance_after),
        category_id=orm_transaction.category_id,
        sub_category_id=orm_transaction.sub_category_id,
        rule_id=orm_transaction.rule_id,
        note=orm_transaction.note,
        is_from_bank=orm_transaction.is_from_bank,
    )


def exchange_rate_to_domain(orm_rate: ORMExchangeRate) -> domain.ExchangeRate:
    """Convert SQLAlchemy ExchangeRate model to domain ExchangeRate entity."""
    return domain.ExchangeRate(
        id=orm_rate.id,
        from_currency=orm_rate.from_currency,
        to_currency=orm_rate.to_currency,
        rate=_decimal(orm_rate.rate),
        source=orm_rate.source,
        fetched_at=orm_rate.fetched_at,
        buy_rate=_decimal(orm_rate.buy_rate),
        sell_rate=_decimal(orm_rate.sell_rate),
    )
