"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class ConfigurationError(DomainError):
    """Required configuration (such as the API token) is missing."""


class DataError(DomainError):
    """Remote data could not be mapped onto the local model."""


def wallet_not_found(wallet_id: int) -> str:
    """Return message for missing wallet."""
    return f"Wallet {wallet_id} not found"


def linked_wallet_not_found(account_id: str) -> str:
    """Return message for a remote account with no local wallet."""
    return f"No wallet linked to external account '{account_id}'"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def category_name_not_found(name: str) -> str:
    """Return message for missing category by name."""
    return f"Category '{name}' not found"


def sub_category_not_found(sub_category_id: int) -> str:
    """Return message for missing sub-category."""
    return f"Sub-category {sub_category_id} not found"


def sub_category_mismatch(sub_category_id: int, category_id: int) -> str:
    """Return message when a sub-category is attached to another category."""
    return f"Sub-category {sub_category_id} does not belong to category {category_id}"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing rule."""
    return f"Rule {rule_id} not found"


def invalid_rule_pattern(rule_type: str, pattern: str) -> str:
    """Return message for a rule pattern that fails validation."""
    return f"Invalid pattern '{pattern}' for {rule_type} rule"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def bank_transaction_read_only(transaction_id: int) -> str:
    """Return message when a user tries to alter a bank-sourced transaction."""
    return f"Transaction {transaction_id} was synced from the bank and cannot be changed"


def unknown_currency(code: object) -> str:
    """Return message for a currency code outside the ISO 4217 table."""
    return f"Unknown currency code {code}"


def token_not_configured() -> str:
    """Return message when no API token is available."""
    return "Monobank token not configured"


def statement_window_too_long(days_back: int) -> str:
    """Return message for a statement window the bank would reject."""
    return f"Statement window of {days_back} days exceeds the 31 day limit"
