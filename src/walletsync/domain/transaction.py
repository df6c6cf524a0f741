"""Transaction domain service."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from walletsync.database.base import Database
from walletsync.domain.entities import Transaction
from walletsync.domain.errors import (
    NotFoundError,
    ValidationError,
    bank_transaction_read_only,
    category_not_found,
    sub_category_mismatch,
    sub_category_not_found,
    transaction_not_found,
    wallet_not_found,
)


class TransactionService:
    """Service for managing transactions.

    Transactions synced from the bank keep their amount, description and
    date as the bank reported them; users may only categorize and annotate
    them.
    """

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_transaction(
        self,
        wallet_id: int,
        amount: Decimal,
        description: str,
        occurred_at: datetime,
        category_id: Optional[int] = None,
        sub_category_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> int:
        """Create a manual transaction.

        Args:
            wallet_id: Wallet ID
            amount: Signed amount in the wallet currency
            description: Description
            occurred_at: When it happened
            category_id: Optional category ID
            sub_category_id: Optional sub-category ID (requires category_id)
            note: Optional note

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If the wallet, category or sub-category doesn't exist
        """
        if self.db.get_wallet(wallet_id) is None:
            raise NotFoundError(wallet_not_found(wallet_id))
        self._check_category(category_id, sub_category_id)

        return self.db.create_transaction(
            wallet_id=wallet_id,
            amount=amount,
            description=description,
            occurred_at=occurred_at,
            category_id=category_id,
            sub_category_id=sub_category_id,
            note=note,
        )

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def set_category(
        self,
        transaction_id: int,
        category_id: Optional[int],
        sub_category_id: Optional[int] = None,
    ) -> None:
        """Categorize a transaction by hand.

        Clears the attributing rule, so later rule runs leave it alone.
        Passing ``category_id=None`` uncategorizes it, handing it back to
        the rules.

        Raises:
            NotFoundError: If the transaction, category or sub-category doesn't exist
        """
        self._require_transaction(transaction_id)
        self._check_category(category_id, sub_category_id)
        self.db.set_transaction_categorization(
            transaction_id, category_id, sub_category_id, None
        )

    def update_note(self, transaction_id: int, note: Optional[str]) -> None:
        """Update transaction note (allowed on bank transactions too)."""
        self._require_transaction(transaction_id)
        self.db.update_transaction(transaction_id, note=note or "")

    def update_transaction(
        self,
        transaction_id: int,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> None:
        """Edit a manual transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If it was synced from the bank
        """
        transaction = self._require_transaction(transaction_id)
        if transaction.is_from_bank:
            raise ValidationError(bank_transaction_read_only(transaction_id))
        self.db.update_transaction(
            transaction_id, amount=amount, description=description, occurred_at=occurred_at
        )

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a manual transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If it was synced from the bank
        """
        transaction = self._require_transaction(transaction_id)
        if transaction.is_from_bank:
            raise ValidationError(bank_transaction_read_only(transaction_id))
        self.db.delete_transaction(transaction_id)

    def list_transactions(
        self,
        wallet_id: Optional[int] = None,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        uncategorized_only: bool = False,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first."""
        return self.db.list_transactions(
            wallet_id=wallet_id,
            start_at=start_at,
            end_at=end_at,
            uncategorized_only=uncategorized_only,
            limit=limit,
        )

    def _require_transaction(self, transaction_id: int) -> Transaction:
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def _check_category(self, category_id: Optional[int], sub_category_id: Optional[int]) -> None:
        if category_id is None:
            if sub_category_id is not None:
                raise ValidationError("A sub-category needs a category")
            return
        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        if sub_category_id is None:
            return
        sub_category = self.db.get_sub_category(sub_category_id)
        if sub_category is None:
            raise NotFoundError(sub_category_not_found(sub_category_id))
        if sub_category.category_id != category_id:
            raise ValidationError(sub_category_mismatch(sub_category_id, category_id))
