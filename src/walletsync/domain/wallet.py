"""Wallet domain service."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from walletsync.database.base import Database
from walletsync.domain.currency import CurrencyRateResolver
from walletsync.domain.entities import Wallet, WalletType
from walletsync.domain.errors import (
    NotFoundError,
    ValidationError,
    unknown_currency,
    wallet_not_found,
)
from walletsync.utils import iso4217


@dataclass(frozen=True)
class NetWorth:
    """Sum of wallet balances in one currency."""

    currency_code: str
    total: Decimal
    wallet_count: int
    unconverted: list[Wallet] = field(default_factory=list)


class WalletService:
    """Service for managing wallets."""

    def __init__(self, db: Database, resolver: Optional[CurrencyRateResolver] = None):
        """Initialize wallet service.

        Args:
            db: Database instance
            resolver: Rate resolver used by ``net_worth`` (created if not given)
        """
        self.db = db
        self.resolver = resolver or CurrencyRateResolver(db)

    def create_wallet(
        self,
        name: str,
        currency_code: str,
        initial_balance: Decimal = Decimal("0"),
        wallet_type: WalletType | str = WalletType.CASH,
    ) -> int:
        """Create a manual (unlinked) wallet.

        Raises:
            ValidationError: If the name is blank, the currency is unknown, or the
                balance is finer than the currency's minor unit
        """
        name = name.strip()
        if not name:
            raise ValidationError("Wallet name must not be empty")
        currency_code = currency_code.strip().upper()
        if not iso4217.is_known(currency_code):
            raise ValidationError(unknown_currency(currency_code))
        initial_balance = Decimal(initial_balance)
        minor = iso4217.to_minor_units(initial_balance, currency_code)
        if iso4217.from_minor_units(minor, currency_code) != initial_balance:
            raise ValidationError(
                f"Initial balance {initial_balance} has more decimal places than {currency_code} allows"
            )
        wallet_type = WalletType(wallet_type)

        return self.db.create_wallet(
            name=name,
            currency_code=currency_code,
            initial_balance=initial_balance,
            wallet_type=wallet_type.value,
        )

    def get_wallet(self, wallet_id: int) -> Optional[Wallet]:
        """Get wallet by ID."""
        return self.db.get_wallet(wallet_id)

    def list_wallets(self, include_archived: bool = False) -> list[Wallet]:
        """List wallets, hiding archived ones unless asked."""
        return self.db.list_wallets(include_archived=include_archived)

    def archive_wallet(self, wallet_id: int) -> None:
        """Hide a wallet from listings and sync without deleting it."""
        self._require_wallet(wallet_id)
        self.db.set_wallet_archived(wallet_id, True)

    def unarchive_wallet(self, wallet_id: int) -> None:
        """Bring an archived wallet back."""
        self._require_wallet(wallet_id)
        self.db.set_wallet_archived(wallet_id, False)

    def delete_wallet(self, wallet_id: int) -> None:
        """Delete a manual wallet and its transactions.

        Raises:
            NotFoundError: If the wallet doesn't exist
            ValidationError: If the wallet is linked to a bank account
        """
        wallet = self._require_wallet(wallet_id)
        if wallet.is_linked:
            raise ValidationError(
                f"Wallet {wallet_id} is linked to a bank account; archive it instead"
            )
        self.db.delete_wallet(wallet_id)

    def net_worth(self, currency_code: str, include_archived: bool = False) -> NetWorth:
        """Total of current balances converted into one currency.

        Wallets whose currency cannot be converted from fresh rates are left
        out of the total and listed in ``unconverted``.
        """
        currency_code = currency_code.strip().upper()
        total = Decimal("0")
        counted = 0
        unconverted = []
        for wallet in self.db.list_wallets(include_archived=include_archived):
            converted = self.resolver.convert(
                wallet.current_balance, wallet.currency_code, currency_code
            )
            if converted is None:
                unconverted.append(wallet)
                continue
            total += converted
            counted += 1

        places = iso4217.decimal_places(currency_code)
        total = total.quantize(Decimal(1).scaleb(-places))
        return NetWorth(
            currency_code=currency_code,
            total=total,
            wallet_count=counted,
            unconverted=unconverted,
        )

    def _require_wallet(self, wallet_id: int) -> Wallet:
        wallet = self.db.get_wallet(wallet_id)
        if wallet is None:
            raise NotFoundError(wallet_not_found(wallet_id))
        return wallet
