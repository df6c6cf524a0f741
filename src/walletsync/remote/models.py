"""Payload objects returned by the remote banking API.

Monetary fields stay in integer minor units exactly as the bank sends them;
converting to ``Decimal`` needs the currency exponent and happens during
reconciliation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class RemoteAccount:
    """One account from the client-info response."""

    id: str
    balance: int
    currency_code: int
    type: str
    credit_limit: int = 0
    iban: Optional[str] = None
    masked_pan: list[str] = field(default_factory=list)
    cashback_type: Optional[str] = None

    @property
    def primary_masked_pan(self) -> Optional[str]:
        return self.masked_pan[0] if self.masked_pan else None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RemoteAccount":
        return cls(
            id=str(payload["id"]),
            balance=int(payload["balance"]),
            currency_code=int(payload["currencyCode"]),
            type=str(payload.get("type") or "account"),
            credit_limit=int(payload.get("creditLimit") or 0),
            iban=payload.get("iban"),
            masked_pan=list(payload.get("maskedPan") or []),
            cashback_type=payload.get("cashbackType"),
        )


@dataclass(frozen=True)
class ClientInfo:
    """Client profile with its accounts."""

    client_id: str
    name: str
    accounts: list[RemoteAccount]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ClientInfo":
        return cls(
            client_id=str(payload.get("clientId", "")),
            name=str(payload.get("name", "")),
            accounts=[RemoteAccount.from_payload(a) for a in payload.get("accounts") or []],
        )


@dataclass(frozen=True)
class StatementItem:
    """One statement line.

    ``amount`` is in the account currency; ``operation_amount`` is in
    ``currency_code``, the currency the operation was made in.
    """

    id: str
    time: int
    description: str
    amount: int
    operation_amount: int
    currency_code: int
    mcc: Optional[int] = None
    hold: bool = False
    commission_rate: int = 0
    cashback_amount: int = 0
    balance: Optional[int] = None
    comment: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "StatementItem":
        mcc = payload.get("mcc")
        balance = payload.get("balance")
        return cls(
            id=str(payload["id"]),
            time=int(payload["time"]),
            description=str(payload.get("description") or ""),
            amount=int(payload["amount"]),
            operation_amount=int(payload.get("operationAmount", payload["amount"])),
            currency_code=int(payload["currencyCode"]),
            mcc=int(mcc) if mcc is not None else None,
            hold=bool(payload.get("hold", False)),
            commission_rate=int(payload.get("commissionRate") or 0),
            cashback_amount=int(payload.get("cashbackAmount") or 0),
            balance=int(balance) if balance is not None else None,
            comment=payload.get("comment"),
        )


@dataclass(frozen=True)
class CurrencyRate:
    """One row of the public rate table, keyed by ISO 4217 numeric codes."""

    currency_code_a: int
    currency_code_b: int
    date: int
    rate_buy: Optional[Decimal] = None
    rate_sell: Optional[Decimal] = None
    rate_cross: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CurrencyRate":
        return cls(
            currency_code_a=int(payload["currencyCodeA"]),
            currency_code_b=int(payload["currencyCodeB"]),
            date=int(payload.get("date") or 0),
            rate_buy=_optional_decimal(payload.get("rateBuy")),
            rate_sell=_optional_decimal(payload.get("rateSell")),
            rate_cross=_optional_decimal(payload.get("rateCross")),
        )


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
