"""Currency rate resolution and storage."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from walletsync.config import DEFAULT_POLICY, SyncPolicy
from walletsync.database.base import Database
from walletsync.domain.entities import ExchangeRate
from walletsync.domain.errors import ValidationError
from walletsync.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateQuote:
    """A rate observation ready to be stored."""

    from_currency: str
    to_currency: str
    rate: Decimal
    buy_rate: Optional[Decimal] = None
    sell_rate: Optional[Decimal] = None


class CurrencyRateResolver:
    """Resolves exchange rates from the persisted rate table.

    A stored rate is usable while it is no older than the staleness window
    (24 hours by default, boundary inclusive). Rates are kept for the longer
    retention window so that ``cleanup_old_rates`` can prune them.
    """

    def __init__(self, db: Database, policy: SyncPolicy = DEFAULT_POLICY, clock: Clock = utcnow):
        """Initialize currency rate resolver.

        Args:
            db: Database instance
            policy: Staleness/retention windows and the pivot currency
            clock: Source of the current time

        Raises:
            ValueError: If the staleness window is not shorter than retention
        """
        if policy.rate_staleness >= policy.rate_retention:
            raise ValueError("Rate staleness window must be shorter than the retention window")
        self.db = db
        self.policy = policy
        self.clock = clock

    def get_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Get the rate that converts ``from_currency`` into ``to_currency``.

        Tries, in order: identity, a fresh direct rate, the reciprocal of a
        fresh inverse rate, and two hops through the pivot currency where each
        hop may itself be direct or inverse.

        Args:
            from_currency: Source currency code (e.g., "USD")
            to_currency: Target currency code (e.g., "UAH")

        Returns:
            Rate, or None if it cannot be resolved from fresh data
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return Decimal(1)

        since = self.clock() - self.policy.rate_staleness

        rate = self._single_hop(from_currency, to_currency, since)
        if rate is not None:
            return rate

        pivot = self.policy.pivot_currency
        if pivot in (from_currency, to_currency):
            return None

        to_pivot = self._single_hop(from_currency, pivot, since)
        if to_pivot is None:
            return None
        from_pivot = self._single_hop(pivot, to_currency, since)
        if from_pivot is None:
            return None
        return to_pivot * from_pivot

    def _single_hop(self, from_currency: str, to_currency: str, since) -> Optional[Decimal]:
        direct = self.db.get_latest_rate(from_currency, to_currency, since)
        if direct is not None and direct.rate > 0:
            return direct.rate

        inverse = self.db.get_latest_rate(to_currency, from_currency, since)
        if inverse is not None and inverse.rate > 0:
            return Decimal(1) / inverse.rate

        return None

    def convert(
        self, amount: Decimal, from_currency: str, to_currency: str
    ) -> Optional[Decimal]:
        """Convert an amount, or return None if no rate resolves."""
        rate = self.get_rate(from_currency, to_currency)
        if rate is None:
            return None
        return amount * rate

    def save_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        buy_rate: Optional[Decimal] = None,
        sell_rate: Optional[Decimal] = None,
        source: Optional[str] = None,
    ) -> int:
        """Store a rate, replacing the previous one from the same source.

        Args:
            from_currency: Source currency code
            to_currency: Target currency code
            rate: Effective rate (must be positive)
            buy_rate: Optional bank buy rate
            sell_rate: Optional bank sell rate
            source: Source tag (defaults to the configured rate source)

        Returns:
            Rate ID

        Raises:
            ValidationError: If the codes are blank or the rate is not positive
        """
        from_currency = from_currency.strip().upper()
        to_currency = to_currency.strip().upper()
        if not from_currency or not to_currency:
            raise ValidationError("Currency codes must not be empty")
        if from_currency == to_currency:
            raise ValidationError(f"Cannot store a rate from {from_currency} to itself")
        if rate <= 0:
            raise ValidationError(f"Rate for {from_currency}/{to_currency} must be positive")

        return self.db.upsert_exchange_rate(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            source=source or self.policy.rate_source,
            fetched_at=self.clock(),
            buy_rate=buy_rate,
            sell_rate=sell_rate,
        )

    def save_rates(self, quotes: Iterable[RateQuote], source: Optional[str] = None) -> int:
        """Store several rates in one commit. Returns the number stored."""
        count = 0
        with self.db.batch():
            for quote in quotes:
                self.save_rate(
                    quote.from_currency,
                    quote.to_currency,
                    quote.rate,
                    buy_rate=quote.buy_rate,
                    sell_rate=quote.sell_rate,
                    source=source,
                )
                count += 1
        return count

    def cleanup_old_rates(self) -> int:
        """Delete rates older than the retention window. Returns number deleted."""
        cutoff = self.clock() - self.policy.rate_retention
        deleted = self.db.delete_rates_older_than(cutoff)
        if deleted:
            logger.info("Deleted %d exchange rates fetched before %s", deleted, cutoff.isoformat())
        return deleted

    def available_currencies(self) -> list[str]:
        """Sorted currency codes that appear in stored rates."""
        codes = set()
        for rate in self.db.list_exchange_rates():
            codes.add(rate.from_currency)
            codes.add(rate.to_currency)
        return sorted(codes)

    def list_rates(self) -> list[ExchangeRate]:
        """All stored rates, stale ones included."""
        return self.db.list_exchange_rates()

    def is_fresh(self, rate: ExchangeRate) -> bool:
        """True if the rate is still inside the staleness window."""
        return self.clock() - rate.fetched_at <= self.policy.rate_staleness
