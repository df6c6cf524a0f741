"""Rule-based transaction categorization."""

import logging
import re
from datetime import timedelta
from typing import Callable, Iterable, Optional

from walletsync.database.base import Database
from walletsync.domain.entities import Rule, RuleType, Transaction
from walletsync.utils.amount_parser import parse_amount_pattern
from walletsync.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

STATISTICS_WINDOW = timedelta(days=30)


def _matches_mcc(transaction: Transaction, pattern: str) -> bool:
    if transaction.mcc is None:
        return False
    return str(transaction.mcc) == pattern.strip()


def _matches_description(transaction: Transaction, pattern: str) -> bool:
    return pattern.casefold() in transaction.description.casefold()


def _matches_description_exact(transaction: Transaction, pattern: str) -> bool:
    return transaction.description.casefold() == pattern.casefold()


def _matches_amount(transaction: Transaction, pattern: str) -> bool:
    try:
        low, high = parse_amount_pattern(pattern)
    except ValueError:
        return False
    amount = transaction.absolute_amount
    if high is None:
        return amount == low
    return low <= amount <= high


MATCHERS: dict[RuleType, Callable[[Transaction, str], bool]] = {
    RuleType.MCC: _matches_mcc,
    RuleType.DESCRIPTION: _matches_description,
    RuleType.DESCRIPTION_EXACT: _matches_description_exact,
    RuleType.AMOUNT: _matches_amount,
}


def rule_matches(rule: Rule, transaction: Transaction) -> bool:
    """Check a single rule against a transaction, ignoring its active flag."""
    return MATCHERS[rule.rule_type](transaction, rule.match_value)


class CategorizationEngine:
    """Assigns categories to transactions from the prioritized rule set.

    Active rules are tried in ascending priority, ties broken by creation
    order; the first match wins. Transactions whose category was set by hand
    (category present, no attributing rule) are never touched.
    """

    def __init__(self, db: Database, clock: Clock = utcnow):
        """Initialize categorization engine.

        Args:
            db: Database instance
            clock: Source of the current time (used by rule statistics)
        """
        self.db = db
        self.clock = clock

    def apply_rules(self, transaction: Transaction, rules: Optional[list[Rule]] = None) -> bool:
        """Categorize one transaction.

        Args:
            transaction: Transaction to categorize
            rules: Active rules in evaluation order (loaded if not given)

        Returns:
            True if a rule matched and the stored categorization changed
        """
        if transaction.is_manually_categorized:
            return False

        if rules is None:
            rules = self.db.list_rules(active_only=True)

        for rule in rules:
            if not rule_matches(rule, transaction):
                continue
            if (
                transaction.category_id == rule.category_id
                and transaction.sub_category_id == rule.sub_category_id
                and transaction.rule_id == rule.id
            ):
                return False
            self.db.set_transaction_categorization(
                transaction.id, rule.category_id, rule.sub_category_id, rule.id
            )
            return True

        return False

    def apply_rules_to(self, transactions: Iterable[Transaction]) -> int:
        """Categorize several transactions in one commit.

        Returns:
            Number of transactions whose categorization changed
        """
        rules = self.db.list_rules(active_only=True)
        if not rules:
            return 0

        changed = 0
        with self.db.batch():
            for transaction in transactions:
                if self.apply_rules(transaction, rules):
                    changed += 1

        if changed:
            logger.info("Rules categorized %d transactions", changed)
        return changed

    def apply_rules_to_uncategorized(self, wallet_id: Optional[int] = None) -> int:
        """Categorize every transaction that has no category yet."""
        transactions = self.db.list_transactions(wallet_id=wallet_id, uncategorized_only=True)
        return self.apply_rules_to(transactions)

    def reapply_all_rules(self) -> int:
        """Clear all rule-made categorizations, then run rules over everything.

        Manual categorizations are kept.

        Returns:
            Number of transactions categorized by rules afterwards
        """
        with self.db.batch():
            for transaction in self.db.list_transactions(rule_attributed_only=True):
                self.db.set_transaction_categorization(transaction.id, None, None, None)

        return self.apply_rules_to(self.db.list_transactions())

    def validate_rule(self, rule_type: RuleType, pattern: str) -> bool:
        """Check whether a pattern is well formed for its rule type.

        MCC patterns are exactly four digits; description patterns must not
        be blank; amount patterns are a number or a "min-max" range with
        min < max.
        """
        rule_type = RuleType(rule_type)
        if rule_type == RuleType.MCC:
            return re.fullmatch(r"[0-9]{4}", pattern) is not None

        if rule_type in (RuleType.DESCRIPTION, RuleType.DESCRIPTION_EXACT):
            return pattern.strip() != ""

        try:
            low, high = parse_amount_pattern(pattern)
        except ValueError:
            return False
        return high is None or low < high

    def get_rule_statistics(self, rule_id: int) -> tuple[int, int]:
        """Return (total, last 30 days) counts of transactions attributed to a rule."""
        transactions = self.db.list_transactions(rule_id=rule_id)
        since = self.clock() - STATISTICS_WINDOW
        recent = sum(1 for t in transactions if t.occurred_at >= since)
        return len(transactions), recent

    def get_matching_transactions(self, rule: Rule, limit: int = 10) -> list[Transaction]:
        """Preview which transactions a rule would match, newest first."""
        matching = []
        for transaction in self.db.list_transactions():
            if rule_matches(rule, transaction):
                matching.append(transaction)
                if len(matching) >= limit:
                    break
        return matching
