"""Tests for RuleService."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from walletsync.domain.entities import RuleType
from walletsync.domain.errors import NotFoundError, ValidationError


def test_create_rule(rule_service, sample_categories):
    """Test creating a rule with defaults."""
    rule_id = rule_service.create_rule(
        name="Fuel", rule_type="mcc", match_value=" 5541 ", category_id=sample_categories["Cafes"]
    )

    rule = rule_service.get_rule(rule_id)
    assert rule.rule_type == RuleType.MCC
    assert rule.match_value == "5541"
    assert rule.priority == 10
    assert rule.is_active


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rule_type": "mcc", "match_value": "12"},
        {"rule_type": "amount", "match_value": "200-100"},
        {"rule_type": "regex", "match_value": ".*"},
        {"rule_type": "description", "match_value": "x", "name": "  "},
    ],
)
def test_create_rule_rejects_invalid(rule_service, sample_categories, kwargs):
    """Test that malformed rules are refused."""
    kwargs.setdefault("name", "Bad")
    with pytest.raises(ValidationError):
        rule_service.create_rule(category_id=sample_categories["Cafes"], **kwargs)


def test_create_rule_unknown_category(rule_service):
    """Test that a rule must point at an existing category."""
    with pytest.raises(NotFoundError):
        rule_service.create_rule("X", "description", "x", category_id=999)


def test_create_rule_foreign_sub_category(rule_service, sample_categories):
    """Test that the sub-category must belong to the rule's category."""
    with pytest.raises(ValidationError):
        rule_service.create_rule(
            "X",
            "description",
            "x",
            category_id=sample_categories["Cafes"],
            sub_category_id=sample_categories["Groceries > Supermarket"],
        )


def test_list_rules_in_evaluation_order(rule_service, sample_categories):
    """Test ordering by priority then creation."""
    cafes = sample_categories["Cafes"]
    late = rule_service.create_rule("Late", "description", "a", cafes, priority=50)
    first = rule_service.create_rule("First", "description", "b", cafes, priority=5)
    second = rule_service.create_rule("Second", "description", "c", cafes, priority=5)

    assert [r.id for r in rule_service.list_rules()] == [first, second, late]


def test_toggle_rule(rule_service, sample_categories):
    """Test flipping the active flag."""
    rule_id = rule_service.create_rule("A", "description", "a", sample_categories["Cafes"])

    assert rule_service.toggle_rule(rule_id) is False
    assert rule_service.list_rules(active_only=True) == []
    assert rule_service.toggle_rule(rule_id) is True


def test_update_rule_moving_category_drops_sub_category(rule_service, sample_categories):
    """Test that a new category clears the old sub-category."""
    rule_id = rule_service.create_rule(
        "A",
        "description",
        "a",
        sample_categories["Groceries"],
        sub_category_id=sample_categories["Groceries > Supermarket"],
    )

    rule_service.update_rule(rule_id, category_id=sample_categories["Cafes"], priority=3)

    rule = rule_service.get_rule(rule_id)
    assert rule.category_id == sample_categories["Cafes"]
    assert rule.sub_category_id is None
    assert rule.priority == 3


def test_update_rule_validates_pattern(rule_service, sample_categories):
    """Test that an edited pattern is validated against the rule type."""
    rule_id = rule_service.create_rule("A", "mcc", "5411", sample_categories["Groceries"])

    with pytest.raises(ValidationError):
        rule_service.update_rule(rule_id, match_value="grocery")


def test_delete_rule_uncategorizes_transactions(
    temp_db, rule_service, engine, sample_categories, sample_wallet
):
    """Test that deleting a rule clears the categories it assigned."""
    rule_id = rule_service.create_rule("A", "description", "silpo", sample_categories["Groceries"])
    txn_id = temp_db.create_transaction(
        wallet_id=sample_wallet.id,
        amount=Decimal("-10"),
        description="Silpo",
        occurred_at=datetime(2024, 3, 1, tzinfo=UTC),
    )
    engine.apply_rules_to_uncategorized()

    rule_service.delete_rule(rule_id)

    txn = temp_db.get_transaction(txn_id)
    assert txn.category_id is None
    assert txn.rule_id is None
    assert rule_service.get_rule(rule_id) is None


def test_delete_missing_rule(rule_service):
    """Test deleting a rule that does not exist."""
    with pytest.raises(NotFoundError):
        rule_service.delete_rule(42)


def test_reorder_rules(rule_service, sample_categories):
    """Test assigning priorities from an explicit order."""
    cafes = sample_categories["Cafes"]
    a = rule_service.create_rule("A", "description", "a", cafes)
    b = rule_service.create_rule("B", "description", "b", cafes)
    c = rule_service.create_rule("C", "description", "c", cafes)

    rule_service.reorder_rules([c, a, b])

    assert [(r.id, r.priority) for r in rule_service.list_rules()] == [(c, 10), (a, 20), (b, 30)]
