"""Categorization rule management."""

from typing import Optional

from walletsync.database.base import Database
from walletsync.domain.categorization import CategorizationEngine
from walletsync.domain.entities import Rule, RuleType
from walletsync.domain.errors import (
    NotFoundError,
    ValidationError,
    category_not_found,
    invalid_rule_pattern,
    rule_not_found,
    sub_category_mismatch,
    sub_category_not_found,
)


class RuleService:
    """Service for managing categorization rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db
        self.engine = CategorizationEngine(db)

    def create_rule(
        self,
        name: str,
        rule_type: RuleType | str,
        match_value: str,
        category_id: int,
        sub_category_id: Optional[int] = None,
        priority: int = 10,
        is_active: bool = True,
    ) -> int:
        """Create a rule after validating its pattern and target.

        Args:
            name: Display name
            rule_type: Match strategy
            match_value: Pattern (MCC code, text, or amount/range)
            category_id: Category to assign on match
            sub_category_id: Optional sub-category to assign on match
            priority: Lower runs first
            is_active: Whether the rule takes part in matching

        Returns:
            Rule ID

        Raises:
            ValidationError: If the pattern is malformed or the name is blank
            NotFoundError: If the category or sub-category doesn't exist
        """
        rule_type = self._coerce_type(rule_type)
        match_value = match_value.strip()
        if not name.strip():
            raise ValidationError("Rule name must not be empty")
        if not self.engine.validate_rule(rule_type, match_value):
            raise ValidationError(invalid_rule_pattern(rule_type.value, match_value))
        self._check_target(category_id, sub_category_id)

        return self.db.create_rule(
            name=name.strip(),
            rule_type=rule_type.value,
            match_value=match_value,
            category_id=category_id,
            sub_category_id=sub_category_id,
            priority=priority,
            is_active=is_active,
        )

    def get_rule(self, rule_id: int) -> Optional[Rule]:
        """Get rule by ID."""
        return self.db.get_rule(rule_id)

    def list_rules(self, active_only: bool = False) -> list[Rule]:
        """List rules in evaluation order."""
        return self.db.list_rules(active_only=active_only)

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
        """Update a rule. Only provided fields are changed.

        Raises:
            NotFoundError: If the rule, category or sub-category doesn't exist
            ValidationError: If the new pattern is malformed
        """
        rule = self._require_rule(rule_id)

        if match_value is not None:
            match_value = match_value.strip()
            if not self.engine.validate_rule(rule.rule_type, match_value):
                raise ValidationError(invalid_rule_pattern(rule.rule_type.value, match_value))

        target_category = category_id if category_id is not None else rule.category_id
        if clear_sub_category:
            target_sub_category = None
        elif sub_category_id is not None:
            target_sub_category = sub_category_id
        elif category_id is not None and category_id != rule.category_id:
            # Moving to another category drops the old sub-category
            target_sub_category = None
            clear_sub_category = True
        else:
            target_sub_category = rule.sub_category_id
        self._check_target(target_category, target_sub_category)

        self.db.update_rule(
            rule_id,
            name=name,
            match_value=match_value,
            category_id=category_id,
            sub_category_id=sub_category_id,
            priority=priority,
            clear_sub_category=clear_sub_category,
        )

    def set_active(self, rule_id: int, is_active: bool) -> None:
        """Enable or disable a rule."""
        self._require_rule(rule_id)
        self.db.set_rule_active(rule_id, is_active)

    def toggle_rule(self, rule_id: int) -> bool:
        """Flip a rule's active flag. Returns the new state."""
        rule = self._require_rule(rule_id)
        self.db.set_rule_active(rule_id, not rule.is_active)
        return not rule.is_active

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule; transactions it categorized become uncategorized."""
        self._require_rule(rule_id)
        self.db.delete_rule(rule_id)

    def reorder_rules(self, rule_ids: list[int], start: int = 10, step: int = 10) -> None:
        """Assign ascending priorities following the given order.

        Rules not listed keep their priority.

        Raises:
            NotFoundError: If any rule doesn't exist
        """
        for rule_id in rule_ids:
            self._require_rule(rule_id)
        with self.db.batch():
            for index, rule_id in enumerate(rule_ids):
                self.db.update_rule(rule_id, priority=start + index * step)

    def _require_rule(self, rule_id: int) -> Rule:
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def _check_target(self, category_id: int, sub_category_id: Optional[int]) -> None:
        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        if sub_category_id is None:
            return
        sub_category = self.db.get_sub_category(sub_category_id)
        if sub_category is None:
            raise NotFoundError(sub_category_not_found(sub_category_id))
        if sub_category.category_id != category_id:
            raise ValidationError(sub_category_mismatch(sub_category_id, category_id))

    @staticmethod
    def _coerce_type(rule_type: RuleType | str) -> RuleType:
        try:
            return RuleType(rule_type)
        except ValueError:
            raise ValidationError(f"Unknown rule type '{rule_type}'")
