"""Category domain service."""

import logging
from typing import Optional

from walletsync.database.base import Database
from walletsync.domain.entities import Category, CategoryType, RuleType, SubCategory
from walletsync.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_name_not_found,
    category_not_found,
)

logger = logging.getLogger(__name__)

# (name, MCC codes routed to it by default)
DEFAULT_EXPENSE_CATEGORIES: list[tuple[str, list[str]]] = [
    ("Groceries", ["5411", "5422", "5441", "5451", "5462"]),
    ("Restaurants", ["5812", "5813", "5814"]),
    ("Transport", ["4111", "4121", "4131", "5541", "5542"]),
    ("Entertainment", ["7832", "7841", "7911", "7922", "7929", "7932", "7933", "7941"]),
    ("Shopping", ["5311", "5611", "5621", "5631", "5641", "5651", "5661", "5691", "5699"]),
    (
        "Health",
        ["5912", "8011", "8021", "8031", "8041", "8042", "8043", "8049", "8050", "8062", "8071"],
    ),
    ("Bills & Utilities", ["4814", "4816", "4899", "4900"]),
    ("Education", ["8211", "8220", "8241", "8244", "8249", "8299"]),
    ("Travel", ["4511", "4722", "7011", "7012"]),
    ("ATM", ["6010", "6011"]),
    ("Subscriptions", []),
    ("Transfers", []),
    ("Other", []),
]

DEFAULT_INCOME_CATEGORIES = [
    "Salary",
    "Freelance",
    "Investments",
    "Gifts",
    "Refunds",
    "Other Income",
]

SUBSCRIPTION_PATTERNS = [
    "Netflix",
    "Spotify",
    "YouTube",
    "Apple",
    "Google",
    "Amazon Prime",
    "Disney+",
    "HBO",
    "Hulu",
    "iCloud",
]

MCC_RULE_PRIORITY = 10
SUBSCRIPTION_RULE_PRIORITY = 20


class CategoryService:
    """Service for managing categories and sub-categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self, name: str, category_type: CategoryType | str = CategoryType.EXPENSE
    ) -> int:
        """Create a category.

        Args:
            name: Category name (unique)
            category_type: expense or income

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is blank or the type is unknown
            ConflictError: If a category with that name exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Category name must not be empty")
        try:
            category_type = CategoryType(category_type)
        except ValueError:
            raise ValidationError(f"Unknown category type '{category_type}'")
        if self.db.get_category_by_name(name) is not None:
            raise ConflictError(f"Category '{name}' already exists")

        return self.db.create_category(name=name, category_type=category_type.value)

    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Get category by name."""
        return self.db.get_category_by_name(name)

    def list_categories(
        self, category_type: Optional[CategoryType | str] = None
    ) -> list[Category]:
        """List categories, optionally of one type."""
        if category_type is not None:
            category_type = CategoryType(category_type).value
        return self.db.list_categories(category_type=category_type)

    def create_sub_category(self, name: str, category_name: str) -> int:
        """Create a sub-category under a category given by name.

        Raises:
            NotFoundError: If the parent category doesn't exist
            ConflictError: If the parent already has a sub-category with that name
        """
        name = name.strip()
        if not name:
            raise ValidationError("Sub-category name must not be empty")
        category = self.db.get_category_by_name(category_name)
        if category is None:
            raise NotFoundError(category_name_not_found(category_name))
        if any(s.name == name for s in self.db.list_sub_categories(category.id)):
            raise ConflictError(f"Sub-category '{name}' already exists in '{category.name}'")

        return self.db.create_sub_category(name=name, category_id=category.id)

    def list_sub_categories(self, category_id: int) -> list[SubCategory]:
        """List sub-categories of one category."""
        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        return self.db.list_sub_categories(category_id)

    def seed_defaults(self) -> int:
        """Create default categories and their starter rules.

        Expense categories get one MCC rule per code (priority 10) and the
        Subscriptions category gets description rules for common services
        (priority 20). Does nothing if default categories already exist;
        names already taken by user categories are skipped.

        Returns:
            Number of categories created
        """
        if any(c.is_default for c in self.db.list_categories()):
            return 0

        created = 0
        with self.db.batch():
            for name, mcc_codes in DEFAULT_EXPENSE_CATEGORIES:
                if self.db.get_category_by_name(name) is not None:
                    continue
                category_id = self.db.create_category(
                    name=name, category_type=CategoryType.EXPENSE.value, is_default=True
                )
                created += 1
                for mcc in mcc_codes:
                    self.db.create_rule(
                        name=f"Auto: {name} (MCC {mcc})",
                        rule_type=RuleType.MCC.value,
                        match_value=mcc,
                        category_id=category_id,
                        priority=MCC_RULE_PRIORITY,
                    )
                if name == "Subscriptions":
                    for pattern in SUBSCRIPTION_PATTERNS:
                        self.db.create_rule(
                            name=f"Description: {pattern}",
                            rule_type=RuleType.DESCRIPTION.value,
                            match_value=pattern,
                            category_id=category_id,
                            priority=SUBSCRIPTION_RULE_PRIORITY,
                        )

            for name in DEFAULT_INCOME_CATEGORIES:
                if self.db.get_category_by_name(name) is not None:
                    continue
                self.db.create_category(
                    name=name, category_type=CategoryType.INCOME.value, is_default=True
                )
                created += 1

        logger.info("Seeded %d default categories", created)
        return created
