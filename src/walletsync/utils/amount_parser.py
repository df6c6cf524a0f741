"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re
from typing import Optional


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "₴123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols
    amount_str = re.sub(r"[$€£¥₴]", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_amount_pattern(pattern: str) -> tuple[Decimal, Optional[Decimal]]:
    """Parse an amount rule pattern.

    A pattern is either a range "min-max" or a single exact amount. Empty
    pieces around the dash are ignored, so "-5" reads as a single number.

    Args:
        pattern: Pattern string, e.g. "100-500" or "99.99"

    Returns:
        (min, max) for a range, or (exact, None) for a single amount

    Raises:
        ValueError: If the pattern cannot be parsed
    """
    parts = [part for part in pattern.split("-") if part]

    if len(parts) == 2:
        return parse_amount(parts[0]), parse_amount(parts[1])

    if len(parts) == 1:
        return parse_amount(pattern), None

    raise ValueError(f"Invalid amount pattern '{pattern}'")
