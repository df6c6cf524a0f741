"""Utility functions for walletsync."""

from walletsync.utils.date_parser import parse_date
from walletsync.utils.amount_parser import parse_amount, parse_amount_pattern

__all__ = ["parse_date", "parse_amount", "parse_amount_pattern"]
