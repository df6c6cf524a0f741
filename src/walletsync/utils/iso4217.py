"""ISO 4217 currency code utilities.

Conversion between numeric and alphabetic currency codes, and between minor
units (as reported by the bank API) and major units.
"""

from decimal import Decimal
from typing import Optional

NUMERIC_TO_ALPHA: dict[int, str] = {
    980: "UAH",
    840: "USD",
    978: "EUR",
    826: "GBP",
    985: "PLN",
    203: "CZK",
    756: "CHF",
    392: "JPY",
    156: "CNY",
    124: "CAD",
    36: "AUD",
    949: "TRY",
    784: "AED",
    643: "RUB",
    975: "BGN",
    946: "RON",
    348: "HUF",
    208: "DKK",
    578: "NOK",
    752: "SEK",
    376: "ILS",
    702: "SGD",
    344: "HKD",
    410: "KRW",
    356: "INR",
    986: "BRL",
    484: "MXN",
    710: "ZAR",
    554: "NZD",
    764: "THB",
    458: "MYR",
    360: "IDR",
    608: "PHP",
    704: "VND",
    682: "SAR",
    818: "EGP",
    414: "KWD",
    634: "QAR",
    512: "OMR",
    48: "BHD",
    400: "JOD",
    144: "LKR",
    50: "BDT",
    586: "PKR",
    566: "NGN",
    404: "KES",
    834: "TZS",
    800: "UGX",
    936: "GHS",
    951: "XCD",
    932: "ZWL",
}

ALPHA_TO_NUMERIC: dict[str, int] = {alpha: numeric for numeric, alpha in NUMERIC_TO_ALPHA.items()}

# Currencies whose exponent differs from the default of 2
_MINOR_UNIT_EXCEPTIONS: dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "IDR": 0,
    "HUF": 0,
    "TZS": 0,
    "UGX": 0,
    "ZWL": 0,
    "KWD": 3,
    "OMR": 3,
    "BHD": 3,
    "JOD": 3,
}

DEFAULT_DECIMAL_PLACES = 2


def alpha_code(numeric_code: int) -> Optional[str]:
    """Return the alphabetic code for a numeric ISO 4217 code, or None if unknown."""
    return NUMERIC_TO_ALPHA.get(numeric_code)


def numeric_code(code: str) -> Optional[int]:
    """Return the numeric code for an alphabetic ISO 4217 code, or None if unknown."""
    return ALPHA_TO_NUMERIC.get(code.upper())


def is_known(code: str) -> bool:
    """Check whether an alphabetic code is in the supported table."""
    return code.upper() in ALPHA_TO_NUMERIC


def decimal_places(code: str) -> int:
    """Number of minor-unit digits for a currency (2 when unknown)."""
    return _MINOR_UNIT_EXCEPTIONS.get(code.upper(), DEFAULT_DECIMAL_PLACES)


def from_minor_units(amount: int, code: str) -> Decimal:
    """Convert an amount in minor units (e.g. kopiykas) to major units.

    Args:
        amount: Integer amount in minor units
        code: Alphabetic currency code

    Returns:
        Decimal amount in major units
    """
    return Decimal(amount).scaleb(-decimal_places(code))


def to_minor_units(amount: Decimal, code: str) -> int:
    """Convert a major-unit amount to integer minor units (truncating)."""
    return int(amount.scaleb(decimal_places(code)))
