"""
Module: inventory_kernel.db.types
Responsibility: Column type constants and currency-code normalization shared
    by models, domain values and services, so that every quantity and unit
    value uses identical precision.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Failure modes:
    - ValueError on a currency code that is not three ASCII letters.
"""

from decimal import Decimal

from sqlalchemy import Numeric, String

# Stock quantity and unit value: 38 digits total, 9 decimal places
QUANTITY_PRECISION = 38
QUANTITY_DECIMAL_PLACES = 9
QUANTITY_INTEGER_DIGITS = QUANTITY_PRECISION - QUANTITY_DECIMAL_PLACES
QuantityColumn = Numeric(QUANTITY_PRECISION, QUANTITY_DECIMAL_PLACES)

# Three-letter currency code (e.g., "MXN", "USD")
CurrencyColumn = String(3)

# Longest reversal reason a voided movement can store
VOID_REASON_LENGTH = 500

ZERO = Decimal("0")


def normalize_currency(currency: str) -> str:
    """
    Normalize a currency code: trimmed, upper-cased, exactly three letters.

    The kernel stores currency as a passthrough label and does no conversion,
    so any three-letter alphabetic code is accepted.

    Raises:
        ValueError: If the code is not three ASCII letters.
    """
    if not isinstance(currency, str):
        raise ValueError(f"Invalid currency code: {currency!r}")
    normalized = currency.strip().upper()
    if len(normalized) != 3 or not normalized.isascii() or not normalized.isalpha():
        raise ValueError(f"Invalid currency code: {currency!r}")
    return normalized
