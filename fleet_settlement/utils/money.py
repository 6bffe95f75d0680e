# fleet_settlement/utils/money.py
"""Decimal helpers for currency and quantity columns."""

from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """NULL-safe conversion of a DB/number value to Decimal (None → 0)."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(amount: Decimal) -> Decimal:
    """Round to 2 decimal places for currency."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def as_float(value) -> float:
    """For JSON payloads; alert evidence is stored as plain numbers."""
    return float(to_decimal(value))
