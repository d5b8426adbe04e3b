"""Cents conversion for invoice lines.

Calculators return un-rounded dollars; this is the single place amounts
are rounded to cents (half up).
"""

from decimal import ROUND_HALF_UP, Decimal


def _half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return _half_up(Decimal(repr(value)))


def to_cents(amount: float) -> int:
    """Dollars -> integer cents (95.625 -> 9563)."""
    return _half_up(Decimal(repr(amount)) * 100)


def from_cents(cents: int) -> float:
    return cents / 100
