"""Utility functions for the financial calculators.

This module provides helpers for turning user input into ``Decimal`` values
and a handful of guarded arithmetic helpers shared by the engines. All money
and rate arithmetic in the package runs on ``Decimal`` so that repeated
calculations over the same inputs produce identical results.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
INFINITY = Decimal("Infinity")


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace and handles
    both integer and float-like strings. It raises ``ValueError`` if
    conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Number) -> Decimal:
    """Coerce ``value`` to ``Decimal``.

    Floats go through ``str`` first so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    return decimal_from_str(value)


def non_negative(value: Number) -> Decimal:
    """Return ``value`` as a ``Decimal``, treating negatives and non-finite values as zero."""
    amount = to_decimal(value)
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero instead of raising when ``denominator`` is zero."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    return max(lower, min(upper, value))


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = ONE
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    return decimal_from_str(value) * factor


def parse_percent(value: str) -> Decimal:
    """Parse a percentage string ("6" or "6%") into a decimal fraction.

    The number is always a percentage, so "0.5" means half a percent.
    """
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    return decimal_from_str(value) / HUNDRED
