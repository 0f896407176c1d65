"""Exception types raised by the calculation core."""

from __future__ import annotations


class FinCalcError(ValueError):
    """Base class for calculator errors."""


class InvalidInputError(FinCalcError):
    """An input is outside the range a calculation accepts.

    Raised by the low-level solvers. The record-level entry points
    (``calculate_annuity``, ``calculate_lease``, ``compare_refinance``...)
    catch it and return an empty result instead.
    """


class BracketTableError(FinCalcError):
    """A tax bracket table is not a contiguous sequence starting at zero."""
