"""Federal tax reference data used by the tax engine (2025 figures)."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Final, List, Optional, Tuple

from .data_models import BracketTable, FilingStatus

TAX_YEAR: Final[int] = 2025

# Brackets are (upper_bound, marginal_rate). Upper bound None means unbounded.
ORDINARY_BRACKET_PAIRS: Final[Dict[FilingStatus, List[Tuple[Optional[Decimal], Decimal]]]] = {
    FilingStatus.SINGLE: [
        (Decimal("11600"), Decimal("0.10")),
        (Decimal("47150"), Decimal("0.12")),
        (Decimal("100525"), Decimal("0.22")),
        (Decimal("191950"), Decimal("0.24")),
        (Decimal("243725"), Decimal("0.32")),
        (Decimal("609350"), Decimal("0.35")),
        (None, Decimal("0.37")),
    ],
    FilingStatus.MARRIED: [
        (Decimal("23200"), Decimal("0.10")),
        (Decimal("94300"), Decimal("0.12")),
        (Decimal("201050"), Decimal("0.22")),
        (Decimal("383900"), Decimal("0.24")),
        (Decimal("487450"), Decimal("0.32")),
        (Decimal("731200"), Decimal("0.35")),
        (None, Decimal("0.37")),
    ],
}

# Long-term gains and qualified dividends. The bracket is picked by ordinary
# taxable income plus preferential income, upper bounds inclusive.
PREFERENTIAL_BRACKET_PAIRS: Final[Dict[FilingStatus, List[Tuple[Optional[Decimal], Decimal]]]] = {
    FilingStatus.SINGLE: [
        (Decimal("47025"), Decimal("0.00")),
        (Decimal("518900"), Decimal("0.15")),
        (None, Decimal("0.20")),
    ],
    FilingStatus.MARRIED: [
        (Decimal("94050"), Decimal("0.00")),
        (Decimal("583750"), Decimal("0.15")),
        (None, Decimal("0.20")),
    ],
}

ORDINARY_BRACKETS: Final[Dict[FilingStatus, BracketTable]] = {
    status: BracketTable.from_pairs(pairs) for status, pairs in ORDINARY_BRACKET_PAIRS.items()
}

PREFERENTIAL_BRACKETS: Final[Dict[FilingStatus, BracketTable]] = {
    status: BracketTable.from_pairs(pairs) for status, pairs in PREFERENTIAL_BRACKET_PAIRS.items()
}

STANDARD_DEDUCTIONS: Final[Dict[FilingStatus, Decimal]] = {
    FilingStatus.SINGLE: Decimal("14600"),
    FilingStatus.MARRIED: Decimal("29200"),
}

# Caps apply per return, so a joint return caps the couple's combined total.
STUDENT_LOAN_INTEREST_CAP: Final[Decimal] = Decimal("2500")
CHILD_CARE_CAP: Final[Decimal] = Decimal("3000")
EDUCATION_CAP: Final[Decimal] = Decimal("4000")

# Flat combined Social Security + Medicare rate on self-employment salary.
SELF_EMPLOYMENT_TAX_RATE: Final[Decimal] = Decimal("0.153")
