"""Budget aggregation.

Income and expense items may be entered per month, year, week or two-week
period. Everything is normalized to a monthly figure before it is summed, so
the ratios below are always monthly amounts over net monthly income.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, Union

from .data_models import BudgetCategory, BudgetInputs, BudgetItem, BudgetResult, PeriodUnit
from .utils import ONE, ZERO, Number, clamp, non_negative, safe_divide

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = Decimal(12)

# How many times per year an amount entered per unit occurs.
OCCURRENCES_PER_YEAR: Dict[PeriodUnit, Decimal] = {
    PeriodUnit.MONTH: MONTHS_PER_YEAR,
    PeriodUnit.YEAR: ONE,
    PeriodUnit.WEEK: Decimal(52),
    PeriodUnit.BIWEEKLY: Decimal(26),
}

# 50/30/20 rule applied to net monthly income.
NEEDS_SHARE = Decimal("0.50")
WANTS_SHARE = Decimal("0.30")
SAVINGS_SHARE = Decimal("0.20")

# Living and transportation costs are split between needs and wants.
LIVING_NEEDS_SHARE = Decimal("0.7")
TRANSPORTATION_NEEDS_SHARE = Decimal("0.8")


def _resolve_unit(unit: Union[PeriodUnit, str]) -> PeriodUnit:
    try:
        return PeriodUnit(unit)
    except ValueError:
        logger.debug("Unknown period unit %r, treating as monthly", unit)
        return PeriodUnit.MONTH


def normalize_to_monthly(amount: Number, unit: Union[PeriodUnit, str] = PeriodUnit.MONTH) -> Decimal:
    """Convert ``amount`` per ``unit`` into a monthly amount.

    Negative and non-finite amounts count as zero.
    """
    value = non_negative(amount)
    if value == 0:
        return ZERO
    unit = _resolve_unit(unit)
    if unit == PeriodUnit.MONTH:
        return value
    return value * OCCURRENCES_PER_YEAR[unit] / MONTHS_PER_YEAR


def _monthly_total(items: Iterable[BudgetItem]) -> Decimal:
    return sum((normalize_to_monthly(item.amount, item.unit) for item in items), ZERO)


def aggregate_budget(inputs: BudgetInputs) -> BudgetResult:
    """Summarize income and expenses into a monthly budget.

    Parameters
    ----------
    inputs: BudgetInputs
        Income items, a flat income tax rate (clamped to ``[0, 1]``) and
        expense items grouped by category. Missing categories count as zero.

    Returns
    -------
    BudgetResult
        Monthly and annual totals, ratios against net monthly income and the
        50/30/20 comparison. Every ratio is zero when net income is zero.
    """
    gross_monthly = _monthly_total(inputs.income)
    tax_rate = inputs.income_tax_rate if inputs.income_tax_rate.is_finite() else ZERO
    net_monthly = gross_monthly * (ONE - clamp(tax_rate, ZERO, ONE))

    totals: Dict[BudgetCategory, Decimal] = {
        category: _monthly_total(inputs.expenses.get(category, ())) for category in BudgetCategory
    }
    total_expenses = sum(totals.values(), ZERO)
    surplus = net_monthly - total_expenses

    shares = {category: safe_divide(amount, net_monthly) for category, amount in totals.items()}

    living = totals[BudgetCategory.LIVING]
    transportation = totals[BudgetCategory.TRANSPORTATION]
    actual_needs = (
        totals[BudgetCategory.HOUSING]
        + totals[BudgetCategory.HEALTHCARE]
        + living * LIVING_NEEDS_SHARE
        + transportation * TRANSPORTATION_NEEDS_SHARE
    )
    actual_wants = (
        totals[BudgetCategory.MISCELLANEOUS]
        + totals[BudgetCategory.CHILDREN_EDUCATION]
        + living * (ONE - LIVING_NEEDS_SHARE)
        + transportation * (ONE - TRANSPORTATION_NEEDS_SHARE)
    )

    if surplus < 0:
        logger.debug("Budget runs a monthly deficit of %s", -surplus)

    return BudgetResult(
        gross_monthly_income=gross_monthly,
        gross_annual_income=gross_monthly * MONTHS_PER_YEAR,
        net_monthly_income=net_monthly,
        net_annual_income=net_monthly * MONTHS_PER_YEAR,
        category_totals=totals,
        total_expenses_monthly=total_expenses,
        total_expenses_annual=total_expenses * MONTHS_PER_YEAR,
        surplus_monthly=surplus,
        surplus_annual=surplus * MONTHS_PER_YEAR,
        savings_rate=shares[BudgetCategory.SAVINGS],
        debt_to_income=shares[BudgetCategory.DEBT],
        housing_ratio=shares[BudgetCategory.HOUSING],
        transportation_ratio=shares[BudgetCategory.TRANSPORTATION],
        category_shares=shares,
        recommended_needs=net_monthly * NEEDS_SHARE,
        recommended_wants=net_monthly * WANTS_SHARE,
        recommended_savings=net_monthly * SAVINGS_SHARE,
        actual_needs=actual_needs,
        actual_wants=actual_wants,
        actual_savings=totals[BudgetCategory.SAVINGS],
    )
