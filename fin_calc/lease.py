"""Lease payment decomposition.

A lease payment is the sum of a depreciation fee, which spreads the drop
from the net capitalized cost to the residual value evenly over the term, and
a finance fee charged on the *sum* of net capitalized cost and residual (the
money-factor convention, not amortized interest). Sales tax is applied on
top of that base payment.

Two directions are supported: ``solve_fixed_rate_lease`` derives the payment
from a nominal rate and ``solve_effective_rate`` backs the implied rate out
of a known payment. Both produce the same period-indexed schedule.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Tuple

from .amortization import MAX_YEARS, max_periods_for
from .data_models import (
    CalculationStatus,
    FixedPayment,
    FixedRate,
    LeaseResult,
    LeaseScheduleEntry,
    LeaseTerms,
    LeaseYearSummary,
)
from .errors import InvalidInputError
from .utils import ONE, ZERO, safe_divide

logger = logging.getLogger(__name__)


def _validate_terms(terms: LeaseTerms) -> None:
    values = {
        "asset_value": terms.asset_value,
        "residual_value": terms.residual_value,
        "acquisition_fee": terms.acquisition_fee,
        "security_deposit": terms.security_deposit,
        "down_payment": terms.down_payment,
        "sales_tax_rate": terms.sales_tax_rate,
    }
    for name, value in values.items():
        if not value.is_finite():
            raise InvalidInputError(f"{name} must be a finite number")
    if terms.asset_value <= 0:
        raise InvalidInputError("Asset value must be positive")
    if terms.term_periods <= 0 or terms.periods_per_year <= 0:
        raise InvalidInputError("Lease term must be positive")
    if terms.term_periods > max_periods_for(terms.periods_per_year):
        raise InvalidInputError(f"Lease term exceeds {MAX_YEARS} years")
    if terms.residual_value >= terms.asset_value:
        raise InvalidInputError("Residual value must be below the asset value")
    if terms.sales_tax_rate <= -ONE:
        raise InvalidInputError("Sales tax rate must be above -100%")
    if terms.net_cap_cost + terms.residual_value <= 0:
        raise InvalidInputError("Net capitalized cost plus residual must be positive")


def build_lease_schedule(
    term_periods: int,
    depreciation_fee: Decimal,
    finance_fee: Decimal,
    tax_per_period: Decimal,
    net_cap_cost: Decimal,
    residual_value: Decimal,
) -> Tuple[LeaseScheduleEntry, ...]:
    """Return one entry per period with running depreciation and finance totals.

    The remaining value never drops below the residual, even when rounding
    leaves the cumulative depreciation marginally past it.
    """
    schedule: List[LeaseScheduleEntry] = []
    cumulative_depreciation = ZERO
    cumulative_finance = ZERO
    payment = depreciation_fee + finance_fee + tax_per_period
    for period in range(1, term_periods + 1):
        cumulative_depreciation += depreciation_fee
        cumulative_finance += finance_fee
        schedule.append(
            LeaseScheduleEntry(
                period=period,
                depreciation=depreciation_fee,
                finance=finance_fee,
                payment=payment,
                cumulative_depreciation=cumulative_depreciation,
                cumulative_finance=cumulative_finance,
                remaining_value=max(net_cap_cost - cumulative_depreciation, residual_value),
            )
        )
    return tuple(schedule)


def summarize_lease_by_year(
    schedule: Tuple[LeaseScheduleEntry, ...], periods_per_year: int
) -> Tuple[LeaseYearSummary, ...]:
    """Group a lease schedule into years; the final year may be partial."""
    per_year = max(1, periods_per_year)
    years: List[LeaseYearSummary] = []
    for start in range(0, len(schedule), per_year):
        chunk = schedule[start : start + per_year]
        last = chunk[-1]
        years.append(
            LeaseYearSummary(
                year=start // per_year + 1,
                periods=len(chunk),
                depreciation=sum((e.depreciation for e in chunk), ZERO),
                finance=sum((e.finance for e in chunk), ZERO),
                payment=sum((e.payment for e in chunk), ZERO),
                cumulative_depreciation=last.cumulative_depreciation,
                cumulative_finance=last.cumulative_finance,
                remaining_value=last.remaining_value,
            )
        )
    return tuple(years)


def _build_result(
    terms: LeaseTerms,
    payment: Decimal,
    base_payment: Decimal,
    depreciation_fee: Decimal,
    finance_fee: Decimal,
    annual_rate: Decimal,
) -> LeaseResult:
    term = Decimal(terms.term_periods)
    net_cap_cost = terms.net_cap_cost
    total_depreciation = net_cap_cost - terms.residual_value
    total_finance = finance_fee * term
    total_payments = payment * term
    upfront_costs = terms.down_payment
    tax_per_period = payment - base_payment

    depreciation_share = ZERO
    finance_share = ZERO
    if total_depreciation > 0:
        combined = total_depreciation + total_finance
        depreciation_share = safe_divide(total_depreciation, combined)
        finance_share = safe_divide(total_finance, combined)

    return LeaseResult(
        status=CalculationStatus.OK,
        payment=payment,
        base_payment=base_payment,
        tax_per_period=tax_per_period,
        depreciation_fee=depreciation_fee,
        finance_fee=finance_fee,
        annual_rate=annual_rate,
        net_cap_cost=net_cap_cost,
        residual_value=terms.residual_value,
        total_payments=total_payments,
        total_depreciation=total_depreciation,
        total_finance=total_finance,
        upfront_costs=upfront_costs,
        total_cost=total_payments + upfront_costs,
        depreciation_share=depreciation_share,
        finance_share=finance_share,
        schedule=build_lease_schedule(
            terms.term_periods,
            depreciation_fee,
            finance_fee,
            tax_per_period,
            net_cap_cost,
            terms.residual_value,
        ),
    )


def _depreciation_fee(terms: LeaseTerms) -> Decimal:
    return (terms.net_cap_cost - terms.residual_value) / Decimal(terms.term_periods)


def solve_fixed_rate_lease(terms: LeaseTerms) -> LeaseResult:
    """Derive the lease payment from a nominal annual rate.

        finance fee = (net cap cost + residual) * (rate / periods per year)
        payment     = (depreciation fee + finance fee) * (1 + sales tax)
    """
    if not isinstance(terms.solve, FixedRate):
        raise TypeError("solve_fixed_rate_lease requires FixedRate terms")
    try:
        _validate_terms(terms)
        annual_rate = terms.solve.annual_rate
        if not annual_rate.is_finite() or annual_rate < 0:
            raise InvalidInputError("Rate must be a non-negative number")
    except InvalidInputError as exc:
        logger.debug("Empty lease result: %s", exc)
        return LeaseResult.empty()

    depreciation_fee = _depreciation_fee(terms)
    periodic_rate = annual_rate / Decimal(terms.periods_per_year)
    finance_fee = (terms.net_cap_cost + terms.residual_value) * periodic_rate
    base_payment = depreciation_fee + finance_fee
    payment = base_payment * (ONE + terms.sales_tax_rate)
    return _build_result(terms, payment, base_payment, depreciation_fee, finance_fee, annual_rate)


def solve_effective_rate(terms: LeaseTerms) -> LeaseResult:
    """Back the implied annual rate out of a known payment.

    Sales tax is stripped from the payment, the depreciation fee subtracted,
    and the remaining finance fee divided by ``net cap cost + residual``. The
    annualized rate is floored at zero.
    """
    if not isinstance(terms.solve, FixedPayment):
        raise TypeError("solve_effective_rate requires FixedPayment terms")
    try:
        _validate_terms(terms)
        payment = terms.solve.payment
        if not payment.is_finite() or payment <= 0:
            raise InvalidInputError("Payment must be positive")
    except InvalidInputError as exc:
        logger.debug("Empty lease result: %s", exc)
        return LeaseResult.empty()

    base_payment = payment / (ONE + terms.sales_tax_rate)
    depreciation_fee = _depreciation_fee(terms)
    finance_fee = base_payment - depreciation_fee
    periodic_rate = finance_fee / (terms.net_cap_cost + terms.residual_value)
    annual_rate = max(ZERO, periodic_rate * Decimal(terms.periods_per_year))
    return _build_result(terms, payment, base_payment, depreciation_fee, finance_fee, annual_rate)


def calculate_lease(terms: LeaseTerms) -> LeaseResult:
    """Dispatch on the solve mode of ``terms``."""
    if isinstance(terms.solve, FixedRate):
        return solve_fixed_rate_lease(terms)
    if isinstance(terms.solve, FixedPayment):
        return solve_effective_rate(terms)
    raise TypeError(f"Unsupported solve mode: {terms.solve!r}")
