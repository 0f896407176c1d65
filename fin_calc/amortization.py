"""Core amortization engine.

This module implements the annuity math shared by every calculator: the
fixed payment for a known term, the duration of a balance under a known
payment (including the perpetuity case where the payment never outpaces the
interest), the remaining balance of a partly repaid loan and a
period-by-period schedule simulation. The lease and refinance engines build
on these primitives rather than re-deriving the formulas.

The primitives raise ``InvalidInputError`` for out-of-range inputs;
``calculate_annuity`` turns that into an empty ``AmortizationResult`` so
callers can render a neutral state.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Tuple

from .data_models import (
    AmortizationResult,
    CalculationStatus,
    DurationResult,
    LoanTerms,
    ScheduleEntry,
    SolveForDuration,
    SolveForPayment,
    YearSummary,
)
from .errors import InvalidInputError
from .utils import INFINITY, ONE, ZERO, Number, safe_divide, to_decimal

logger = logging.getLogger(__name__)

# Simulations never run longer than this many years of periods.
MAX_YEARS = 100

# A positive balance smaller than half a cent after a payment is treated as
# paid off so float-like residue does not produce a phantom extra period.
RESIDUAL_TOLERANCE = Decimal("0.005")


def max_periods_for(periods_per_year: int) -> int:
    return MAX_YEARS * max(1, periods_per_year)


def _check_finite(**values: Decimal) -> None:
    for name, value in values.items():
        if not value.is_finite():
            raise InvalidInputError(f"{name} must be a finite number")


def solve_payment(principal: Number, rate_per_period: Number, total_periods: int) -> Decimal:
    """Return the fixed payment that amortizes ``principal`` over ``total_periods``.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` the periodic rate and ``n`` the
    number of payments. When the rate is zero the payment simplifies to
    ``P / n``.
    """
    principal = to_decimal(principal)
    rate = to_decimal(rate_per_period)
    _check_finite(principal=principal, rate_per_period=rate)
    if principal <= 0:
        raise InvalidInputError("Principal must be positive")
    if total_periods <= 0:
        raise InvalidInputError("Term must be positive")
    if rate < 0:
        raise InvalidInputError("Rate must not be negative")
    if rate == 0:
        return principal / Decimal(total_periods)
    factor = (ONE + rate) ** total_periods
    return principal * (rate * factor) / (factor - ONE)


def solve_duration(principal: Number, rate_per_period: Number, payment: Number) -> DurationResult:
    """Return how many periods ``payment`` takes to exhaust ``principal``.

    If the first period's interest is at least the payment (``P * r >= payment``)
    the balance never shrinks: the result is a perpetuity with infinite
    periods and ``depleted`` False. The boundary case ``payment == P * r``
    is a perpetuity too.
    """
    principal = to_decimal(principal)
    rate = to_decimal(rate_per_period)
    payment = to_decimal(payment)
    _check_finite(principal=principal, rate_per_period=rate, payment=payment)
    if principal <= 0:
        raise InvalidInputError("Principal must be positive")
    if payment <= 0:
        raise InvalidInputError("Payment must be positive")
    if rate < 0:
        raise InvalidInputError("Rate must not be negative")
    if rate == 0:
        return DurationResult(periods=principal / payment, depleted=True)

    ratio = principal * rate / payment
    if ratio >= ONE:
        return DurationResult(periods=INFINITY, depleted=False)
    periods = -(ONE - ratio).ln() / (ONE + rate).ln()
    return DurationResult(periods=periods, depleted=True)


def solve_remaining_balance(
    original_principal: Number,
    rate_per_period: Number,
    total_periods: int,
    periods_elapsed: int,
) -> Decimal:
    """Return the balance left after ``periods_elapsed`` scheduled payments.

        balance = P * ((1 + r)^n - (1 + r)^p) / ((1 + r)^n - 1)

    and ``P - (P / n) * p`` at a zero rate.
    """
    principal = to_decimal(original_principal)
    rate = to_decimal(rate_per_period)
    _check_finite(original_principal=principal, rate_per_period=rate)
    if principal <= 0:
        raise InvalidInputError("Principal must be positive")
    if total_periods <= 0:
        raise InvalidInputError("Term must be positive")
    if periods_elapsed < 0:
        raise InvalidInputError("Elapsed periods must not be negative")
    if rate < 0:
        raise InvalidInputError("Rate must not be negative")
    if periods_elapsed >= total_periods:
        return ZERO
    if rate == 0:
        return principal - (principal / Decimal(total_periods)) * Decimal(periods_elapsed)
    growth_n = (ONE + rate) ** total_periods
    growth_p = (ONE + rate) ** periods_elapsed
    return principal * (growth_n - growth_p) / (growth_n - ONE)


def simulate_schedule(
    principal: Number,
    rate_per_period: Number,
    payment: Number,
    max_periods: int,
    settle_final: bool = False,
) -> Tuple[Tuple[ScheduleEntry, ...], bool]:
    """Simulate the balance period by period.

    Each period accrues ``balance * r`` of interest and applies ``payment``.
    The period in which the balance would reach zero (or leave less than half
    a cent) is settled exactly: its payment becomes ``balance + interest`` and
    the ending balance is zero. With ``settle_final`` the last allowed period
    is always settled, which is how fixed-length payouts absorb compounding
    residue.

    Returns
    -------
    schedule: tuple of ScheduleEntry
        One entry per simulated period.
    depleted: bool
        Whether the balance reached zero within ``max_periods``.
    """
    balance = to_decimal(principal)
    rate = to_decimal(rate_per_period)
    payment = to_decimal(payment)
    schedule: List[ScheduleEntry] = []
    depleted = False

    period = 1
    while balance > 0 and period <= max_periods:
        interest = balance * rate
        owed = balance + interest
        period_payment = payment
        ending_balance = owed - payment

        last_period = settle_final and period == max_periods
        if ending_balance < RESIDUAL_TOLERANCE or last_period:
            # Adjust the last payment to bring the balance exactly to zero
            period_payment = owed
            ending_balance = ZERO
            depleted = True

        schedule.append(
            ScheduleEntry(
                period=period,
                beginning_balance=balance,
                payment=period_payment,
                interest=interest,
                principal_paid=period_payment - interest,
                ending_balance=ending_balance,
            )
        )
        balance = ending_balance
        period += 1

    if not depleted and balance > 0:
        logger.warning(
            "Schedule stopped at the %d period cap with %s still outstanding", max_periods, balance
        )
    return tuple(schedule), depleted


def summarize_by_year(schedule: Tuple[ScheduleEntry, ...], periods_per_year: int) -> Tuple[YearSummary, ...]:
    """Roll a periodic schedule up into calendar-free years of ``periods_per_year`` periods."""
    per_year = max(1, periods_per_year)
    years: List[YearSummary] = []
    for start in range(0, len(schedule), per_year):
        chunk = schedule[start : start + per_year]
        years.append(
            YearSummary(
                year=start // per_year + 1,
                beginning_balance=chunk[0].beginning_balance,
                payments=sum((e.payment for e in chunk), ZERO),
                interest=sum((e.interest for e in chunk), ZERO),
                ending_balance=chunk[-1].ending_balance,
            )
        )
    return tuple(years)


def _result_from_schedule(
    principal: Decimal,
    payment: Decimal,
    total_periods: Decimal,
    schedule: Tuple[ScheduleEntry, ...],
    depleted: bool,
) -> AmortizationResult:
    total_paid = sum((e.payment for e in schedule), ZERO)
    # Payments minus interest telescope to the principal once the balance is zero
    total_interest = total_paid - principal if depleted else sum((e.interest for e in schedule), ZERO)
    return AmortizationResult(
        status=CalculationStatus.OK,
        payment=payment,
        total_periods=total_periods,
        total_paid=total_paid,
        total_interest=total_interest,
        principal_share=safe_divide(principal, total_paid),
        interest_share=safe_divide(total_interest, total_paid),
        depleted=depleted,
        schedule=schedule,
    )


def calculate_annuity(terms: LoanTerms) -> AmortizationResult:
    """Solve ``terms`` for its unknown and build the payout schedule.

    ``SolveForPayment`` derives the fixed payment for the term;
    ``SolveForDuration`` derives how long the fixed payment lasts. Invalid
    inputs produce ``AmortizationResult.empty()`` and a payment that never
    outpaces the interest produces ``AmortizationResult.perpetuity()``.
    """
    if terms.periods_per_year <= 0:
        logger.debug("Empty annuity result: periods_per_year=%s", terms.periods_per_year)
        return AmortizationResult.empty()
    rate = terms.rate_per_period
    try:
        if isinstance(terms.solve, SolveForPayment):
            total_periods = terms.solve.total_periods
            if total_periods > max_periods_for(terms.periods_per_year):
                raise InvalidInputError(f"Term of {total_periods} periods exceeds {MAX_YEARS} years")
            payment = solve_payment(terms.principal, rate, total_periods)
            schedule, depleted = simulate_schedule(
                terms.principal, rate, payment, total_periods, settle_final=True
            )
            return _result_from_schedule(terms.principal, payment, Decimal(total_periods), schedule, depleted)

        if isinstance(terms.solve, SolveForDuration):
            payment = terms.solve.payment
            duration = solve_duration(terms.principal, rate, payment)
            if duration.is_perpetuity:
                logger.debug("Payment %s never exceeds interest on %s", payment, terms.principal)
                return AmortizationResult.perpetuity(payment)
            schedule, depleted = simulate_schedule(
                terms.principal, rate, payment, max_periods_for(terms.periods_per_year)
            )
            return _result_from_schedule(terms.principal, payment, duration.periods, schedule, depleted)
    except InvalidInputError as exc:
        logger.debug("Empty annuity result: %s", exc)
        return AmortizationResult.empty()

    raise TypeError(f"Unsupported solve mode: {terms.solve!r}")
