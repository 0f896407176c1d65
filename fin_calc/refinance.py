"""Refinance analysis: existing loan versus a refinance candidate.

The current loan is resolved first, either from a known payoff balance and
payment or from the original loan terms, and the candidate loan is then sized
on that balance plus any cash-out. Both sides reuse the amortization
primitives, so the payment, duration and remaining-balance formulas live in
one place.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from itertools import zip_longest
from typing import List, Optional, Tuple

from .amortization import (
    max_periods_for,
    simulate_schedule,
    solve_duration,
    solve_payment,
    solve_remaining_balance,
)
from .data_models import (
    CalculationStatus,
    CandidateLoanState,
    CurrentLoanInputs,
    CurrentLoanState,
    KnownBalance,
    NewLoanTerms,
    OriginalLoan,
    RefinanceComparison,
    RefinancePolicy,
    RefinanceScheduleEntry,
    ScheduleEntry,
)
from .errors import InvalidInputError
from .utils import INFINITY, ZERO

logger = logging.getLogger(__name__)


def _periodic_rate(annual_rate: Decimal, periods_per_year: int) -> Decimal:
    if periods_per_year <= 0:
        raise InvalidInputError("Periods per year must be positive")
    return annual_rate / Decimal(periods_per_year)


def resolve_current_loan(current: CurrentLoanInputs) -> CurrentLoanState:
    """Work out the balance, payment and remaining periods of the existing loan.

    With a ``KnownBalance`` the remaining periods are solved from the payment
    and may be ``Infinity`` when the payment never covers the interest. With
    an ``OriginalLoan`` the balance comes from the remaining-balance formula
    and the payment from the original terms.
    """
    rate = _periodic_rate(current.annual_rate, current.periods_per_year)
    source = current.source
    if isinstance(source, KnownBalance):
        balance = source.remaining_balance
        payment = source.payment
        remaining_periods = solve_duration(balance, rate, payment).periods
    elif isinstance(source, OriginalLoan):
        balance = solve_remaining_balance(
            source.original_amount, rate, source.original_term_periods, source.periods_paid
        )
        payment = solve_payment(source.original_amount, rate, source.original_term_periods)
        remaining_periods = Decimal(source.original_term_periods - source.periods_paid)
    else:
        raise TypeError(f"Unsupported current loan source: {source!r}")

    if balance <= 0:
        raise InvalidInputError("Current loan is already paid off")
    if remaining_periods <= 0:
        raise InvalidInputError("Current loan has no remaining periods")

    total_remaining = payment * remaining_periods
    return CurrentLoanState(
        remaining_balance=balance,
        payment=payment,
        remaining_periods=remaining_periods,
        total_remaining_payments=total_remaining,
        total_interest_remaining=total_remaining - balance,
    )


def break_even_periods(upfront_costs: Decimal, monthly_savings: Decimal) -> Decimal:
    """Periods until the payment savings repay the upfront costs.

    ``Infinity`` when there are no savings, zero when there is nothing to
    repay.
    """
    if monthly_savings <= 0:
        return INFINITY
    if upfront_costs == 0:
        return ZERO
    return upfront_costs / monthly_savings


def is_refinance_recommended(
    total_savings: Decimal,
    monthly_savings: Decimal,
    break_even: Decimal,
    term_periods: int,
    policy: RefinancePolicy,
) -> bool:
    """Apply the recommendation heuristic.

    Overall savings are enough on their own. Otherwise the payment must drop
    and the break-even point must be finite, shorter than the policy cap and,
    when the policy asks for it, inside the new term.
    """
    if total_savings > 0:
        return True
    if monthly_savings <= 0 or not break_even.is_finite():
        return False
    if policy.require_break_even_within_term and break_even >= term_periods:
        return False
    return break_even < policy.max_break_even_periods


def _side_by_side(
    current_schedule: Tuple[ScheduleEntry, ...],
    new_schedule: Tuple[ScheduleEntry, ...],
    upfront_costs: Decimal,
) -> Tuple[RefinanceScheduleEntry, ...]:
    rows: List[RefinanceScheduleEntry] = []
    cumulative = -upfront_costs
    for index, (cur, new) in enumerate(zip_longest(current_schedule, new_schedule), start=1):
        current_payment = cur.payment if cur else ZERO
        new_payment = new.payment if new else ZERO
        cumulative += current_payment - new_payment
        rows.append(
            RefinanceScheduleEntry(
                period=index,
                current_balance=cur.ending_balance if cur else ZERO,
                current_payment=current_payment,
                current_principal=cur.principal_paid if cur else ZERO,
                current_interest=cur.interest if cur else ZERO,
                new_balance=new.ending_balance if new else ZERO,
                new_payment=new_payment,
                new_principal=new.principal_paid if new else ZERO,
                new_interest=new.interest if new else ZERO,
                cumulative_savings=cumulative,
            )
        )
    return tuple(rows)


def compare_refinance(
    current: CurrentLoanInputs,
    new_terms: NewLoanTerms,
    policy: Optional[RefinancePolicy] = None,
) -> RefinanceComparison:
    """Compare keeping the current loan with refinancing into ``new_terms``.

    Invalid inputs give ``RefinanceComparison.empty()``; a current loan whose
    payment never covers its interest gives an empty result with
    ``CalculationStatus.PERPETUITY``.
    """
    policy = policy or RefinancePolicy()
    try:
        state = resolve_current_loan(current)
        if not state.remaining_periods.is_finite():
            logger.debug("Current loan payment %s never covers its interest", state.payment)
            return RefinanceComparison.empty(CalculationStatus.PERPETUITY)

        costs = {"points_rate": new_terms.points_rate, "fees": new_terms.fees, "cash_out": new_terms.cash_out}
        for name, value in costs.items():
            if not value.is_finite():
                raise InvalidInputError(f"{name} must be a finite number")

        principal = state.remaining_balance + new_terms.cash_out
        term = new_terms.term_periods
        new_rate = _periodic_rate(new_terms.annual_rate, current.periods_per_year)
        new_payment = solve_payment(principal, new_rate, term)
        current_rate = _periodic_rate(current.annual_rate, current.periods_per_year)
    except InvalidInputError as exc:
        logger.debug("Empty refinance result: %s", exc)
        return RefinanceComparison.empty()

    upfront_costs = principal * new_terms.points_rate + new_terms.fees
    new_total = new_payment * Decimal(term)
    candidate = CandidateLoanState(
        principal=principal,
        payment=new_payment,
        term_periods=term,
        total_payments=new_total,
        total_interest=new_total - principal,
        upfront_costs=upfront_costs,
    )

    monthly_savings = state.payment - new_payment
    total_savings = state.total_remaining_payments - (new_total + upfront_costs)
    break_even = break_even_periods(upfront_costs, monthly_savings)
    recommended = is_refinance_recommended(total_savings, monthly_savings, break_even, term, policy)

    cap = max_periods_for(current.periods_per_year)
    current_schedule, _ = simulate_schedule(state.remaining_balance, current_rate, state.payment, cap)
    new_schedule, _ = simulate_schedule(principal, new_rate, new_payment, min(term, cap), settle_final=True)

    return RefinanceComparison(
        status=CalculationStatus.OK,
        current=state,
        candidate=candidate,
        monthly_savings=monthly_savings,
        total_savings=total_savings,
        break_even_periods=break_even,
        recommended=recommended,
        schedule=_side_by_side(current_schedule, new_schedule, upfront_costs),
    )
