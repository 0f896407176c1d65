from decimal import Decimal

import pytest

from fin_calc.amortization import solve_payment, solve_remaining_balance
from fin_calc.data_models import (
    CalculationStatus,
    CurrentLoanInputs,
    KnownBalance,
    NewLoanTerms,
    OriginalLoan,
    RefinancePolicy,
)
from fin_calc.refinance import break_even_periods, compare_refinance, resolve_current_loan


def _current(balance="250000", payment="1800", rate="0.07"):
    return CurrentLoanInputs(
        annual_rate=Decimal(rate),
        source=KnownBalance(remaining_balance=Decimal(balance), payment=Decimal(payment)),
    )


def _new(term=240, rate="0.06", points="0.02", fees="1500", cash_out="0"):
    return NewLoanTerms(
        term_periods=term,
        annual_rate=Decimal(rate),
        points_rate=Decimal(points),
        fees=Decimal(fees),
        cash_out=Decimal(cash_out),
    )


def test_refinance_with_points_and_fees():
    comparison = compare_refinance(_current(), _new())

    assert comparison.status == CalculationStatus.OK
    assert comparison.candidate.upfront_costs == Decimal("6500")
    assert abs(comparison.candidate.payment - Decimal("1791.08")) < Decimal("0.01")
    assert comparison.monthly_savings == comparison.current.payment - comparison.candidate.payment
    assert comparison.break_even_periods == Decimal("6500") / comparison.monthly_savings
    assert comparison.total_savings > 0
    assert comparison.recommended


def test_total_savings_formula():
    comparison = compare_refinance(_current(), _new())
    current = comparison.current
    candidate = comparison.candidate

    expected = current.payment * current.remaining_periods - (
        candidate.payment * candidate.term_periods + candidate.upfront_costs
    )
    assert comparison.total_savings == expected


def test_cash_out_increases_new_principal():
    comparison = compare_refinance(_current(), _new(cash_out="20000"))

    assert comparison.candidate.principal == Decimal("270000")
    assert comparison.candidate.upfront_costs == Decimal("270000") * Decimal("0.02") + Decimal("1500")


def test_higher_rate_never_breaks_even():
    comparison = compare_refinance(_current(), _new(rate="0.09"))

    assert comparison.monthly_savings < 0
    assert not comparison.break_even_periods.is_finite()
    assert not comparison.recommended


def test_short_break_even_is_recommended_without_total_savings():
    current = _current(balance="200000", payment="1500", rate="0.06")
    comparison = compare_refinance(current, _new(term=360, rate="0.05", points="0", fees="4000"))

    assert comparison.total_savings < 0
    assert comparison.break_even_periods < 60
    assert comparison.recommended


def test_policy_caps_break_even_periods():
    current = _current(balance="200000", payment="1500", rate="0.06")
    policy = RefinancePolicy(max_break_even_periods=Decimal("5"))
    comparison = compare_refinance(current, _new(term=360, rate="0.05", points="0", fees="4000"), policy)

    assert not comparison.recommended


def test_policy_break_even_within_term():
    current = _current(balance="200000", payment="1500", rate="0.06")
    new_terms = _new(term=360, rate="0.05", points="0", fees="200000")

    strict = compare_refinance(current, new_terms, RefinancePolicy(max_break_even_periods=Decimal("1000")))
    lenient = compare_refinance(
        current,
        new_terms,
        RefinancePolicy(max_break_even_periods=Decimal("1000"), require_break_even_within_term=False),
    )

    assert strict.break_even_periods > 360
    assert not strict.recommended
    assert lenient.recommended


def test_break_even_edge_cases():
    assert not break_even_periods(Decimal("6500"), Decimal("0")).is_finite()
    assert not break_even_periods(Decimal("0"), Decimal("-10")).is_finite()
    assert break_even_periods(Decimal("0"), Decimal("10")) == 0
    assert break_even_periods(Decimal("100"), Decimal("10")) == Decimal("10")


def test_current_loan_from_original_terms():
    current = CurrentLoanInputs(
        annual_rate=Decimal("0.06"),
        source=OriginalLoan(original_amount=Decimal("300000"), original_term_periods=360, periods_paid=60),
    )
    state = resolve_current_loan(current)

    assert state.remaining_periods == 300
    assert state.payment == solve_payment(Decimal("300000"), Decimal("0.005"), 360)
    assert state.remaining_balance == solve_remaining_balance(Decimal("300000"), Decimal("0.005"), 360, 60)
    assert state.total_interest_remaining == state.total_remaining_payments - state.remaining_balance


def test_paid_off_original_loan_is_invalid():
    current = CurrentLoanInputs(
        annual_rate=Decimal("0.06"),
        source=OriginalLoan(original_amount=Decimal("300000"), original_term_periods=360, periods_paid=360),
    )
    assert compare_refinance(current, _new()).status == CalculationStatus.INVALID_INPUT


def test_payment_below_interest_is_perpetuity():
    comparison = compare_refinance(_current(payment="1000"), _new())

    assert comparison.status == CalculationStatus.PERPETUITY
    assert comparison.current is None
    assert not comparison.recommended


@pytest.mark.parametrize(
    "new_terms",
    [
        NewLoanTerms(term_periods=0, annual_rate=Decimal("0.06")),
        NewLoanTerms(term_periods=240, annual_rate=Decimal("-0.01")),
    ],
)
def test_invalid_new_terms_produce_empty_result(new_terms):
    comparison = compare_refinance(_current(), new_terms)

    assert comparison.status == CalculationStatus.INVALID_INPUT
    assert comparison.schedule == ()


@pytest.mark.parametrize(
    "overrides",
    [{"fees": "NaN"}, {"points": "Infinity"}, {"cash_out": "-Infinity"}, {"rate": "NaN"}],
)
def test_non_finite_new_terms_produce_empty_result(overrides):
    comparison = compare_refinance(_current(), _new(**overrides))

    assert comparison.status == CalculationStatus.INVALID_INPUT
    assert comparison.candidate is None
    assert not comparison.recommended


def test_side_by_side_schedule():
    comparison = compare_refinance(_current(), _new())
    schedule = comparison.schedule
    first = schedule[0]

    assert first.cumulative_savings == -Decimal("6500") + (first.current_payment - first.new_payment)
    assert len(schedule) > 240
    assert schedule[239].new_balance == 0
    assert all(row.new_payment == 0 for row in schedule[240:])
    assert schedule[-1].current_balance == 0
