import logging
from decimal import Decimal

import pytest

from fin_calc.amortization import (
    calculate_annuity,
    simulate_schedule,
    solve_duration,
    solve_payment,
    solve_remaining_balance,
    summarize_by_year,
)
from fin_calc.data_models import CalculationStatus, LoanTerms, SolveForDuration, SolveForPayment
from fin_calc.errors import InvalidInputError


def _payment_terms(principal="500000", rate="0.06", years=10):
    return LoanTerms(principal=Decimal(principal), annual_rate=Decimal(rate), solve=SolveForPayment(years * 12))


def test_zero_rate_payment_is_principal_over_term():
    assert solve_payment(Decimal("1200"), Decimal("0"), 12) == Decimal("100")


def test_payment_matches_annuity_formula():
    payment = solve_payment(Decimal("500000"), Decimal("0.005"), 120)
    assert abs(payment - Decimal("5551.03")) < Decimal("0.01")


def test_zero_rate_payments_sum_to_principal():
    result = calculate_annuity(LoanTerms(principal=Decimal("1200"), annual_rate=Decimal("0"), solve=SolveForPayment(12)))

    assert result.status == CalculationStatus.OK
    assert len(result.schedule) == 12
    assert sum(e.payment for e in result.schedule) == Decimal("1200")
    assert result.total_interest == 0


def test_duration_inverts_payment():
    payment = solve_payment(Decimal("500000"), Decimal("0.005"), 120)
    duration = solve_duration(Decimal("500000"), Decimal("0.005"), payment)

    assert duration.depleted
    assert abs(duration.periods - 120) / 120 < Decimal("1e-6")


def test_payment_equal_to_interest_is_perpetuity():
    duration = solve_duration(Decimal("100000"), Decimal("0.01"), Decimal("1000"))

    assert duration.is_perpetuity
    assert not duration.periods.is_finite()


def test_payment_slightly_above_interest_depletes():
    terms = LoanTerms(
        principal=Decimal("100000"), annual_rate=Decimal("0.12"), solve=SolveForDuration(Decimal("1000.01"))
    )
    result = calculate_annuity(terms)

    assert result.status == CalculationStatus.OK
    assert result.depleted
    assert result.schedule[-1].ending_balance == 0
    assert result.total_periods.is_finite()


def test_perpetuity_result_carries_infinite_totals():
    terms = LoanTerms(principal=Decimal("100000"), annual_rate=Decimal("0.12"), solve=SolveForDuration(Decimal("1000")))
    result = calculate_annuity(terms)

    assert result.status == CalculationStatus.PERPETUITY
    assert not result.depleted
    assert not result.total_periods.is_finite()
    assert not result.total_paid.is_finite()
    assert result.schedule == ()


def test_schedule_balances_are_consistent():
    result = calculate_annuity(_payment_terms())
    schedule = result.schedule

    assert len(schedule) == 120
    previous = Decimal("500000")
    for entry in schedule:
        assert entry.beginning_balance == previous
        expected = entry.beginning_balance - (entry.payment - entry.interest)
        assert abs(entry.ending_balance - expected) < Decimal("1e-12")
        assert entry.ending_balance >= 0
        assert entry.ending_balance <= entry.beginning_balance
        previous = entry.ending_balance
    assert schedule[-1].ending_balance == 0


def test_total_interest_is_total_paid_minus_principal():
    result = calculate_annuity(_payment_terms())

    assert result.total_paid == sum(e.payment for e in result.schedule)
    assert result.total_interest == result.total_paid - Decimal("500000")
    assert abs(result.principal_share + result.interest_share - 1) < Decimal("1e-20")


def test_final_period_of_fractional_duration_is_truncated():
    terms = LoanTerms(principal=Decimal("1000"), annual_rate=Decimal("0"), solve=SolveForDuration(Decimal("300")))
    result = calculate_annuity(terms)

    assert result.total_periods == Decimal("1000") / Decimal("300")
    assert [e.payment for e in result.schedule] == [Decimal("300"), Decimal("300"), Decimal("300"), Decimal("100")]
    assert result.total_paid == Decimal("1000")


def test_remaining_balance_matches_schedule():
    schedule = calculate_annuity(_payment_terms()).schedule
    balance = solve_remaining_balance(Decimal("500000"), Decimal("0.005"), 120, 36)

    assert abs(balance - schedule[35].ending_balance) < Decimal("1e-6")


def test_remaining_balance_edges():
    assert solve_remaining_balance(Decimal("1200"), Decimal("0"), 12, 3) == Decimal("900")
    assert abs(solve_remaining_balance(Decimal("5000"), Decimal("0.01"), 24, 0) - Decimal("5000")) < Decimal("1e-20")
    assert solve_remaining_balance(Decimal("5000"), Decimal("0.01"), 24, 30) == 0


def test_schedule_stops_at_period_cap(caplog):
    with caplog.at_level(logging.WARNING, logger="fin_calc.amortization"):
        schedule, depleted = simulate_schedule(Decimal("1000"), Decimal("0.01"), Decimal("5"), 24)

    assert len(schedule) == 24
    assert not depleted
    assert "period cap" in caplog.text


def test_yearly_summary_rolls_up_periods():
    result = calculate_annuity(_payment_terms())
    years = summarize_by_year(result.schedule, 12)

    assert len(years) == 10
    assert years[0].beginning_balance == Decimal("500000")
    assert years[-1].ending_balance == 0
    assert abs(sum(y.payments for y in years) - result.total_paid) < Decimal("1e-12")
    assert abs(sum(y.interest for y in years) - sum(e.interest for e in result.schedule)) < Decimal("1e-12")


@pytest.mark.parametrize(
    "principal, rate, periods",
    [
        (Decimal("0"), Decimal("0.01"), 12),
        (Decimal("-5"), Decimal("0.01"), 12),
        (Decimal("1000"), Decimal("-0.01"), 12),
        (Decimal("1000"), Decimal("0.01"), 0),
    ],
)
def test_solve_payment_rejects_invalid_inputs(principal, rate, periods):
    with pytest.raises(InvalidInputError):
        solve_payment(principal, rate, periods)


def test_invalid_terms_produce_empty_result(caplog):
    terms = LoanTerms(principal=Decimal("0"), annual_rate=Decimal("0.05"), solve=SolveForPayment(12))
    with caplog.at_level(logging.DEBUG, logger="fin_calc.amortization"):
        result = calculate_annuity(terms)

    assert result.status == CalculationStatus.INVALID_INPUT
    assert result.payment == 0
    assert result.schedule == ()
    assert "Empty annuity result" in caplog.text


def test_non_finite_inputs_produce_empty_result():
    terms = LoanTerms(principal=Decimal("NaN"), annual_rate=Decimal("0.05"), solve=SolveForPayment(12))
    assert calculate_annuity(terms).status == CalculationStatus.INVALID_INPUT


@pytest.mark.parametrize("periods", [1201, 3600])
def test_term_beyond_hundred_years_is_invalid(periods):
    terms = LoanTerms(principal=Decimal("1000"), annual_rate=Decimal("0"), solve=SolveForPayment(periods))
    result = calculate_annuity(terms)

    assert result.status == CalculationStatus.INVALID_INPUT
    assert result.schedule == ()


def test_hundred_year_term_is_allowed():
    terms = LoanTerms(principal=Decimal("1200"), annual_rate=Decimal("0"), solve=SolveForPayment(1200))
    result = calculate_annuity(terms)

    assert result.status == CalculationStatus.OK
    assert len(result.schedule) == 1200


def test_quarterly_payments_use_periodic_rate():
    terms = LoanTerms(
        principal=Decimal("100000"), annual_rate=Decimal("0.08"), solve=SolveForPayment(40), periods_per_year=4
    )
    result = calculate_annuity(terms)

    assert result.payment == solve_payment(Decimal("100000"), Decimal("0.02"), 40)
    assert len(summarize_by_year(result.schedule, 4)) == 10
