from decimal import Decimal

import pytest

from fin_calc.data_models import CalculationStatus, FixedPayment, FixedRate, LeaseTerms
from fin_calc.lease import calculate_lease, solve_effective_rate, solve_fixed_rate_lease, summarize_lease_by_year


def _terms(solve, **overrides):
    values = dict(
        asset_value=Decimal("30000"),
        residual_value=Decimal("18000"),
        term_periods=36,
        solve=solve,
        acquisition_fee=Decimal("900"),
        down_payment=Decimal("3000"),
    )
    values.update(overrides)
    return LeaseTerms(**values)


def test_residual_from_ratio():
    assert LeaseTerms.residual_from_ratio(Decimal("30000"), Decimal("0.6")) == Decimal("18000")


def test_fixed_rate_payment_decomposition():
    result = calculate_lease(_terms(FixedRate(Decimal("0.06"))))

    assert result.status == CalculationStatus.OK
    assert result.net_cap_cost == Decimal("27900")
    assert result.depreciation_fee == Decimal("275")
    assert result.finance_fee == Decimal("229.5")
    assert result.payment == Decimal("504.5")
    assert result.total_depreciation == Decimal("9900")
    assert result.total_finance == Decimal("8262")
    assert result.upfront_costs == Decimal("3000")
    assert result.total_cost == Decimal("21162")


def test_sales_tax_is_added_on_top():
    result = calculate_lease(_terms(FixedRate(Decimal("0.06")), sales_tax_rate=Decimal("0.08")))

    assert result.base_payment == Decimal("504.5")
    assert result.payment == Decimal("544.86")
    assert result.tax_per_period == Decimal("40.36")


def test_effective_rate_recovers_nominal_rate():
    result = solve_effective_rate(_terms(FixedPayment(Decimal("544.86")), sales_tax_rate=Decimal("0.08")))

    assert result.status == CalculationStatus.OK
    assert result.annual_rate == Decimal("0.06")
    assert result.finance_fee == Decimal("229.5")


def test_effective_rate_is_floored_at_zero():
    result = solve_effective_rate(_terms(FixedPayment(Decimal("200"))))

    assert result.status == CalculationStatus.OK
    assert result.annual_rate == 0
    assert result.finance_fee < 0


def test_shares_sum_to_one():
    result = calculate_lease(_terms(FixedRate(Decimal("0.06"))))
    assert abs(result.depreciation_share + result.finance_share - 1) < Decimal("1e-20")


def test_schedule_ends_at_residual():
    result = calculate_lease(_terms(FixedRate(Decimal("0.06"))))
    schedule = result.schedule

    assert len(schedule) == 36
    assert schedule[-1].cumulative_depreciation == result.total_depreciation
    assert schedule[-1].cumulative_finance == result.total_finance
    assert schedule[-1].remaining_value == Decimal("18000")
    assert all(entry.remaining_value >= Decimal("18000") for entry in schedule)


def test_remaining_value_starts_from_net_cap_cost():
    result = calculate_lease(_terms(FixedRate(Decimal("0.06"))))

    assert result.net_cap_cost == Decimal("27900")
    assert result.depreciation_fee == Decimal("275")
    assert result.schedule[0].remaining_value == Decimal("27625")


def test_yearly_summary_keeps_partial_final_year():
    result = calculate_lease(_terms(FixedRate(Decimal("0.06")), term_periods=30))
    years = summarize_lease_by_year(result.schedule, 12)

    assert [y.periods for y in years] == [12, 12, 6]
    assert years[-1].remaining_value == Decimal("18000")


@pytest.mark.parametrize(
    "overrides",
    [
        {"residual_value": Decimal("30000")},
        {"residual_value": Decimal("35000")},
        {"term_periods": 0},
        {"term_periods": 1201},
        {"term_periods": 3600, "periods_per_year": 12},
        {"asset_value": Decimal("0")},
        {"sales_tax_rate": Decimal("-1")},
        {"asset_value": Decimal("Infinity")},
    ],
)
def test_invalid_terms_produce_empty_result(overrides):
    result = calculate_lease(_terms(FixedRate(Decimal("0.06")), **overrides))
    assert result.status == CalculationStatus.INVALID_INPUT
    assert result.payment == 0
    assert result.schedule == ()


def test_negative_rate_is_invalid():
    assert calculate_lease(_terms(FixedRate(Decimal("-0.01")))).status == CalculationStatus.INVALID_INPUT


def test_non_positive_payment_is_invalid():
    assert calculate_lease(_terms(FixedPayment(Decimal("0")))).status == CalculationStatus.INVALID_INPUT


def test_solver_rejects_mismatched_solve_mode():
    with pytest.raises(TypeError):
        solve_fixed_rate_lease(_terms(FixedPayment(Decimal("500"))))
