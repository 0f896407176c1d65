"""Output helpers for the financial calculators.

This module renders engine results as plain tabular text. Amounts are shown
with two decimals and ratios as percentages; infinite values (a perpetuity or
a refinance that never breaks even) are printed as ``never``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .data_models import (
    AmortizationResult,
    BudgetResult,
    LeaseResult,
    LeaseScheduleEntry,
    LeaseYearSummary,
    MarriageTaxComparison,
    RefinanceComparison,
    RefinanceScheduleEntry,
    ScheduleEntry,
    TaxResult,
    YearSummary,
)

RULE = "-" * 72


def _amount(value: Decimal) -> str:
    if not value.is_finite():
        return "never"
    return f"{value:,.2f}"


def _percent(value: Decimal) -> str:
    return f"{value * 100:.2f}%"


def print_annuity_summary(result: AmortizationResult) -> None:
    """Print the headline figures of an amortization result."""
    print("Summary")
    print(RULE)
    print(f"Payment            : {_amount(result.payment)}")
    print(f"Periods            : {_amount(result.total_periods)}")
    print(f"Total paid         : {_amount(result.total_paid)}")
    print(f"Total interest     : {_amount(result.total_interest)}")
    print(f"Principal share    : {_percent(result.principal_share)}")
    print(f"Interest share     : {_percent(result.interest_share)}")
    print(f"Paid off           : {'Yes' if result.depleted else 'No'}")
    print(RULE)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    headers = ["Period", "StartBal", "Payment", "Principal", "Interest", "EndBal"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            f"{entry.beginning_balance:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.principal_paid:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.ending_balance:.2f}",
        ]
        print("\t".join(row))


def print_yearly_schedule(years: Iterable[YearSummary]) -> None:
    print("\t".join(["Year", "StartBal", "Payments", "Interest", "EndBal"]))
    for year in years:
        row = [
            str(year.year),
            f"{year.beginning_balance:.2f}",
            f"{year.payments:.2f}",
            f"{year.interest:.2f}",
            f"{year.ending_balance:.2f}",
        ]
        print("\t".join(row))


def print_lease_summary(result: LeaseResult) -> None:
    print("Lease")
    print(RULE)
    print(f"Payment            : {_amount(result.payment)}")
    print(f"  Depreciation fee : {_amount(result.depreciation_fee)}")
    print(f"  Finance fee      : {_amount(result.finance_fee)}")
    print(f"  Sales tax        : {_amount(result.tax_per_period)}")
    print(f"Annual rate        : {_percent(result.annual_rate)}")
    print(f"Net cap cost       : {_amount(result.net_cap_cost)}")
    print(f"Residual value     : {_amount(result.residual_value)}")
    print(f"Total payments     : {_amount(result.total_payments)}")
    print(f"Total depreciation : {_amount(result.total_depreciation)}")
    print(f"Total finance      : {_amount(result.total_finance)}")
    print(f"Upfront costs      : {_amount(result.upfront_costs)}")
    print(f"Total cost         : {_amount(result.total_cost)}")
    print(f"Depreciation share : {_percent(result.depreciation_share)}")
    print(f"Finance share      : {_percent(result.finance_share)}")
    print(RULE)


def print_lease_schedule(schedule: Iterable[LeaseScheduleEntry]) -> None:
    print("\t".join(["Period", "Depreciation", "Finance", "Payment", "CumDep", "CumFin", "Value"]))
    for entry in schedule:
        row = [
            str(entry.period),
            f"{entry.depreciation:.2f}",
            f"{entry.finance:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.cumulative_depreciation:.2f}",
            f"{entry.cumulative_finance:.2f}",
            f"{entry.remaining_value:.2f}",
        ]
        print("\t".join(row))


def print_lease_yearly(years: Iterable[LeaseYearSummary]) -> None:
    print("\t".join(["Year", "Periods", "Depreciation", "Finance", "Payment", "Value"]))
    for year in years:
        row = [
            str(year.year),
            str(year.periods),
            f"{year.depreciation:.2f}",
            f"{year.finance:.2f}",
            f"{year.payment:.2f}",
            f"{year.remaining_value:.2f}",
        ]
        print("\t".join(row))


def print_refinance_summary(comparison: RefinanceComparison) -> None:
    """Print the current loan, the candidate and the savings between them.

    A negative savings figure means the refinance costs more.
    """
    current = comparison.current
    candidate = comparison.candidate
    print("Refinance")
    print("=" * 72)
    print(f"{'Metric':20s} {'Current':>15s} {'New':>15s}")
    print(f"{'Balance':20s} {current.remaining_balance:15.2f} {candidate.principal:15.2f}")
    print(f"{'Payment':20s} {current.payment:15.2f} {candidate.payment:15.2f}")
    print(f"{'Periods':20s} {current.remaining_periods:15.2f} {candidate.term_periods:15d}")
    print(f"{'Total payments':20s} {current.total_remaining_payments:15.2f} {candidate.total_payments:15.2f}")
    print(f"{'Total interest':20s} {current.total_interest_remaining:15.2f} {candidate.total_interest:15.2f}")
    print("=" * 72)
    print(f"Upfront costs      : {_amount(candidate.upfront_costs)}")
    print(f"Payment savings    : {_amount(comparison.monthly_savings)}")
    print(f"Total savings      : {_amount(comparison.total_savings)}")
    print(f"Break-even periods : {_amount(comparison.break_even_periods)}")
    print(f"Recommended        : {'Yes' if comparison.recommended else 'No'}")


def print_refinance_schedule(schedule: Iterable[RefinanceScheduleEntry]) -> None:
    print("\t".join(["Period", "CurBal", "CurPay", "NewBal", "NewPay", "CumSavings"]))
    for entry in schedule:
        row = [
            str(entry.period),
            f"{entry.current_balance:.2f}",
            f"{entry.current_payment:.2f}",
            f"{entry.new_balance:.2f}",
            f"{entry.new_payment:.2f}",
            f"{entry.cumulative_savings:.2f}",
        ]
        print("\t".join(row))


def print_tax_result(result: TaxResult) -> None:
    print("Tax")
    print(RULE)
    print(f"Gross income       : {_amount(result.gross_income)}")
    print(f"AGI                : {_amount(result.agi)}")
    print(f"Deduction          : {_amount(result.deduction_applied)}")
    print(f"Taxable income     : {_amount(result.taxable_income)}")
    print(f"Ordinary tax       : {_amount(result.ordinary_tax)}")
    print(f"Preferential tax   : {_amount(result.preferential_tax)}")
    print(f"Supplemental tax   : {_amount(result.supplemental_tax)}")
    print(f"Self-employment    : {_amount(result.self_employment_tax)}")
    print(f"Total tax          : {_amount(result.total_tax)}")
    print(f"Effective rate     : {_percent(result.effective_rate)}")
    print(RULE)


def _tax_row(label: str, first: TaxResult, second: TaxResult, joint: TaxResult, field: str) -> None:
    values = [getattr(result, field) for result in (first, second, joint)]
    print(f"{label:20s} {values[0]:15.2f} {values[1]:15.2f} {values[2]:15.2f}")


def print_tax_comparison(comparison: MarriageTaxComparison) -> None:
    """Print both individual returns next to the joint return."""
    print("Tax")
    print("=" * 72)
    print(f"{'Metric':20s} {'Spouse 1':>15s} {'Spouse 2':>15s} {'Joint':>15s}")
    rows = [
        ("Gross income", "gross_income"),
        ("AGI", "agi"),
        ("Deduction", "deduction_applied"),
        ("Taxable income", "taxable_income"),
        ("Ordinary tax", "ordinary_tax"),
        ("Preferential tax", "preferential_tax"),
        ("Supplemental tax", "supplemental_tax"),
        ("Self-employment", "self_employment_tax"),
        ("Total tax", "total_tax"),
    ]
    for label, field in rows:
        _tax_row(label, comparison.first, comparison.second, comparison.joint, field)
    print("=" * 72)
    print(f"Filing separately  : {_amount(comparison.individual_total)}")
    label = "Marriage bonus" if comparison.is_bonus else "Marriage penalty"
    print(f"{label:19s}: {_amount(abs(comparison.marriage_penalty))}")


def print_budget_summary(result: BudgetResult) -> None:
    print("Budget (monthly)")
    print(RULE)
    print(f"Gross income       : {_amount(result.gross_monthly_income)}")
    print(f"Net income         : {_amount(result.net_monthly_income)}")
    print(f"Expenses           : {_amount(result.total_expenses_monthly)}")
    print(f"Surplus            : {_amount(result.surplus_monthly)}")
    print(f"Savings rate       : {_percent(result.savings_rate)}")
    print(f"Debt to income     : {_percent(result.debt_to_income)}")
    print(f"Housing ratio      : {_percent(result.housing_ratio)}")
    print(f"Transport ratio    : {_percent(result.transportation_ratio)}")
    print(RULE)
    print(f"{'Category':20s} {'Monthly':>15s} {'Share':>10s}")
    for category, amount in result.category_totals.items():
        print(f"{category.value:20s} {amount:15.2f} {_percent(result.category_shares[category]):>10s}")
    print(RULE)
    print(f"{'50/30/20':20s} {'Actual':>15s} {'Target':>15s}")
    print(f"{'Needs':20s} {result.actual_needs:15.2f} {result.recommended_needs:15.2f}")
    print(f"{'Wants':20s} {result.actual_wants:15.2f} {result.recommended_wants:15.2f}")
    print(f"{'Savings':20s} {result.actual_savings:15.2f} {result.recommended_savings:15.2f}")
