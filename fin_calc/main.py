"""Command-line interface for the financial calculators.

This module uses the ``click`` library to expose each engine as a
sub-command: annuity payouts, leases, refinance comparisons, tax returns and
budgets. Results are printed to the terminal or exported to JSON/CSV files.
Amounts accept ``k``/``m`` suffixes and rates are entered as percentages.
"""

from __future__ import annotations

import csv
import json
from dataclasses import asdict
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import click

from .amortization import calculate_annuity, summarize_by_year
from .budget import aggregate_budget
from .data_models import (
    BudgetCategory,
    BudgetInputs,
    BudgetItem,
    CalculationStatus,
    CurrentLoanInputs,
    FixedPayment,
    FixedRate,
    KnownBalance,
    LeaseTerms,
    LoanTerms,
    NewLoanTerms,
    OriginalLoan,
    PaymentFrequency,
    PeriodUnit,
    RefinancePolicy,
    SolveForDuration,
    SolveForPayment,
    TaxInputs,
)
from .formatter import (
    print_annuity_summary,
    print_budget_summary,
    print_lease_schedule,
    print_lease_summary,
    print_lease_yearly,
    print_refinance_schedule,
    print_refinance_summary,
    print_schedule,
    print_tax_comparison,
    print_tax_result,
    print_yearly_schedule,
)
from .lease import calculate_lease, summarize_lease_by_year
from .logging_setup import setup_logging
from .refinance import compare_refinance
from .tax import compare_marriage, compute_individual_tax
from .utils import HUNDRED, decimal_from_str, parse_amount, parse_percent

# Limit schedule length printed to avoid flooding the terminal
MAX_ROWS = 120


def amount_option(value: Optional[str], name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}", param_hint=name)


def percent_option(value: Optional[str], name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return parse_percent(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}", param_hint=name)


def _plain(value: Any) -> Any:
    """Convert engine output into JSON/CSV friendly values."""
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def export_to_json(path: Path, summary: Dict[str, Any], rows: Sequence[Dict[str, Any]]) -> None:
    """Export a summary and its schedule rows to a JSON file."""
    data = {"summary": summary, "schedule": list(rows)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, allow_nan=False)


def export_to_csv(path: Path, rows: Sequence[Dict[str, Any]]) -> None:
    """Export schedule rows to a CSV file, one column per field."""
    if not rows:
        raise click.BadParameter("Nothing to export as CSV", param_hint="--output")
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)


def export_result(output: str, summary: Dict[str, Any], rows: Sequence[Dict[str, Any]]) -> None:
    path = Path(output)
    suffix = path.suffix.lower()
    if suffix == ".json":
        export_to_json(path, summary, rows)
    elif suffix == ".csv":
        export_to_csv(path, rows)
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
    click.echo(f"Results exported to {path}")


def split_result(result: Any) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Split a result record into its summary fields and schedule rows."""
    summary = _plain(asdict(result))
    rows = summary.pop("schedule", [])
    return summary, rows


def print_limited(rows: Sequence[Any], printer: Any) -> None:
    if len(rows) > MAX_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_ROWS} rows.")
        printer(rows[:MAX_ROWS])
    else:
        printer(rows)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details to stderr")
def cli(verbose: bool) -> None:
    """A command-line calculator for loans, leases, refinancing, taxes and budgets."""
    setup_logging(verbose)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Starting balance")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option(
    "--frequency",
    "-f",
    "frequency",
    type=click.Choice([f.value for f in PaymentFrequency]),
    default=PaymentFrequency.MONTHLY.value,
    help="Payment frequency",
)
@click.option("--years", "-y", "years", type=int, help="Payout length in years (solve for payment)")
@click.option("--payment", "payment", help="Fixed payment per period (solve for duration)")
@click.option("--yearly", is_flag=True, help="Show the schedule grouped by year")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def annuity(
    principal: str,
    rate: str,
    frequency: str,
    years: Optional[int],
    payment: Optional[str],
    yearly: bool,
    output: Optional[str],
) -> None:
    """Solve an annuity for its payment or for how long a payment lasts."""
    if (years is None) == (payment is None):
        raise click.BadParameter("Provide exactly one of --years or --payment")
    periods_per_year = PaymentFrequency(frequency).periods_per_year
    if years is not None:
        solve = SolveForPayment(total_periods=years * periods_per_year)
    else:
        solve = SolveForDuration(payment=amount_option(payment, "--payment"))
    terms = LoanTerms(
        principal=amount_option(principal, "--principal"),
        annual_rate=percent_option(rate, "--rate"),
        solve=solve,
        periods_per_year=periods_per_year,
    )
    result = calculate_annuity(terms)
    if result.status == CalculationStatus.INVALID_INPUT:
        raise click.ClickException("Invalid annuity inputs; nothing to calculate.")
    if result.status == CalculationStatus.PERPETUITY:
        click.echo("The payment never exceeds the interest; the balance is never exhausted.")
        return

    schedule = summarize_by_year(result.schedule, periods_per_year) if yearly else result.schedule
    if output:
        summary, _ = split_result(result)
        export_result(output, summary, [_plain(asdict(row)) for row in schedule])
        return
    print_annuity_summary(result)
    print_limited(schedule, print_yearly_schedule if yearly else print_schedule)


@cli.command()
@click.option("--asset", "asset", required=True, help="Asset value (agreed price)")
@click.option("--residual", "residual", help="Residual value at lease end")
@click.option("--residual-percent", "residual_percent", help="Residual value as a percent of the asset value")
@click.option("--term", "-t", "term", required=True, type=int, help="Lease term in months")
@click.option("--rate", "-r", "rate", help="Annual rate (percent); solves for the payment")
@click.option("--payment", "payment", help="Monthly payment including tax; solves for the rate")
@click.option("--acquisition-fee", "acquisition_fee", default="0", help="Fee rolled into the capitalized cost")
@click.option("--security-deposit", "security_deposit", default="0", help="Deposit rolled into the capitalized cost")
@click.option("--down-payment", "-d", "down_payment", default="0", help="Down payment (capitalized cost reduction)")
@click.option("--sales-tax", "sales_tax", default="0", help="Sales tax rate applied to each payment (percent)")
@click.option("--yearly", is_flag=True, help="Show the schedule grouped by year")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def lease(
    asset: str,
    residual: Optional[str],
    residual_percent: Optional[str],
    term: int,
    rate: Optional[str],
    payment: Optional[str],
    acquisition_fee: str,
    security_deposit: str,
    down_payment: str,
    sales_tax: str,
    yearly: bool,
    output: Optional[str],
) -> None:
    """Break a lease payment into depreciation, finance and tax."""
    if (rate is None) == (payment is None):
        raise click.BadParameter("Provide exactly one of --rate or --payment")
    if (residual is None) == (residual_percent is None):
        raise click.BadParameter("Provide exactly one of --residual or --residual-percent")

    asset_value = amount_option(asset, "--asset")
    if residual is not None:
        residual_value = amount_option(residual, "--residual")
    else:
        residual_value = LeaseTerms.residual_from_ratio(
            asset_value, percent_option(residual_percent, "--residual-percent")
        )
    if rate is not None:
        solve = FixedRate(annual_rate=percent_option(rate, "--rate"))
    else:
        solve = FixedPayment(payment=amount_option(payment, "--payment"))

    terms = LeaseTerms(
        asset_value=asset_value,
        residual_value=residual_value,
        term_periods=term,
        solve=solve,
        acquisition_fee=amount_option(acquisition_fee, "--acquisition-fee"),
        security_deposit=amount_option(security_deposit, "--security-deposit"),
        down_payment=amount_option(down_payment, "--down-payment"),
        sales_tax_rate=percent_option(sales_tax, "--sales-tax"),
    )
    result = calculate_lease(terms)
    if result.status != CalculationStatus.OK:
        raise click.ClickException("Invalid lease inputs; nothing to calculate.")

    schedule = summarize_lease_by_year(result.schedule, terms.periods_per_year) if yearly else result.schedule
    if output:
        summary, _ = split_result(result)
        export_result(output, summary, [_plain(asdict(row)) for row in schedule])
        return
    print_lease_summary(result)
    print_limited(schedule, print_lease_yearly if yearly else print_lease_schedule)


def _parse_points(value: str) -> Decimal:
    try:
        return decimal_from_str(value) / HUNDRED
    except ValueError:
        raise click.BadParameter(f"Invalid points: {value}", param_hint="--points")


@cli.command()
@click.option("--rate", "-r", "rate", required=True, help="Current annual rate (percent)")
@click.option("--balance", "balance", help="Current payoff balance")
@click.option("--payment", "payment", help="Current monthly payment")
@click.option("--original-amount", "original_amount", help="Original loan amount")
@click.option("--original-term", "original_term", type=int, help="Original term in months")
@click.option("--months-paid", "months_paid", type=int, help="Payments already made")
@click.option("--new-rate", "new_rate", required=True, help="New annual rate (percent)")
@click.option("--new-term", "new_term", required=True, type=int, help="New term in months")
@click.option("--points", "points", default="0", help="Discount points (percent of the new principal)")
@click.option("--fees", "fees", default="0", help="Flat closing costs")
@click.option("--cash-out", "cash_out", default="0", help="Cash taken out on top of the balance")
@click.option("--max-break-even", "max_break_even", type=int, default=60, help="Longest acceptable break-even in months")
@click.option(
    "--allow-break-even-after-term",
    "allow_after_term",
    is_flag=True,
    help="Do not require the break-even point to fall inside the new term",
)
@click.option("--schedule", "show_schedule", is_flag=True, help="Print the side-by-side schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def refinance(
    rate: str,
    balance: Optional[str],
    payment: Optional[str],
    original_amount: Optional[str],
    original_term: Optional[int],
    months_paid: Optional[int],
    new_rate: str,
    new_term: int,
    points: str,
    fees: str,
    cash_out: str,
    max_break_even: int,
    allow_after_term: bool,
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Compare the current loan with a refinance.

    Describe the current loan either with --balance and --payment or with
    --original-amount, --original-term and --months-paid.
    """
    known = balance is not None or payment is not None
    original = original_amount is not None or original_term is not None or months_paid is not None
    if known == original:
        raise click.BadParameter(
            "Describe the current loan with --balance/--payment or with "
            "--original-amount/--original-term/--months-paid"
        )
    if known:
        if balance is None or payment is None:
            raise click.BadParameter("--balance and --payment must be given together")
        source = KnownBalance(
            remaining_balance=amount_option(balance, "--balance"),
            payment=amount_option(payment, "--payment"),
        )
    else:
        if original_amount is None or original_term is None or months_paid is None:
            raise click.BadParameter("--original-amount, --original-term and --months-paid must be given together")
        source = OriginalLoan(
            original_amount=amount_option(original_amount, "--original-amount"),
            original_term_periods=original_term,
            periods_paid=months_paid,
        )

    current = CurrentLoanInputs(annual_rate=percent_option(rate, "--rate"), source=source)
    new_terms = NewLoanTerms(
        term_periods=new_term,
        annual_rate=percent_option(new_rate, "--new-rate"),
        points_rate=_parse_points(points),
        fees=amount_option(fees, "--fees"),
        cash_out=amount_option(cash_out, "--cash-out"),
    )
    policy = RefinancePolicy(
        max_break_even_periods=Decimal(max_break_even),
        require_break_even_within_term=not allow_after_term,
    )
    comparison = compare_refinance(current, new_terms, policy)
    if comparison.status == CalculationStatus.PERPETUITY:
        raise click.ClickException("The current payment never exceeds the interest; the loan is never repaid.")
    if comparison.status != CalculationStatus.OK:
        raise click.ClickException("Invalid refinance inputs; nothing to compare.")

    if output:
        summary, rows = split_result(comparison)
        export_result(output, summary, rows)
        return
    print_refinance_summary(comparison)
    if show_schedule:
        print_limited(comparison.schedule, print_refinance_schedule)


TAX_FIELDS = {
    "salary": "salary",
    "interest": "interest",
    "rental": "rental_income",
    "short_term": "short_term_gains",
    "long_term": "long_term_gains",
    "dividends": "qualified_dividends",
    "retirement": "retirement_contributions",
    "student_loan": "student_loan_interest",
    "mortgage": "mortgage_interest",
    "charitable": "charitable",
    "child_care": "child_care",
    "education": "education",
}
TAX_FLAGS = {"itemize": "itemize", "self_employed": "self_employed"}


def parse_tax_inputs(value: str, name: str) -> TaxInputs:
    """Parse ``key=amount`` pairs separated by commas.

    ``supplemental=PERCENT`` sets the flat state/local rate; ``itemize`` and
    ``self_employed`` are bare flags.
    """
    fields: Dict[str, Any] = {}
    for item in filter(None, (part.strip() for part in value.split(","))):
        key, sep, raw = item.partition("=")
        key = key.strip().lower().replace("-", "_")
        if not sep:
            if key not in TAX_FLAGS:
                raise click.BadParameter(f"Unknown flag: {key}", param_hint=name)
            fields[TAX_FLAGS[key]] = True
        elif key == "supplemental":
            fields["supplemental_rate"] = percent_option(raw, name)
        elif key in TAX_FIELDS:
            fields[TAX_FIELDS[key]] = amount_option(raw, name)
        else:
            raise click.BadParameter(f"Unknown field: {key}", param_hint=name)
    return TaxInputs(**fields)


@cli.command()
@click.option("--spouse1", "spouse1", required=True, help="First filer, e.g. 'salary=85k,long_term=2k,itemize'")
@click.option("--spouse2", "spouse2", help="Second filer; compares joint filing with two single returns")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def tax(spouse1: str, spouse2: Optional[str], output: Optional[str]) -> None:
    """Compute a federal return, or compare joint filing for two spouses.

    Fields: salary, interest, rental, short_term, long_term, dividends,
    retirement, student_loan, mortgage, charitable, child_care, education,
    supplemental (percent) and the flags itemize and self_employed.
    """
    first = parse_tax_inputs(spouse1, "--spouse1")
    if spouse2 is None:
        result = compute_individual_tax(first)
        if output:
            summary = _plain(asdict(result))
            export_result(output, summary, [summary])
            return
        print_tax_result(result)
        return

    second = parse_tax_inputs(spouse2, "--spouse2")
    comparison = compare_marriage(first, second)
    if output:
        summary = _plain(asdict(comparison))
        rows = [
            dict(filer=label, **summary[label])
            for label in ("first", "second", "joint")
        ]
        export_result(output, summary, rows)
        return
    print_tax_comparison(comparison)


def parse_budget_item(value: str, name: str) -> BudgetItem:
    amount, _, unit = value.partition(":")
    unit = unit.strip().lower() or PeriodUnit.MONTH.value
    if unit not in {u.value for u in PeriodUnit}:
        raise click.BadParameter(f"Unknown period unit: {unit}", param_hint=name)
    return BudgetItem(amount=amount_option(amount, name), unit=PeriodUnit(unit))


def parse_expense_strings(values: Tuple[str, ...]) -> Dict[BudgetCategory, Tuple[BudgetItem, ...]]:
    expenses: Dict[BudgetCategory, List[BudgetItem]] = {}
    for item in values:
        category, sep, rest = item.partition(":")
        if not sep:
            raise click.BadParameter(
                f"Expense must be in CATEGORY:AMOUNT[:UNIT] format; got {item}", param_hint="--expense"
            )
        try:
            key = BudgetCategory(category.strip().lower())
        except ValueError:
            raise click.BadParameter(f"Unknown category: {category}", param_hint="--expense")
        expenses.setdefault(key, []).append(parse_budget_item(rest, "--expense"))
    return {key: tuple(items) for key, items in expenses.items()}


@cli.command()
@click.option("--income", "income", multiple=True, required=True, help="Income in AMOUNT[:UNIT] format")
@click.option("--tax-rate", "tax_rate", default="0", help="Flat income tax rate (percent)")
@click.option("--expense", "expense", multiple=True, help="Expense in CATEGORY:AMOUNT[:UNIT] format")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def budget(income: Tuple[str, ...], tax_rate: str, expense: Tuple[str, ...], output: Optional[str]) -> None:
    """Summarize monthly income and expenses against the 50/30/20 rule.

    Units are month (default), year, week and biweekly. Categories are
    housing, transportation, debt, living, healthcare, children_education,
    savings and miscellaneous.
    """
    inputs = BudgetInputs(
        income=tuple(parse_budget_item(item, "--income") for item in income),
        income_tax_rate=percent_option(tax_rate, "--tax-rate"),
        expenses=parse_expense_strings(expense),
    )
    result = aggregate_budget(inputs)
    if output:
        summary = _plain(asdict(result))
        rows = [
            {"category": category.value, "monthly": float(amount), "share": float(result.category_shares[category])}
            for category, amount in result.category_totals.items()
        ]
        export_result(output, summary, rows)
        return
    print_budget_summary(result)


if __name__ == "__main__":
    cli()
