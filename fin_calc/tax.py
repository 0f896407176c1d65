"""Tax computation helpers for individual and joint federal returns."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .data_models import BracketTable, FilingStatus, MarriageTaxComparison, TaxInputs, TaxResult
from .tax_data import (
    CHILD_CARE_CAP,
    EDUCATION_CAP,
    ORDINARY_BRACKETS,
    PREFERENTIAL_BRACKETS,
    SELF_EMPLOYMENT_TAX_RATE,
    STANDARD_DEDUCTIONS,
    STUDENT_LOAN_INTEREST_CAP,
)
from .utils import ZERO, Number, safe_divide, to_decimal

logger = logging.getLogger(__name__)

TWO = Decimal(2)


def evaluate_progressive_tax(taxable_income: Number, table: BracketTable) -> Decimal:
    """Tax ``taxable_income`` slice by slice at each bracket's marginal rate."""
    remaining = to_decimal(taxable_income)
    if remaining <= 0:
        return ZERO

    tax = ZERO
    for bracket in table:
        if remaining <= 0:
            break
        width = bracket.width
        taxable_at_rate = remaining if width is None else min(remaining, width)
        tax += taxable_at_rate * bracket.rate
        remaining -= taxable_at_rate
    return tax


def evaluate_preferential_tax(
    ordinary_taxable_income: Number,
    preferential_income: Number,
    table: BracketTable,
) -> Decimal:
    """Tax long-term gains and qualified dividends at their preferential rate.

    Preferential income is stacked on top of ordinary taxable income: the
    bracket is chosen by ``ordinary_taxable_income + preferential_income``
    and its rate applies to the whole preferential amount.
    """
    preferential = to_decimal(preferential_income)
    if preferential <= 0:
        return ZERO
    stacked = max(ZERO, to_decimal(ordinary_taxable_income)) + preferential
    return preferential * table.bracket_for(stacked).rate


def compute_standard_vs_itemized(inputs: TaxInputs, standard: Decimal) -> Decimal:
    if not inputs.itemize:
        return standard
    itemized = (
        inputs.mortgage_interest
        + inputs.charitable
        + min(inputs.child_care, CHILD_CARE_CAP)
        + min(inputs.education, EDUCATION_CAP)
    )
    return max(itemized, standard)


def _compute_tax(
    inputs: TaxInputs,
    status: FilingStatus,
    ordinary_brackets: Optional[BracketTable] = None,
    preferential_brackets: Optional[BracketTable] = None,
) -> TaxResult:
    if ordinary_brackets is None:
        ordinary_brackets = ORDINARY_BRACKETS[status]
    if preferential_brackets is None:
        preferential_brackets = PREFERENTIAL_BRACKETS[status]

    ordinary_income = inputs.ordinary_income
    preferential_income = inputs.preferential_income

    self_employment_tax = inputs.salary * SELF_EMPLOYMENT_TAX_RATE if inputs.self_employed else ZERO
    agi = (
        ordinary_income
        - inputs.retirement_contributions
        - self_employment_tax / TWO
        - min(inputs.student_loan_interest, STUDENT_LOAN_INTEREST_CAP)
    )

    deduction = compute_standard_vs_itemized(inputs, STANDARD_DEDUCTIONS[status])
    taxable_income = max(ZERO, agi - deduction)

    ordinary_tax = evaluate_progressive_tax(taxable_income, ordinary_brackets)
    preferential_tax = evaluate_preferential_tax(taxable_income, preferential_income, preferential_brackets)
    supplemental_tax = taxable_income * inputs.supplemental_rate
    total_tax = ordinary_tax + preferential_tax + supplemental_tax + self_employment_tax

    gross_income = ordinary_income + preferential_income
    return TaxResult(
        gross_income=gross_income,
        agi=agi,
        deduction_applied=deduction,
        taxable_income=taxable_income,
        ordinary_tax=ordinary_tax,
        preferential_tax=preferential_tax,
        supplemental_tax=supplemental_tax,
        self_employment_tax=self_employment_tax,
        total_tax=total_tax,
        effective_rate=safe_divide(total_tax, gross_income) if gross_income > 0 else ZERO,
    )


def compute_individual_tax(
    inputs: TaxInputs,
    ordinary_brackets: Optional[BracketTable] = None,
    preferential_brackets: Optional[BracketTable] = None,
) -> TaxResult:
    """Compute one filer's tax under ``inputs.filing_status``.

    The bracket tables default to the reference data for the filing status;
    pass tables explicitly to evaluate another tax year.
    """
    return _compute_tax(inputs, inputs.filing_status, ordinary_brackets, preferential_brackets)


def combine_for_joint_return(first: TaxInputs, second: TaxInputs) -> TaxInputs:
    """Merge two filers into the inputs of one married-filing-jointly return.

    Amounts are summed before any cap is applied. The couple itemizes only
    when both spouses asked to, the supplemental rate is the average of the
    two and self-employment tax applies to the combined salary when either
    spouse is self-employed.
    """
    return TaxInputs(
        salary=first.salary + second.salary,
        interest=first.interest + second.interest,
        rental_income=first.rental_income + second.rental_income,
        short_term_gains=first.short_term_gains + second.short_term_gains,
        long_term_gains=first.long_term_gains + second.long_term_gains,
        qualified_dividends=first.qualified_dividends + second.qualified_dividends,
        retirement_contributions=first.retirement_contributions + second.retirement_contributions,
        student_loan_interest=first.student_loan_interest + second.student_loan_interest,
        mortgage_interest=first.mortgage_interest + second.mortgage_interest,
        charitable=first.charitable + second.charitable,
        child_care=first.child_care + second.child_care,
        education=first.education + second.education,
        itemize=first.itemize and second.itemize,
        supplemental_rate=(first.supplemental_rate + second.supplemental_rate) / TWO,
        self_employed=first.self_employed or second.self_employed,
        filing_status=FilingStatus.MARRIED,
    )


def compute_joint_tax(first: TaxInputs, second: TaxInputs) -> TaxResult:
    """Compute a married-filing-jointly return.

    This runs the individual pipeline once over the combined figures with
    the married tables; it is not the sum of two individual results.
    """
    return _compute_tax(combine_for_joint_return(first, second), FilingStatus.MARRIED)


def compare_marriage(first: TaxInputs, second: TaxInputs) -> MarriageTaxComparison:
    first_result = compute_individual_tax(first)
    second_result = compute_individual_tax(second)
    joint_result = compute_joint_tax(first, second)
    individual_total = first_result.total_tax + second_result.total_tax
    penalty = joint_result.total_tax - individual_total
    logger.debug("Joint tax %s vs individual total %s", joint_result.total_tax, individual_total)
    return MarriageTaxComparison(
        first=first_result,
        second=second_result,
        joint=joint_result,
        individual_total=individual_total,
        marriage_penalty=penalty,
    )
