"""Data models for the financial calculators.

This module defines the dataclasses exchanged with the calculation engines:
loan terms and amortization schedules, tax brackets and tax results, lease
terms and results, refinance comparisons and budget summaries. Every record
is frozen; an engine builds its result once from already-computed values and
nothing downstream mutates it.

Wherever the caller chooses which quantity is unknown (payment, duration or
rate), the choice is a small tagged dataclass (``SolveForPayment``,
``FixedRate``...) rather than a set of optional fields, so only one solve
mode can be expressed at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator, Mapping, Optional, Tuple, Union

from .errors import BracketTableError
from .utils import INFINITY, ZERO, Number, to_decimal


def _coerce(record: object, *names: str) -> None:
    """Replace the named attributes of a frozen dataclass with ``Decimal`` values."""
    for name in names:
        object.__setattr__(record, name, to_decimal(getattr(record, name)))


def _coerce_finite(record: object, *names: str) -> None:
    """Like ``_coerce`` but NaN and infinite values become zero."""
    for name in names:
        value = to_decimal(getattr(record, name))
        object.__setattr__(record, name, value if value.is_finite() else ZERO)


class CalculationStatus(str, Enum):
    """Outcome of a record-level calculation.

    ``PERPETUITY`` is a terminal state rather than a failure: the payment
    never exceeds the interest accruing on the balance.
    """

    OK = "ok"
    INVALID_INPUT = "invalid_input"
    PERPETUITY = "perpetuity"


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUALLY = "semiannually"
    ANNUALLY = "annually"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    PaymentFrequency.MONTHLY: 12,
    PaymentFrequency.QUARTERLY: 4,
    PaymentFrequency.SEMIANNUALLY: 2,
    PaymentFrequency.ANNUALLY: 1,
}


# ---------------------------------------------------------------------------
# Amortization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SolveForPayment:
    """The term is known; derive the periodic payment."""

    total_periods: int


@dataclass(frozen=True)
class SolveForDuration:
    """The periodic payment is known; derive how long the balance lasts."""

    payment: Decimal

    def __post_init__(self) -> None:
        _coerce(self, "payment")


LoanSolve = Union[SolveForPayment, SolveForDuration]


@dataclass(frozen=True)
class LoanTerms:
    """Terms of an amortizing balance (a loan or an annuity in payout).

    Attributes
    ----------
    principal: Decimal
        Starting balance.
    annual_rate: Decimal
        Nominal annual rate as a decimal fraction (``0.06`` for 6 %).
    solve: SolveForPayment | SolveForDuration
        Which of payment and duration is the unknown.
    periods_per_year: int
        Number of payments per year; the periodic rate is
        ``annual_rate / periods_per_year``.
    """

    principal: Decimal
    annual_rate: Decimal
    solve: LoanSolve
    periods_per_year: int = 12

    def __post_init__(self) -> None:
        _coerce(self, "principal", "annual_rate")

    @property
    def rate_per_period(self) -> Decimal:
        if self.periods_per_year <= 0:
            return ZERO
        return self.annual_rate / Decimal(self.periods_per_year)


@dataclass(frozen=True)
class ScheduleEntry:
    """One period of an amortization schedule.

    ``ending_balance`` always equals
    ``beginning_balance - (payment - interest)`` and is never negative; the
    final period's payment is trimmed so the balance lands exactly on zero.
    """

    period: int
    beginning_balance: Decimal
    payment: Decimal
    interest: Decimal
    principal_paid: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class YearSummary:
    year: int
    beginning_balance: Decimal
    payments: Decimal
    interest: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class DurationResult:
    """How many periods a balance lasts under a fixed payment.

    ``periods`` is fractional when solved analytically and ``Infinity`` when
    the payment never outpaces the interest (``depleted`` is then False).
    """

    periods: Decimal
    depleted: bool

    @property
    def is_perpetuity(self) -> bool:
        return not self.depleted


@dataclass(frozen=True)
class AmortizationResult:
    status: CalculationStatus
    payment: Decimal
    total_periods: Decimal
    total_paid: Decimal
    total_interest: Decimal
    principal_share: Decimal
    interest_share: Decimal
    depleted: bool
    schedule: Tuple[ScheduleEntry, ...] = ()

    @classmethod
    def empty(cls, status: CalculationStatus = CalculationStatus.INVALID_INPUT) -> AmortizationResult:
        return cls(
            status=status,
            payment=ZERO,
            total_periods=ZERO,
            total_paid=ZERO,
            total_interest=ZERO,
            principal_share=ZERO,
            interest_share=ZERO,
            depleted=False,
        )

    @classmethod
    def perpetuity(cls, payment: Decimal) -> AmortizationResult:
        return cls(
            status=CalculationStatus.PERPETUITY,
            payment=payment,
            total_periods=INFINITY,
            total_paid=INFINITY,
            total_interest=INFINITY,
            principal_share=ZERO,
            interest_share=ZERO,
            depleted=False,
        )


# ---------------------------------------------------------------------------
# Tax
# ---------------------------------------------------------------------------


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"


@dataclass(frozen=True)
class TaxBracket:
    """A slice of income taxed at one marginal rate.

    ``upper_bound`` of ``None`` means the bracket is unbounded.
    """

    lower_bound: Decimal
    upper_bound: Optional[Decimal]
    rate: Decimal

    def __post_init__(self) -> None:
        _coerce(self, "lower_bound", "rate")
        if self.upper_bound is not None:
            _coerce(self, "upper_bound")

    @property
    def width(self) -> Optional[Decimal]:
        if self.upper_bound is None:
            return None
        return self.upper_bound - self.lower_bound

    def contains(self, amount: Decimal) -> bool:
        """Return True when ``amount`` falls in this bracket (upper bound inclusive)."""
        if amount < self.lower_bound:
            return False
        return self.upper_bound is None or amount <= self.upper_bound


@dataclass(frozen=True)
class BracketTable:
    """An ordered, contiguous, gapless sequence of tax brackets.

    The table is validated once at construction. A malformed table is a
    programming error in the reference data, so it raises
    ``BracketTableError`` instead of producing an empty result.
    """

    brackets: Tuple[TaxBracket, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "brackets", tuple(self.brackets))
        self._validate()

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Optional[Number], Number]]) -> BracketTable:
        """Build a table from ``(upper_bound, rate)`` pairs starting at zero."""
        brackets = []
        lower: Decimal = ZERO
        for upper, rate in pairs:
            upper_value = None if upper is None else to_decimal(upper)
            brackets.append(TaxBracket(lower_bound=lower, upper_bound=upper_value, rate=to_decimal(rate)))
            if upper_value is not None:
                lower = upper_value
        return cls(tuple(brackets))

    def _validate(self) -> None:
        if not self.brackets:
            raise BracketTableError("Bracket table must contain at least one bracket")
        if self.brackets[0].lower_bound != 0:
            raise BracketTableError("First bracket must start at zero")
        last_index = len(self.brackets) - 1
        for index, bracket in enumerate(self.brackets):
            if bracket.rate < 0:
                raise BracketTableError(f"Bracket {index} has a negative rate")
            if bracket.upper_bound is None:
                if index != last_index:
                    raise BracketTableError(f"Only the last bracket may be unbounded (bracket {index})")
            elif bracket.upper_bound <= bracket.lower_bound:
                raise BracketTableError(f"Bracket {index} has an empty or inverted range")
            if index > 0:
                previous = self.brackets[index - 1]
                if bracket.lower_bound != previous.upper_bound:
                    kind = "gap" if bracket.lower_bound > previous.upper_bound else "overlap"
                    raise BracketTableError(f"Brackets {index - 1} and {index} have a {kind}")
        if self.brackets[last_index].upper_bound is not None:
            raise BracketTableError("Last bracket must be unbounded")

    def __iter__(self) -> Iterator[TaxBracket]:
        return iter(self.brackets)

    def __len__(self) -> int:
        return len(self.brackets)

    def bracket_for(self, amount: Decimal) -> TaxBracket:
        """Return the bracket ``amount`` falls in; negative amounts map to the first."""
        for bracket in self.brackets:
            if bracket.upper_bound is None or amount <= bracket.upper_bound:
                return bracket
        return self.brackets[-1]


@dataclass(frozen=True)
class TaxInputs:
    """One filer's annual figures.

    Preferential income (long-term gains and qualified dividends) is kept
    apart from ordinary income because it is taxed at stacked preferential
    rates. ``supplemental_rate`` is a flat state/local rate applied to
    taxable income.
    """

    salary: Decimal = ZERO
    interest: Decimal = ZERO
    rental_income: Decimal = ZERO
    short_term_gains: Decimal = ZERO
    long_term_gains: Decimal = ZERO
    qualified_dividends: Decimal = ZERO
    retirement_contributions: Decimal = ZERO
    student_loan_interest: Decimal = ZERO
    mortgage_interest: Decimal = ZERO
    charitable: Decimal = ZERO
    child_care: Decimal = ZERO
    education: Decimal = ZERO
    itemize: bool = False
    supplemental_rate: Decimal = ZERO
    self_employed: bool = False
    filing_status: FilingStatus = FilingStatus.SINGLE

    def __post_init__(self) -> None:
        _coerce_finite(
            self,
            "salary",
            "interest",
            "rental_income",
            "short_term_gains",
            "long_term_gains",
            "qualified_dividends",
            "retirement_contributions",
            "student_loan_interest",
            "mortgage_interest",
            "charitable",
            "child_care",
            "education",
            "supplemental_rate",
        )
        object.__setattr__(self, "filing_status", FilingStatus(self.filing_status))

    @property
    def ordinary_income(self) -> Decimal:
        return self.salary + self.interest + self.rental_income + self.short_term_gains

    @property
    def preferential_income(self) -> Decimal:
        return self.long_term_gains + self.qualified_dividends


@dataclass(frozen=True)
class TaxResult:
    gross_income: Decimal
    agi: Decimal
    deduction_applied: Decimal
    taxable_income: Decimal
    ordinary_tax: Decimal
    preferential_tax: Decimal
    supplemental_tax: Decimal
    self_employment_tax: Decimal
    total_tax: Decimal
    effective_rate: Decimal


@dataclass(frozen=True)
class MarriageTaxComparison:
    """Joint filing versus two single returns.

    A positive ``marriage_penalty`` means the couple pays more filing
    jointly; a negative one is a marriage bonus.
    """

    first: TaxResult
    second: TaxResult
    joint: TaxResult
    individual_total: Decimal
    marriage_penalty: Decimal

    @property
    def is_bonus(self) -> bool:
        return self.marriage_penalty < 0


# ---------------------------------------------------------------------------
# Lease
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FixedRate:
    """The nominal annual rate is known; derive the payment."""

    annual_rate: Decimal

    def __post_init__(self) -> None:
        _coerce(self, "annual_rate")


@dataclass(frozen=True)
class FixedPayment:
    """The periodic payment (tax included) is known; derive the implied rate."""

    payment: Decimal

    def __post_init__(self) -> None:
        _coerce(self, "payment")


LeaseSolve = Union[FixedRate, FixedPayment]


@dataclass(frozen=True)
class LeaseTerms:
    """Lease terms.

    The acquisition fee and security deposit are rolled into the capitalized
    cost; the down payment reduces it and is the only upfront cost.
    ``sales_tax_rate`` is applied on top of each periodic payment.
    """

    asset_value: Decimal
    residual_value: Decimal
    term_periods: int
    solve: LeaseSolve
    periods_per_year: int = 12
    acquisition_fee: Decimal = ZERO
    security_deposit: Decimal = ZERO
    down_payment: Decimal = ZERO
    sales_tax_rate: Decimal = ZERO

    def __post_init__(self) -> None:
        _coerce(
            self,
            "asset_value",
            "residual_value",
            "acquisition_fee",
            "security_deposit",
            "down_payment",
            "sales_tax_rate",
        )

    @staticmethod
    def residual_from_ratio(asset_value: Number, ratio: Number) -> Decimal:
        """Residual value expressed as a fraction of the asset value."""
        return to_decimal(asset_value) * to_decimal(ratio)

    @property
    def net_cap_cost(self) -> Decimal:
        return self.asset_value + self.acquisition_fee + self.security_deposit - self.down_payment


@dataclass(frozen=True)
class LeaseScheduleEntry:
    period: int
    depreciation: Decimal
    finance: Decimal
    payment: Decimal
    cumulative_depreciation: Decimal
    cumulative_finance: Decimal
    remaining_value: Decimal


@dataclass(frozen=True)
class LeaseYearSummary:
    year: int
    periods: int
    depreciation: Decimal
    finance: Decimal
    payment: Decimal
    cumulative_depreciation: Decimal
    cumulative_finance: Decimal
    remaining_value: Decimal


@dataclass(frozen=True)
class LeaseResult:
    """Decomposition of a lease payment.

    ``annual_rate`` is the input rate for fixed-rate leases and the implied
    rate for fixed-payment leases. ``total_finance`` is the lease
    equivalent of total interest.
    """

    status: CalculationStatus
    payment: Decimal
    base_payment: Decimal
    tax_per_period: Decimal
    depreciation_fee: Decimal
    finance_fee: Decimal
    annual_rate: Decimal
    net_cap_cost: Decimal
    residual_value: Decimal
    total_payments: Decimal
    total_depreciation: Decimal
    total_finance: Decimal
    upfront_costs: Decimal
    total_cost: Decimal
    depreciation_share: Decimal
    finance_share: Decimal
    schedule: Tuple[LeaseScheduleEntry, ...] = ()

    @classmethod
    def empty(cls) -> LeaseResult:
        return cls(
            status=CalculationStatus.INVALID_INPUT,
            payment=ZERO,
            base_payment=ZERO,
            tax_per_period=ZERO,
            depreciation_fee=ZERO,
            finance_fee=ZERO,
            annual_rate=ZERO,
            net_cap_cost=ZERO,
            residual_value=ZERO,
            total_payments=ZERO,
            total_depreciation=ZERO,
            total_finance=ZERO,
            upfront_costs=ZERO,
            total_cost=ZERO,
            depreciation_share=ZERO,
            finance_share=ZERO,
        )


# ---------------------------------------------------------------------------
# Refinance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KnownBalance:
    """The current payoff amount and payment are known directly."""

    remaining_balance: Decimal
    payment: Decimal

    def __post_init__(self) -> None:
        _coerce(self, "remaining_balance", "payment")


@dataclass(frozen=True)
class OriginalLoan:
    """Only the original loan is known; the balance is derived from it."""

    original_amount: Decimal
    original_term_periods: int
    periods_paid: int

    def __post_init__(self) -> None:
        _coerce(self, "original_amount")


CurrentLoanSource = Union[KnownBalance, OriginalLoan]


@dataclass(frozen=True)
class CurrentLoanInputs:
    annual_rate: Decimal
    source: CurrentLoanSource
    periods_per_year: int = 12

    def __post_init__(self) -> None:
        _coerce(self, "annual_rate")


@dataclass(frozen=True)
class NewLoanTerms:
    """Terms of the candidate loan.

    ``points_rate`` is the fraction of the new principal paid as points
    (``0.02`` for two points); ``fees`` are flat closing costs.
    """

    term_periods: int
    annual_rate: Decimal
    points_rate: Decimal = ZERO
    fees: Decimal = ZERO
    cash_out: Decimal = ZERO

    def __post_init__(self) -> None:
        _coerce(self, "annual_rate", "points_rate", "fees", "cash_out")


@dataclass(frozen=True)
class RefinancePolicy:
    """Thresholds of the refinance recommendation heuristic.

    A refinance with no overall savings is still recommended when it lowers
    the payment and breaks even in fewer than ``max_break_even_periods``
    periods (and, when ``require_break_even_within_term`` is set, before the
    new term ends).
    """

    max_break_even_periods: Decimal = Decimal(60)
    require_break_even_within_term: bool = True

    def __post_init__(self) -> None:
        _coerce(self, "max_break_even_periods")


@dataclass(frozen=True)
class CurrentLoanState:
    remaining_balance: Decimal
    payment: Decimal
    remaining_periods: Decimal
    total_remaining_payments: Decimal
    total_interest_remaining: Decimal


@dataclass(frozen=True)
class CandidateLoanState:
    principal: Decimal
    payment: Decimal
    term_periods: int
    total_payments: Decimal
    total_interest: Decimal
    upfront_costs: Decimal


@dataclass(frozen=True)
class RefinanceScheduleEntry:
    period: int
    current_balance: Decimal
    current_payment: Decimal
    current_principal: Decimal
    current_interest: Decimal
    new_balance: Decimal
    new_payment: Decimal
    new_principal: Decimal
    new_interest: Decimal
    cumulative_savings: Decimal


@dataclass(frozen=True)
class RefinanceComparison:
    """Existing loan versus a refinance candidate.

    ``break_even_periods`` is ``Infinity`` when the new payment is not lower
    than the current one.
    """

    status: CalculationStatus
    current: Optional[CurrentLoanState]
    candidate: Optional[CandidateLoanState]
    monthly_savings: Decimal
    total_savings: Decimal
    break_even_periods: Decimal
    recommended: bool
    schedule: Tuple[RefinanceScheduleEntry, ...] = ()

    @classmethod
    def empty(cls, status: CalculationStatus = CalculationStatus.INVALID_INPUT) -> RefinanceComparison:
        return cls(
            status=status,
            current=None,
            candidate=None,
            monthly_savings=ZERO,
            total_savings=ZERO,
            break_even_periods=ZERO,
            recommended=False,
        )


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


class PeriodUnit(str, Enum):
    MONTH = "month"
    YEAR = "year"
    WEEK = "week"
    BIWEEKLY = "biweekly"


class BudgetCategory(str, Enum):
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    DEBT = "debt"
    LIVING = "living"
    HEALTHCARE = "healthcare"
    CHILDREN_EDUCATION = "children_education"
    SAVINGS = "savings"
    MISCELLANEOUS = "miscellaneous"


@dataclass(frozen=True)
class BudgetItem:
    """An amount paid or received once per ``unit``.

    ``unit`` may be a ``PeriodUnit`` or its string value; unknown strings are
    treated as monthly by the normalizer.
    """

    amount: Decimal
    unit: Union[PeriodUnit, str] = PeriodUnit.MONTH
    label: str = ""

    def __post_init__(self) -> None:
        _coerce(self, "amount")


@dataclass(frozen=True)
class BudgetInputs:
    income: Tuple[BudgetItem, ...] = ()
    income_tax_rate: Decimal = ZERO
    expenses: Mapping[BudgetCategory, Tuple[BudgetItem, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _coerce(self, "income_tax_rate")
        object.__setattr__(self, "income", tuple(self.income))


@dataclass(frozen=True)
class BudgetResult:
    """Monthly budget summary; all ratios are fractions of net monthly income."""

    gross_monthly_income: Decimal
    gross_annual_income: Decimal
    net_monthly_income: Decimal
    net_annual_income: Decimal
    category_totals: Mapping[BudgetCategory, Decimal]
    total_expenses_monthly: Decimal
    total_expenses_annual: Decimal
    surplus_monthly: Decimal
    surplus_annual: Decimal
    savings_rate: Decimal
    debt_to_income: Decimal
    housing_ratio: Decimal
    transportation_ratio: Decimal
    category_shares: Mapping[BudgetCategory, Decimal]
    recommended_needs: Decimal
    recommended_wants: Decimal
    recommended_savings: Decimal
    actual_needs: Decimal
    actual_wants: Decimal
    actual_savings: Decimal
