"""Month and year rows produced by the projection engines.

Month positions are absolute month counts (``year * 12 + (month - 1)``) so
that windows, horizons and enforcement points can be compared with plain
integer arithmetic. Year rows are always derived from their month rows so
the yearly totals equal the sum of the months they contain.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, List


MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class StatusCode(str, Enum):
    """Enforcement outcomes attached to individual month rows."""
    BALANCE_CAP_CONTRIBUTIONS_STOPPED = "BALANCE_CAP_CONTRIBUTIONS_STOPPED"
    PLAN_MAX_CONTRIBUTIONS_STOPPED = "PLAN_MAX_CONTRIBUTIONS_STOPPED"
    FORCED_WITHDRAWALS_APPLIED = "FORCED_WITHDRAWALS_APPLIED"
    WITHDRAWALS_LIMITED_TO_AVAILABLE_BALANCE = "WITHDRAWALS_LIMITED_TO_AVAILABLE_BALANCE"


def month_index(year: int, month: int) -> int:
    """Absolute month index for a calendar year and 1-based month."""
    return year * 12 + (month - 1)


def month_label(index: int) -> str:
    return f"{MONTH_NAMES[index % 12]} {index // 12}"


def months_remaining_in_year(index: int) -> int:
    """Months left in the calendar year, counting the month at ``index``."""
    remaining = 12 - (index % 12)
    return remaining if remaining > 0 else 12


@dataclass
class MonthlyRow:
    """One simulated month of the tax-advantaged account."""
    month_index: int
    contribution: float = 0.0
    withdrawal: float = 0.0
    earnings: float = 0.0
    ending_balance: float = 0.0
    federal_tax: float = 0.0
    state_tax: float = 0.0
    credit_amount: float = 0.0          # Federal Saver's Credit attributed to this month
    state_benefit_amount: float = 0.0   # State deduction/credit value attributed to this month
    status_codes: FrozenSet[StatusCode] = frozenset()

    @property
    def year(self) -> int:
        return self.month_index // 12

    @property
    def month(self) -> int:
        return self.month_index % 12 + 1

    @property
    def label(self) -> str:
        return month_label(self.month_index)


@dataclass
class YearRow:
    """Calendar-year aggregate of a run of month rows."""
    year: int
    contribution: float = 0.0
    withdrawal: float = 0.0
    earnings: float = 0.0
    federal_tax: float = 0.0
    state_tax: float = 0.0
    credit_amount: float = 0.0
    state_benefit_amount: float = 0.0
    ending_balance: float = 0.0
    months: List[MonthlyRow] = field(default_factory=list)

    @classmethod
    def from_months(cls, year: int, months: List[MonthlyRow]):
        """Build the aggregate for ``year`` by summing ``months`` in order."""
        return cls(
            year=year,
            contribution=sum(m.contribution for m in months),
            withdrawal=sum(m.withdrawal for m in months),
            earnings=sum(m.earnings for m in months),
            federal_tax=sum(m.federal_tax for m in months),
            state_tax=sum(m.state_tax for m in months),
            credit_amount=sum(m.credit_amount for m in months),
            state_benefit_amount=sum(m.state_benefit_amount for m in months),
            ending_balance=months[-1].ending_balance if months else 0.0,
            months=list(months),
        )

    @property
    def first_month_index(self) -> int:
        return self.months[0].month_index if self.months else self.year * 12

    @property
    def last_month_index(self) -> int:
        return self.months[-1].month_index if self.months else self.year * 12 + 11


class TaxableMonthRow(MonthlyRow):
    """One month of the ordinary taxable comparison account.

    ``earnings`` holds the investment return and the tax fields hold the
    tax owed on that return, spread evenly across the calendar year.
    """


class TaxableYearRow(YearRow):
    """Calendar-year aggregate of the taxable comparison account."""


def group_by_year(month_rows: Iterable[MonthlyRow], row_cls=YearRow) -> List[YearRow]:
    """Group consecutive month rows into year rows keyed by calendar year."""
    years: List[YearRow] = []
    current: List[MonthlyRow] = []
    for row in month_rows:
        if current and row.year != current[-1].year:
            years.append(row_cls.from_months(current[-1].year, current))
            current = []
        current.append(row)
    if current:
        years.append(row_cls.from_months(current[-1].year, current))
    return years


def flatten_months(year_rows: Iterable[YearRow]) -> List[MonthlyRow]:
    return [m for y in year_rows for m in y.months]
