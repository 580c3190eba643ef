"""Fully resolved inputs for one run of the projection engines."""

import math
from dataclasses import dataclass, replace, fields
from typing import Optional


def clamp_money(value) -> float:
    """Clamp a monetary value to a finite, non-negative float."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, number)


@dataclass(frozen=True)
class ProjectionInputs:
    """Everything the amortization engine and taxable comparator need.

    Contribution increase and withdrawal increase are whole percentages
    (3 means 3% per year). ``annual_return`` is a decimal (0.05 for 5%).
    The enforcement indices are filled in by balance-cap enforcement and
    are never set by callers directly.
    """
    start_month_index: int
    horizon_end_index: int
    starting_balance: float = 0.0
    monthly_contribution_current_year: float = 0.0
    monthly_contribution_future_years: float = 0.0
    monthly_withdrawal: float = 0.0
    contribution_increase_pct: float = 0.0
    withdrawal_increase_pct: float = 0.0
    contribution_end_index: Optional[int] = None
    withdrawal_start_index: Optional[int] = None
    annual_return: float = 0.0
    plan_max_balance: Optional[float] = None
    is_means_tested: bool = False
    stop_contribution_increases_after_year: Optional[int] = None

    # Enforcement results (see calc.balance_cap)
    balance_cap_stop_index: Optional[int] = None
    plan_max_stop_index: Optional[int] = None
    forced_withdrawal_start_index: Optional[int] = None

    def normalized(self) -> 'ProjectionInputs':
        """Return a copy with monetary fields clamped and indices ordered.

        Negative or non-finite money becomes 0, a horizon that ends before
        it starts collapses to a single month, and missing contribution end
        or withdrawal start default to "through the horizon" and "never".
        """
        start = int(self.start_month_index)
        end = max(start, int(self.horizon_end_index))
        contribution_end = end if self.contribution_end_index is None else int(self.contribution_end_index)
        withdrawal_start = end + 1 if self.withdrawal_start_index is None else int(self.withdrawal_start_index)
        annual_return = self.annual_return
        try:
            annual_return = float(annual_return)
        except (TypeError, ValueError):
            annual_return = 0.0
        if not math.isfinite(annual_return) or annual_return <= -1:
            annual_return = 0.0
        plan_max = self.plan_max_balance
        if plan_max is not None:
            plan_max = clamp_money(plan_max) or None
        return replace(
            self,
            start_month_index=start,
            horizon_end_index=end,
            starting_balance=clamp_money(self.starting_balance),
            monthly_contribution_current_year=clamp_money(self.monthly_contribution_current_year),
            monthly_contribution_future_years=clamp_money(self.monthly_contribution_future_years),
            monthly_withdrawal=clamp_money(self.monthly_withdrawal),
            contribution_increase_pct=clamp_money(self.contribution_increase_pct),
            withdrawal_increase_pct=clamp_money(self.withdrawal_increase_pct),
            contribution_end_index=contribution_end,
            withdrawal_start_index=withdrawal_start,
            annual_return=annual_return,
            plan_max_balance=plan_max,
        )

    def without_enforcement(self) -> 'ProjectionInputs':
        return replace(
            self,
            balance_cap_stop_index=None,
            plan_max_stop_index=None,
            forced_withdrawal_start_index=None,
        )

    @property
    def total_months(self) -> int:
        return self.horizon_end_index - self.start_month_index + 1

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
