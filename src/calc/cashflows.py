"""Monthly contribution and withdrawal streams shared by both account engines.

Contributions run from the first month through the contribution end,
switching from the current-year monthly amount to the future-year amount at
the first calendar-year boundary. Every 12 months after the start an annual
increase compounds the running contribution, unless increases were stopped
after a given plan year. Withdrawals start at the withdrawal start month and
compound on their own anniversary.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from model.ProjectionInputs import ProjectionInputs


MAX_MONTHS = 900


@dataclass(frozen=True)
class Cashflow:
    month_index: int
    contribution: float
    withdrawal: float    # requested; engines may clamp to the available balance


def iter_cashflows(inputs: ProjectionInputs,
                   withdrawal_start_index: Optional[int] = None,
                   max_months: int = MAX_MONTHS) -> Iterator[Cashflow]:
    """Yield the requested cash flow for every month of the horizon.

    Args:
        inputs: normalized projection inputs
        withdrawal_start_index: overrides inputs.withdrawal_start_index
            (used when withdrawals are forced to start early)
        max_months: hard cap on the number of months produced
    """
    start = inputs.start_month_index
    contribution_end = inputs.contribution_end_index
    withdrawal_start = inputs.withdrawal_start_index if withdrawal_start_index is None else withdrawal_start_index
    months = min(max(0, inputs.total_months), max_months)

    contribution_factor = 1 + inputs.contribution_increase_pct / 100
    withdrawal_factor = 1 + inputs.withdrawal_increase_pct / 100
    stop_after = inputs.stop_contribution_increases_after_year
    start_year = start // 12

    multiplier = 1.0
    withdrawal = inputs.monthly_withdrawal

    for offset in range(months):
        index = start + offset
        base = (inputs.monthly_contribution_current_year if index // 12 == start_year
                else inputs.monthly_contribution_future_years)

        contribution_active = start <= index <= contribution_end
        if contribution_active and inputs.contribution_increase_pct > 0 and offset > 0 and offset % 12 == 0:
            completed_years = offset // 12
            # stop_after=5 skips the increase at the start of year 6
            if stop_after is None or completed_years < stop_after:
                multiplier *= contribution_factor

        since_withdrawal = index - withdrawal_start
        withdrawal_active = since_withdrawal >= 0
        if withdrawal_active and inputs.withdrawal_increase_pct > 0 and since_withdrawal > 0 and since_withdrawal % 12 == 0:
            withdrawal *= withdrawal_factor

        yield Cashflow(
            month_index=index,
            contribution=base * multiplier if contribution_active else 0.0,
            withdrawal=withdrawal if withdrawal_active else 0.0,
        )
