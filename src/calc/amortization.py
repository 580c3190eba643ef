"""Month-by-month balance simulation for the tax-advantaged account."""

from typing import List

from model.ProjectionInputs import ProjectionInputs
from model.ScheduleData import MonthlyRow, YearRow, StatusCode, group_by_year
from calc.cashflows import iter_cashflows, MAX_MONTHS


def monthly_rate(annual_return: float) -> float:
    """Monthly compounding rate equivalent to an annual return.

    0.06 annual gives about 0.0048675 per month, not 0.005.
    """
    return (1 + annual_return) ** (1 / 12) - 1


class AmortizationCalculator:
    """Builds the tax-advantaged account schedule.

    Cash flows post at the start of each month and earnings accrue on the
    balance after them, so a month ends at
    prior + contribution - withdrawal + earnings. Withdrawals never take the
    balance below zero. Contribution stops and forced withdrawal starts are
    read from the enforcement fields of the inputs (see calc.balance_cap).
    """

    def __init__(self, max_months: int = MAX_MONTHS):
        self.max_months = max_months

    def build_schedule(self, inputs: ProjectionInputs) -> List[YearRow]:
        """Build the schedule for the given inputs.

        Args:
            inputs: projection inputs (normalized here, so raw values are fine)

        Returns:
            YearRow list in calendar order, each holding its MonthlyRows
        """
        inputs = inputs.normalized()
        rate = monthly_rate(inputs.annual_return)

        cap_stop = inputs.balance_cap_stop_index
        plan_stop = inputs.plan_max_stop_index
        forced_start = inputs.forced_withdrawal_start_index
        withdrawal_start = inputs.withdrawal_start_index
        if forced_start is not None:
            withdrawal_start = min(withdrawal_start, forced_start)

        balance = inputs.starting_balance
        rows: List[MonthlyRow] = []
        for flow in iter_cashflows(inputs, withdrawal_start, self.max_months):
            codes = set()
            contribution = flow.contribution
            if cap_stop is not None and flow.month_index > cap_stop:
                contribution = 0.0
                codes.add(StatusCode.BALANCE_CAP_CONTRIBUTIONS_STOPPED)
            if plan_stop is not None and flow.month_index >= plan_stop:
                contribution = 0.0
                codes.add(StatusCode.PLAN_MAX_CONTRIBUTIONS_STOPPED)
            if forced_start is not None and flow.month_index >= forced_start:
                codes.add(StatusCode.FORCED_WITHDRAWALS_APPLIED)

            available = balance + contribution
            withdrawal = flow.withdrawal
            if withdrawal > available:
                withdrawal = available
                codes.add(StatusCode.WITHDRAWALS_LIMITED_TO_AVAILABLE_BALANCE)

            after_cashflow = available - withdrawal
            earnings = max(0.0, after_cashflow * rate)
            balance = after_cashflow + earnings

            rows.append(MonthlyRow(
                month_index=flow.month_index,
                contribution=contribution,
                withdrawal=withdrawal,
                earnings=earnings,
                ending_balance=balance,
                status_codes=frozenset(codes),
            ))

        return group_by_year(rows)
