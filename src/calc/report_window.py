"""Report window selection and year-level aggregation for display."""

import math
from dataclasses import replace
from typing import List, Optional, Union

from model.ProjectionResult import ReportWindow, EndingValueInfo
from model.ScheduleData import YearRow, MonthlyRow, flatten_months, group_by_year


WINDOW_OPTIONS = (3, 10, 20, 40, "max")
DEPLETION_THRESHOLD = 0.01

WindowOption = Union[int, str]


def depletion_month(year_rows: List[YearRow]) -> Optional[int]:
    """First month whose ending balance falls to the depletion threshold."""
    return next((m.month_index for m in flatten_months(year_rows)
                 if m.ending_balance <= DEPLETION_THRESHOLD), None)


def build_report_window(requested: WindowOption, start_index: int, horizon_end_index: int,
                        horizon_years: int, *schedules: List[YearRow]) -> ReportWindow:
    """Resolve the months a report shows.

    The effective end is the earlier of the horizon end and the first month
    any of the given schedules is depleted. The largest selectable window
    covers that span in whole years, rounded up to an even count and
    clamped to [1, horizon_years]. Unknown requests fall back to "max".

    Args:
        requested: one of WINDOW_OPTIONS
        start_index: first projected month
        horizon_end_index: last month of the horizon
        horizon_years: horizon length in years
        schedules: account schedules to check for depletion

    Returns:
        ReportWindow with the chosen year count and last displayed month
    """
    effective_end = horizon_end_index
    for schedule in schedules:
        depleted = depletion_month(schedule)
        if depleted is not None:
            effective_end = min(effective_end, depleted)

    months = max(1, effective_end - start_index + 1)
    years = math.ceil(months / 12)
    if years % 2:
        years += 1
    max_years = min(max(1, years), max(1, horizon_years))

    if requested in WINDOW_OPTIONS and requested != "max":
        chosen = min(int(requested), max_years)
    else:
        chosen = max_years

    return ReportWindow(
        start_index=start_index,
        effective_end_index=effective_end,
        max_years=max_years,
        years=chosen,
        end_index=start_index + chosen * 12 - 1,
    )


def aggregate_window(year_rows: List[YearRow], end_index: int) -> List[YearRow]:
    """Re-sum month rows up to and including end_index into year rows."""
    row_cls = type(year_rows[0]) if year_rows else YearRow
    months = [m for m in flatten_months(year_rows) if m.month_index <= end_index]
    return group_by_year(months, row_cls)


def smooth_benefits_for_display(year_rows: List[YearRow]) -> List[YearRow]:
    """Spread each year's credit and state benefit evenly over its months.

    For charts only. Returns new rows and leaves the yearly totals alone.
    """
    smoothed = []
    for year_row in year_rows:
        n = len(year_row.months)
        if not n:
            smoothed.append(year_row)
            continue
        credit = year_row.credit_amount / n
        benefit = year_row.state_benefit_amount / n
        months = [replace(m, credit_amount=credit, state_benefit_amount=benefit) for m in year_row.months]
        smoothed.append(replace(year_row, months=months))
    return smoothed


def ending_value_info(year_rows: List[YearRow], horizon_end_index: int,
                      has_configured_withdrawals: bool) -> EndingValueInfo:
    """Ending balance and depletion details for the summary card."""
    months: List[MonthlyRow] = flatten_months(year_rows)
    if not months:
        return EndingValueInfo(None, None, False, False)

    depleted = depletion_month(year_rows)
    has_withdrawals = any(m.withdrawal > 0 for m in months)
    stop_after = (
        depleted is not None
        and not any(m.month_index > depleted and m.withdrawal > 0 for m in months)
    )
    return EndingValueInfo(
        ending_balance=months[-1].ending_balance,
        depletion_month_index=depleted,
        depletion_eligible=(has_configured_withdrawals and has_withdrawals
                            and depleted is not None and depleted < horizon_end_index),
        withdrawals_stop_after_depletion=stop_after,
    )


def account_totals(year_rows: List[YearRow]) -> dict:
    """Lifetime totals across a schedule."""
    return {
        "contribution": sum(y.contribution for y in year_rows),
        "withdrawal": sum(y.withdrawal for y in year_rows),
        "earnings": sum(y.earnings for y in year_rows),
        "federal_tax": sum(y.federal_tax for y in year_rows),
        "state_tax": sum(y.state_tax for y in year_rows),
        "credit_amount": sum(y.credit_amount for y in year_rows),
        "state_benefit_amount": sum(y.state_benefit_amount for y in year_rows),
        "ending_balance": year_rows[-1].ending_balance if year_rows else 0.0,
    }
