"""Renderer classes for displaying projection results.

This module contains renderer classes that handle the presentation logic
for the different planner views. Each renderer takes the ProjectionResult
and prints the fields it needs, limited to the result's report window.
"""

import csv
import sys
from abc import ABC, abstractmethod
from typing import List, Optional

from model.ProjectionResult import ProjectionResult
from model.ScheduleData import YearRow, flatten_months, month_label
from model.field_metadata import get_short_name, wrap_header
from calc.report_window import aggregate_window, account_totals, smooth_benefits_for_display


MESSAGE_TEXT = {
    "BALANCE_CAP_CONTRIBUTIONS_STOPPED": "Contributions stop after {monthLabel} to keep the balance under the means-tested cap.",
    "FORCED_WITHDRAWALS_APPLIED": "Withdrawals are required starting {monthLabel}.",
    "PLAN_MAX_CONTRIBUTIONS_STOPPED": "Contributions stop in {monthLabel} when the balance reaches the plan maximum.",
    "WITHDRAWALS_LIMITED_TO_AVAILABLE_BALANCE": "Withdrawals are limited to the available balance from {monthLabel}.",
}


def format_multiline_headers(columns: List[tuple], year_width: int = 6) -> tuple[List[str], str]:
    """Format column headers with multi-line wrapping support.

    Args:
        columns: List of (header_text, width) tuples for each column
        year_width: Width of the Year column (default 6)

    Returns:
        Tuple of (list of header lines, separator line)
    """
    wrapped_headers = [(wrap_header(header, width), width) for header, width in columns]
    max_lines = max(len(lines) for lines, _ in wrapped_headers) if wrapped_headers else 1

    # Pad at top so the last header line sits above the data
    for lines, _ in wrapped_headers:
        while len(lines) < max_lines:
            lines.insert(0, "")

    header_lines = []
    for line_idx in range(max_lines):
        label = 'Year' if line_idx == max_lines - 1 else ''
        header_line = f"  {label:<{year_width}}"
        for lines, width in wrapped_headers:
            header_line += f" {lines[line_idx]:>{width}}"
        header_lines.append(header_line)

    sep_line = f"  {'-' * year_width}"
    for _, width in wrapped_headers:
        sep_line += f" {'-' * width}"

    return header_lines, sep_line


def parse_year_range(year_range: str, data: ProjectionResult) -> tuple:
    """Parse a year range string into start and end years.

    Args:
        year_range: String in format 'startYear-endYear', 'startYear-', or '-endYear'
        data: ProjectionResult to get default years from

    Returns:
        Tuple of (start_year, end_year)
    """
    if '-' not in year_range:
        year = int(year_range)
        return (year, year)

    parts = year_range.split('-')
    start_year = int(parts[0]) if parts[0] else data.first_year
    end_year = int(parts[1]) if parts[1] else data.last_year
    return (start_year, end_year)


def window_rows(rows: List[YearRow], data: ProjectionResult) -> List[YearRow]:
    """Rows truncated at the report window's last month."""
    if data.window is None:
        return rows
    return aggregate_window(rows, data.window.end_index)


class BaseRenderer(ABC):
    """Abstract base class for all renderers."""

    def __init__(self, start_year: int = None, end_year: int = None):
        """Initialize with optional year range.

        Args:
            start_year: First year to display (defaults to the first projected year)
            end_year: Last year to display (defaults to the end of the report window)
        """
        self.start_year = start_year
        self.end_year = end_year

    def _in_range(self, year: int) -> bool:
        if self.start_year is not None and year < self.start_year:
            return False
        if self.end_year is not None and year > self.end_year:
            return False
        return True

    @abstractmethod
    def render(self, data: ProjectionResult) -> None:
        """Render the data to output.

        Args:
            data: The ProjectionResult to display
        """
        pass


class SummaryRenderer(BaseRenderer):
    """Renderer for the plan summary: assumptions, limits and ending values."""

    def render(self, data: ProjectionResult) -> None:
        print()
        print("=" * 60)
        print(f"{'ABLE PLAN SUMMARY':^60}")
        print("=" * 60)

        inputs = data.inputs
        print()
        print("-" * 60)
        print("ASSUMPTIONS")
        print("-" * 60)
        print(f"  {'Plan State:':<40} {data.plan_state_code:>15}")
        print(f"  {'Residency State:':<40} {data.residency_state_code:>15}")
        print(f"  {'Filing Status:':<40} {data.filing_status:>15}")
        print(f"  {'AGI:':<40} ${data.agi:>14,.2f}")
        print(f"  {'Annual Return (' + data.annual_return_source + '):':<40} {data.annual_return:>15.2%}")
        print(f"  {'Horizon Years (' + data.horizon_source + '):':<40} {data.horizon_years:>15}")
        print(f"  {'First Month:':<40} {month_label(inputs.start_month_index):>15}")
        print(f"  {'Last Month:':<40} {month_label(inputs.horizon_end_index):>15}")

        state = data.incentive
        print()
        print("-" * 60)
        print("CONTRIBUTION LIMITS")
        print("-" * 60)
        print(f"  {'Work to ABLE Status:':<40} {state.status.value:>15}")
        print(f"  {'Dialogue Step:':<40} {state.mode.value:>15}")
        if state.combined_annual_limit is not None:
            print(f"  {'Combined Annual Limit:':<40} ${state.combined_annual_limit:>14,.2f}")
        if state.auto_adjust_applied:
            print(f"  {'Monthly Contribution (adjusted):':<40} ${state.plan.monthly_future_years:>14,.2f}")
        if data.resolution_pending:
            print("  Contributions are projected at the base limit until the Work to ABLE questions are answered.")
        if inputs.stop_contribution_increases_after_year is not None:
            print(f"  {'Increases Stop After Plan Year:':<40} {inputs.stop_contribution_increases_after_year:>15}")

        credit = data.savers_credit
        print()
        print("-" * 60)
        print("SAVER'S CREDIT")
        print("-" * 60)
        print(f"  {'Status:':<40} {credit.status:>15}")
        if credit.credit_percent is not None:
            print(f"  {'Credit Rate:':<40} {credit.credit_percent:>15.0%}")
        for reason in credit.reasons:
            print(f"  - {reason}")

        rows = window_rows(data.schedule, data)
        taxable_rows = window_rows(data.taxable_schedule, data)
        able = account_totals(rows)
        taxable = account_totals(taxable_rows)
        print()
        print("-" * 60)
        print(f"TOTALS ({data.window.years if data.window else data.horizon_years} YEARS)")
        print("-" * 60)
        print(f"  {'Contributions:':<40} ${able['contribution']:>14,.2f}")
        print(f"  {'Withdrawals:':<40} ${able['withdrawal']:>14,.2f}")
        print(f"  {'Earnings:':<40} ${able['earnings']:>14,.2f}")
        credit_label = "Saver's Credit:"
        print(f"  {credit_label:<40} ${able['credit_amount']:>14,.2f}")
        print(f"  {'State Benefit:':<40} ${able['state_benefit_amount']:>14,.2f}")
        print(f"  {'-' * 40}")
        print(f"  {'ABLE Ending Balance:':<40} ${able['ending_balance']:>14,.2f}")
        print(f"  {'Taxable Ending Balance:':<40} ${taxable['ending_balance']:>14,.2f}")
        print(f"  {'Taxes Paid By Taxable Account:':<40} ${taxable['federal_tax'] + taxable['state_tax']:>14,.2f}")

        ending = data.ending_value
        if ending is not None and ending.depletion_eligible:
            print(f"  Account is depleted in {ending.depletion_label}.")

        if data.messages or data.notes:
            print()
            print("-" * 60)
            print("MESSAGES")
            print("-" * 60)
            for message in data.messages:
                text = MESSAGE_TEXT.get(message.code.value, message.code.value)
                print(f"  {text.format(monthLabel=message.month_label)}")
            for note in data.notes:
                print(f"  {note}")
        print("=" * 60)
        print()


class ScheduleRenderer(BaseRenderer):
    """Renderer for the year-by-year ABLE account schedule."""

    def render(self, data: ProjectionResult) -> None:
        print()
        print("=" * 100)
        print(f"{'ABLE ACCOUNT SCHEDULE':^100}")
        print("=" * 100)
        print()

        columns = [
            (get_short_name("contribution"), 14),
            (get_short_name("withdrawal"), 14),
            (get_short_name("earnings"), 14),
            (get_short_name("credit_amount"), 12),
            (get_short_name("state_benefit_amount"), 12),
            (get_short_name("ending_balance"), 16),
        ]
        header_lines, sep_line = format_multiline_headers(columns)
        for line in header_lines:
            print(line)
        print(sep_line)

        for row in window_rows(data.schedule, data):
            if not self._in_range(row.year):
                continue
            print(f"  {row.year:<6} ${row.contribution:>13,.2f} ${row.withdrawal:>13,.2f} ${row.earnings:>13,.2f} ${row.credit_amount:>11,.2f} ${row.state_benefit_amount:>11,.2f} ${row.ending_balance:>15,.2f}")
        print()


class ComparisonRenderer(BaseRenderer):
    """Renderer for ABLE versus taxable account balances."""

    def render(self, data: ProjectionResult) -> None:
        print()
        print("=" * 90)
        print(f"{'ABLE VS TAXABLE':^90}")
        print("=" * 90)
        print()

        columns = [
            (get_short_name("ending_balance"), 16),
            (get_short_name("taxable_earnings"), 14),
            (get_short_name("taxable_tax"), 14),
            (get_short_name("taxable_ending_balance"), 16),
            ("Difference", 14),
        ]
        header_lines, sep_line = format_multiline_headers(columns)
        for line in header_lines:
            print(line)
        print(sep_line)

        taxable_by_year = {y.year: y for y in window_rows(data.taxable_schedule, data)}
        for row in window_rows(data.schedule, data):
            if not self._in_range(row.year):
                continue
            taxable = taxable_by_year.get(row.year)
            if taxable is None:
                continue
            tax = taxable.federal_tax + taxable.state_tax
            diff = row.ending_balance - taxable.ending_balance
            print(f"  {row.year:<6} ${row.ending_balance:>15,.2f} ${taxable.earnings:>13,.2f} ${tax:>13,.2f} ${taxable.ending_balance:>15,.2f} ${diff:>13,.2f}")
        print()


class BenefitsRenderer(BaseRenderer):
    """Renderer for monthly tax benefits, smoothed across each year."""

    def render(self, data: ProjectionResult) -> None:
        print()
        print("=" * 60)
        print(f"{'TAX BENEFITS':^60}")
        print("=" * 60)
        rows = smooth_benefits_for_display(window_rows(data.schedule, data))
        total_credit = 0.0
        total_benefit = 0.0
        for row in rows:
            if not self._in_range(row.year):
                continue
            total_credit += row.credit_amount
            total_benefit += row.state_benefit_amount
            print(f"  {row.year:<6} Saver's Credit ${row.credit_amount:>10,.2f}  State ${row.state_benefit_amount:>10,.2f}  (monthly ${row.months[0].credit_amount + row.months[0].state_benefit_amount:,.2f})")
        print(f"  {'-' * 56}")
        print(f"  {'Total':<6} Saver's Credit ${total_credit:>10,.2f}  State ${total_benefit:>10,.2f}")
        print()


class CsvRenderer(BaseRenderer):
    """Renderer that writes the monthly schedule as CSV rows."""

    HEADER = ["Month", "Contribution", "Withdrawal", "Earnings", "Saver's Credit",
              "State Benefit", "Ending Balance", "Taxable Ending Balance", "Status"]

    def __init__(self, start_year: int = None, end_year: int = None, stream=None):
        super().__init__(start_year, end_year)
        self.stream = stream

    def rows(self, data: ProjectionResult) -> List[list]:
        taxable = {m.month_index: m for m in flatten_months(window_rows(data.taxable_schedule, data))}
        out = [list(self.HEADER)]
        for m in flatten_months(window_rows(data.schedule, data)):
            if not self._in_range(m.year):
                continue
            t = taxable.get(m.month_index)
            out.append([
                m.label,
                f"{m.contribution:.2f}",
                f"{m.withdrawal:.2f}",
                f"{m.earnings:.2f}",
                f"{m.credit_amount:.2f}",
                f"{m.state_benefit_amount:.2f}",
                f"{m.ending_balance:.2f}",
                f"{t.ending_balance:.2f}" if t else "",
                ";".join(sorted(c.value for c in m.status_codes)),
            ])
        return out

    def render(self, data: ProjectionResult) -> None:
        writer = csv.writer(self.stream or sys.stdout)
        writer.writerows(self.rows(data))


# Registry mapping mode names to renderer classes
RENDERER_REGISTRY = {
    'Summary': SummaryRenderer,
    'Schedule': ScheduleRenderer,
    'Comparison': ComparisonRenderer,
    'Benefits': BenefitsRenderer,
    'Csv': CsvRenderer,
}
