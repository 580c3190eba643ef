from typing import List

from model.ProjectionInputs import ProjectionInputs
from model.ScheduleData import TaxableMonthRow, TaxableYearRow
from tax.FederalDetails import FederalDetails
from tax.StateDetails import StateDetails
from calc.amortization import monthly_rate
from calc.cashflows import iter_cashflows, MAX_MONTHS


class TaxableAccountCalculator:
    """Calculator for an ordinary taxable account fed the same cash flows.

    Used only as a comparison baseline: no contribution limits, balance caps
    or plan maximums apply. Each calendar year's investment return is taxed
    as the federal and state liability the return adds on top of the
    filer's AGI. The tax normally comes out of the balance in the year's
    last month. When a withdrawal would empty the account earlier, the tax
    on the year's earnings so far is taken first and the withdrawal gets
    what is left. Tax is shown spread evenly across the year's month rows.
    """

    def __init__(self, federal: FederalDetails, state: StateDetails, max_months: int = MAX_MONTHS):
        """Initialize with the federal and state tax details.

        Args:
            federal: FederalDetails for federal brackets
            state: StateDetails for state brackets
            max_months: hard cap on simulated months
        """
        self.federal = federal
        self.state = state
        self.max_months = max_months

    def build_schedule(self, inputs: ProjectionInputs, agi: float, filing_status: str, state_code: str) -> List[TaxableYearRow]:
        """Build the taxable account schedule.

        Args:
            inputs: the same projection inputs used for the tax-advantaged account
            agi: filer's adjusted gross income
            filing_status: filer's filing status
            state_code: residency state used for state tax

        Returns:
            TaxableYearRow list in calendar order
        """
        inputs = inputs.normalized().without_enforcement()
        rate = monthly_rate(inputs.annual_return)
        filing_status = self.federal.filingStatus(filing_status)

        balance = inputs.starting_balance
        years: List[TaxableYearRow] = []
        year = _TaxYear()

        for flow in iter_cashflows(inputs, max_months=self.max_months):
            if year.months and flow.month_index // 12 != year.months[-1]["month_index"] // 12:
                row, balance = self._close_year(year, balance, agi, filing_status, state_code)
                years.append(row)
                year = _TaxYear()

            available = balance + flow.contribution
            reserved = 0.0
            if year.untaxed_earnings > 0 and available > 0 and flow.withdrawal >= available:
                reserved = self._post_tax(year, available, agi, filing_status, state_code)

            distributable = available - reserved
            withdrawal = min(flow.withdrawal, distributable)
            after_cashflow = distributable - withdrawal
            earnings = max(0.0, after_cashflow * rate)
            balance = after_cashflow + earnings
            year.untaxed_earnings += earnings
            year.months.append({
                "month_index": flow.month_index,
                "contribution": flow.contribution,
                "withdrawal": withdrawal,
                "earnings": earnings,
                "ending_balance": balance,
            })

        if year.months:
            row, balance = self._close_year(year, balance, agi, filing_status, state_code)
            years.append(row)
        return years

    def _tax_due(self, year: '_TaxYear', agi: float, filing_status: str, state_code: str):
        """Federal and state tax on the year's untaxed earnings, stacked on earlier taxed earnings."""
        base = agi + year.taxed_earnings
        federal_tax = self.federal.taxOnAdditionalIncome(base, year.untaxed_earnings, filing_status)
        state_tax = self.state.taxOnAdditionalIncome(base, year.untaxed_earnings, state_code, filing_status)
        return federal_tax, state_tax

    def _post_tax(self, year: '_TaxYear', balance: float, agi: float, filing_status: str, state_code: str) -> float:
        """Charge the tax on the year's untaxed earnings against balance. Returns the amount taken."""
        federal_tax, state_tax = self._tax_due(year, agi, filing_status, state_code)
        total_tax = federal_tax + state_tax
        paid = min(max(0.0, balance), total_tax)
        if total_tax > 0:
            year.federal_tax += federal_tax * paid / total_tax
            year.state_tax += state_tax * paid / total_tax
        year.taxed_earnings += year.untaxed_earnings
        year.untaxed_earnings = 0.0
        return paid

    def _close_year(self, year: '_TaxYear', balance: float, agi: float, filing_status: str, state_code: str):
        """Tax the year's remaining earnings and build its rows. Returns (row, balance after tax)."""
        balance -= self._post_tax(year, balance, agi, filing_status, state_code)
        balance = max(0.0, balance)

        n = len(year.months)
        months = []
        for i, m in enumerate(year.months):
            months.append(TaxableMonthRow(
                month_index=m["month_index"],
                contribution=m["contribution"],
                withdrawal=m["withdrawal"],
                earnings=m["earnings"],
                ending_balance=balance if i == n - 1 else m["ending_balance"],
                federal_tax=year.federal_tax / n,
                state_tax=year.state_tax / n,
            ))
        calendar_year = year.months[-1]["month_index"] // 12
        return TaxableYearRow.from_months(calendar_year, months), balance


class _TaxYear:
    """Running totals for the calendar year being simulated."""

    def __init__(self):
        self.months: List[dict] = []
        self.untaxed_earnings = 0.0
        self.taxed_earnings = 0.0
        self.federal_tax = 0.0
        self.state_tax = 0.0
