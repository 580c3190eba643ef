"""Federal Saver's Credit and state benefit attribution.

Both benefits are computed once per calendar year from that year's
contributions and attributed to December. When the projection ends before
December the amount lands on the year's last simulated month instead, so
every year's benefit still appears in exactly one month.
"""

from dataclasses import replace
from typing import List, Tuple

from model.ScheduleData import YearRow
from tax.FederalDetails import FederalDetails
from tax.StateDetails import StateDetails


class BenefitCalculator:
    """Annotates schedules with yearly tax-benefit amounts."""

    def __init__(self, federal: FederalDetails, state: StateDetails):
        self.federal = federal
        self.state = state

    def yearly_benefits(self, contribution: float, agi: float, filing_status: str,
                        state_code: str, credit_eligible: bool) -> Tuple[float, float]:
        """Returns (federal credit, state benefit) for one year's contributions."""
        credit = self.federal.saversCredit(contribution, agi, filing_status) if credit_eligible else 0.0
        state_benefit = self.state.benefit(contribution, agi, state_code, filing_status)
        return credit, state_benefit

    def enrich(self, year_rows: List[YearRow], agi: float, filing_status: str,
               state_code: str, credit_eligible: bool) -> List[YearRow]:
        """Return new year rows with benefits attributed to each year's December.

        Args:
            year_rows: schedule from the amortization engine
            agi: filer's adjusted gross income
            filing_status: filer's filing status
            state_code: residency state for the state benefit
            credit_eligible: whether the filer passed the Saver's Credit checks

        Returns:
            New YearRow list; the input rows are left untouched
        """
        filing_status = self.federal.filingStatus(filing_status)
        enriched = []
        for year_row in year_rows:
            if not year_row.months:
                enriched.append(year_row)
                continue
            credit, state_benefit = self.yearly_benefits(
                year_row.contribution, agi, filing_status, state_code, credit_eligible)
            target = next((i for i, m in enumerate(year_row.months) if m.month == 12), len(year_row.months) - 1)
            months = [
                replace(m, credit_amount=credit, state_benefit_amount=state_benefit) if i == target
                else replace(m, credit_amount=0.0, state_benefit_amount=0.0)
                for i, m in enumerate(year_row.months)
            ]
            enriched.append(type(year_row).from_months(year_row.year, months))
        return enriched
