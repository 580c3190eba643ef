import os
import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from tax.TaxBrackets import TaxBracket, bracketsFromConfig, computeProgressiveTax, marginalRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateBenefitConfig:
    """State tax treatment of account contributions.

    kind is one of 'none', 'deduction' or 'credit'. cap_amount limits the
    qualifying contribution (0 means uncapped for credits and no deduction
    for deductions); percent_rate is the credit rate.
    """
    kind: str = "none"
    cap_amount: float = 0.0
    percent_rate: float = 0.0

    @classmethod
    def from_config(cls, data: dict) -> 'StateBenefitConfig':
        return cls(
            kind=data.get('type', 'none'),
            cap_amount=max(0.0, float(data.get('amount', 0) or 0)),
            percent_rate=max(0.0, float(data.get('creditPercent', 0) or 0)),
        )


class StateDetails:
    def __init__(self, reference_dir: Optional[str] = None):
        self.reference_dir = reference_dir or os.path.normpath(os.path.join(os.path.dirname(__file__), '..', '..', 'reference'))

        # state-tax-rates.json: {state: {filingStatus: [brackets]}}
        with open(os.path.join(self.reference_dir, 'state-tax-rates.json'), 'r') as f:
            self.rates = json.load(f)

        # state-tax-benefits.json: {state: {name, benefits: {filingStatus: config}}}
        with open(os.path.join(self.reference_dir, 'state-tax-benefits.json'), 'r') as f:
            self.benefits = json.load(f)

        self._brackets: Dict[tuple, List[TaxBracket]] = {}

    def _brackets_for(self, state_code: str, filing_status: str) -> List[TaxBracket]:
        key = ((state_code or '').upper(), filing_status)
        if key not in self._brackets:
            rows = self.rates.get(key[0], {}).get(filing_status, [])
            self._brackets[key] = bracketsFromConfig(rows)
        return self._brackets[key]

    def taxBurden(self, agi: float, state_code: str, filing_status: str) -> float:
        """State income tax owed on agi. Unknown states owe nothing."""
        return computeProgressiveTax(agi, self._brackets_for(state_code, filing_status))

    def marginalRate(self, agi: float, state_code: str, filing_status: str) -> float:
        return marginalRate(agi, self._brackets_for(state_code, filing_status))

    def taxOnAdditionalIncome(self, agi: float, additional: float, state_code: str, filing_status: str) -> float:
        base = max(0.0, agi or 0.0)
        return max(0.0, self.taxBurden(base + max(0.0, additional), state_code, filing_status) - self.taxBurden(base, state_code, filing_status))

    def benefitConfig(self, state_code: str, filing_status: str) -> Optional[StateBenefitConfig]:
        """Benefit config for the state and filing status.

        Falls back to the state's 'single' entry when the filing status has no
        entry of its own. Returns None for states with no configuration.
        """
        entry = self.benefits.get((state_code or '').upper())
        if not entry:
            return None
        by_status = entry.get('benefits', {})
        data = by_status.get(filing_status)
        if data is None:
            data = by_status.get('single')
            if data is not None:
                logger.debug("No %s benefit config for %s, using single", state_code, filing_status)
        return StateBenefitConfig.from_config(data) if data is not None else None

    def benefit(self, contribution: float, agi: float, state_code: str, filing_status: str) -> float:
        """Value of the state deduction or credit earned on a year's contributions.

        Calculation rules:
        - credit: min(contribution, cap or contribution) * rate
        - deduction: tax(agi) - tax(agi - min(contribution, cap, agi))
        Both are capped at the state tax owed before the benefit, so a filer
        with no state liability gets no benefit.
        """
        config = self.benefitConfig(state_code, filing_status)
        if config is None or config.kind == 'none':
            return 0.0
        contrib = max(0.0, contribution or 0.0)
        income = max(0.0, agi or 0.0)

        tax_before = self.taxBurden(income, state_code, filing_status)
        if tax_before <= 0:
            return 0.0

        if config.kind == 'credit':
            qualifying = min(contrib, config.cap_amount) if config.cap_amount > 0 else contrib
            return max(0.0, min(tax_before, qualifying * config.percent_rate))

        deductible = min(contrib, config.cap_amount, income) if config.cap_amount > 0 else 0.0
        if deductible <= 0:
            return 0.0
        tax_after = self.taxBurden(max(0.0, income - deductible), state_code, filing_status)
        return max(0.0, min(tax_before, tax_before - tax_after))

    def stateName(self, state_code: str) -> Optional[str]:
        entry = self.benefits.get((state_code or '').upper())
        return entry.get('name') if entry else None
