import os
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AbleDetails:
    """Account limits and plan metadata from the reference folder.

    able-limits.json holds the base annual contribution limit, the balance
    cap for means-tested beneficiaries and the poverty levels used by the
    Work to ABLE incentive. plan-level-info.json describes each state plan.
    """

    def __init__(self, reference_dir: Optional[str] = None):
        self.reference_dir = reference_dir or os.path.normpath(os.path.join(os.path.dirname(__file__), '..', '..', 'reference'))

        with open(os.path.join(self.reference_dir, 'able-limits.json'), 'r') as f:
            self.limits = json.load(f)
        if 'baseAnnualContributionLimit' not in self.limits:
            raise ValueError("able-limits.json must define 'baseAnnualContributionLimit'")

        with open(os.path.join(self.reference_dir, 'plan-level-info.json'), 'r') as f:
            self.plans = json.load(f)

    @property
    def baseAnnualLimit(self) -> float:
        return float(self.limits['baseAnnualContributionLimit'])

    @property
    def meansTestedBalanceCap(self) -> float:
        return float(self.limits.get('meansTestedBalanceCap', 100000))

    @property
    def maxProjectionMonths(self) -> int:
        return int(self.limits.get('maxProjectionMonths', 900))

    @property
    def povertyLevels(self) -> dict:
        return dict(self.limits.get('povertyLevels', {}))

    def povertyLevel(self, state_code: str) -> float:
        """One-person poverty level for the state, or the 'default' entry."""
        levels = self.limits.get('povertyLevels', {})
        value = levels.get((state_code or '').upper())
        if value:
            return float(value)
        return float(levels.get('default', 0))

    def planInfo(self, state_code: str) -> Optional[dict]:
        """Plan metadata (name, maxAccountBalance, residencyRequired) or None."""
        info = self.plans.get((state_code or '').upper())
        if info is None:
            logger.warning("No plan information for state %r", state_code)
        return info

    def planMaxBalance(self, state_code: str) -> Optional[float]:
        info = self.plans.get((state_code or '').upper()) or {}
        value = info.get('maxAccountBalance')
        return float(value) if isinstance(value, (int, float)) and value > 0 else None
