"""State and events for the Work to ABLE contribution-limit dialogue.

The dialogue is a small state machine: ``IncentiveFlowState`` is an
immutable snapshot and every user action is an event dataclass. The
transition function lives in ``calc.incentive_flow``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class IncentiveMode(str, Enum):
    IDLE = "idle"
    INITIAL_PROMPT = "initialPrompt"
    INCOME_QUESTION = "incomeQuestion"
    NO_PATH = "noPath"
    COMBINED_LIMIT = "combinedLimit"


class IncentiveStatus(str, Enum):
    UNKNOWN = "unknown"
    INELIGIBLE = "ineligible"
    ELIGIBLE = "eligible"


@dataclass(frozen=True)
class ContributionPlan:
    """The contribution inputs the dialogue watches.

    ``months_remaining`` is the number of months left in the current
    calendar year, counting the projection's first month.
    """
    monthly_current_year: float = 0.0
    monthly_future_years: float = 0.0
    months_remaining: int = 12
    contribution_increase_pct: float = 0.0
    horizon_years: int = 1
    state_code: str = "UT"

    @property
    def planned_current_year(self) -> float:
        return self.monthly_current_year * self.months_remaining

    @property
    def planned_annual(self) -> float:
        return self.monthly_future_years * 12

    def exceeds(self, limit: float) -> bool:
        return self.planned_current_year > limit or self.planned_annual > limit


@dataclass(frozen=True)
class IncentiveFlowState:
    mode: IncentiveMode = IncentiveMode.IDLE
    status: IncentiveStatus = IncentiveStatus.UNKNOWN
    has_earned_income: Optional[bool] = None
    earned_income_amount: float = 0.0
    participates_in_employer_retirement_plan: Optional[bool] = None
    additional_allowed_amount: float = 0.0
    combined_annual_limit: Optional[float] = None
    plan: ContributionPlan = ContributionPlan()
    auto_adjust_applied: bool = False    # capped once in the current breach episode
    dismissed: bool = False              # adjustment notice acknowledged
    auto_prompted_for_increase: bool = False

    @property
    def notice_pending(self) -> bool:
        return self.auto_adjust_applied and not self.dismissed


# Events

@dataclass(frozen=True)
class ContributionsChanged:
    plan: ContributionPlan


@dataclass(frozen=True)
class ExploreIncentive:
    explore: bool


@dataclass(frozen=True)
class EarnedIncomeAnswered:
    has_earned_income: bool
    amount: float = 0.0


@dataclass(frozen=True)
class RetirementPlanAnswered:
    participates: bool


@dataclass(frozen=True)
class NoticeDismissed:
    pass


@dataclass(frozen=True)
class Restart:
    pass
