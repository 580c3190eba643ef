"""Work to ABLE contribution-limit dialogue.

The account accepts at most a base amount per calendar year. Beneficiaries
with earned income who do not participate in an employer retirement plan
may contribute an additional amount up to the lesser of their earned
income and the one-person poverty level for their state.

``IncentiveFlow.transition`` is a pure function from a state and an event
to the next state. Callers dispatch events and read the resulting state,
including the (possibly auto-adjusted) contribution plan.

Modes:
    idle            nothing to ask
    initialPrompt   plan exceeds the base limit, ask whether to explore
    incomeQuestion  collecting earned income and retirement plan answers
    noPath          ineligible; contributions capped to the base limit
    combinedLimit   eligible but the plan exceeds even the combined limit
"""

import math
from dataclasses import replace
from typing import Dict, Optional

from model.IncentiveState import (
    IncentiveMode,
    IncentiveStatus,
    IncentiveFlowState,
    ContributionPlan,
    ContributionsChanged,
    ExploreIncentive,
    EarnedIncomeAnswered,
    RetirementPlanAnswered,
    NoticeDismissed,
    Restart,
)


BASE_ANNUAL_LIMIT = 20000


def first_limit_breach_year(monthly_contribution: float, increase_pct: float,
                            horizon_years: int, limit: float) -> Optional[int]:
    """First plan year whose compounded annual contribution exceeds limit.

    Year 1 is today's annual amount; year n is
    annual * (1 + increase_pct / 100) ** (n - 1).
    """
    annual = max(0.0, monthly_contribution) * 12
    factor = 1 + max(0.0, increase_pct) / 100
    for year in range(1, max(1, int(horizon_years)) + 1):
        if annual * factor ** (year - 1) > limit:
            return year
    return None


def stop_increases_after_year(monthly_contribution: float, increase_pct: float,
                              horizon_years: int, limit: float) -> Optional[int]:
    """Plan year after which annual increases must stop to stay within limit.

    Returns 0 when today's annual amount already reaches the limit and None
    when the increases never cross it within the horizon.
    """
    annual = max(0.0, monthly_contribution) * 12
    if annual >= limit:
        return 0
    if increase_pct <= 0:
        return None
    breach = first_limit_breach_year(monthly_contribution, increase_pct, horizon_years, limit)
    return breach - 1 if breach is not None else None


def capped_plan(plan: ContributionPlan, limit: float) -> ContributionPlan:
    """Cap monthly amounts so neither the current nor a future year exceeds limit."""
    months = plan.months_remaining if plan.months_remaining > 0 else 12
    return replace(
        plan,
        monthly_current_year=min(plan.monthly_current_year, math.floor(limit / months)),
        monthly_future_years=min(plan.monthly_future_years, math.floor(limit / 12)),
    )


class IncentiveFlow:
    """State machine for the Work to ABLE dialogue."""

    def __init__(self, base_limit: float = BASE_ANNUAL_LIMIT, poverty_levels: Optional[Dict[str, float]] = None):
        """Initialize with the limit configuration.

        Args:
            base_limit: base annual contribution limit
            poverty_levels: one-person poverty level by state code, with a
                'default' entry used for states that are not listed
        """
        self.base_limit = base_limit
        self.poverty_levels = poverty_levels or {}

    def poverty_level(self, state_code: str) -> float:
        value = self.poverty_levels.get((state_code or '').upper())
        if value:
            return float(value)
        return float(self.poverty_levels.get('default', 0))

    def applicable_limit(self, state: IncentiveFlowState) -> float:
        if state.status == IncentiveStatus.ELIGIBLE and state.combined_annual_limit is not None:
            return state.combined_annual_limit
        return self.base_limit

    def transition(self, state: IncentiveFlowState, event) -> IncentiveFlowState:
        """Return the state that follows ``state`` after ``event``."""
        if isinstance(event, Restart):
            return self._evaluate(IncentiveFlowState(plan=state.plan))

        if isinstance(event, ContributionsChanged):
            return self._evaluate(replace(state, plan=event.plan))

        if isinstance(event, NoticeDismissed):
            return replace(state, dismissed=True)

        if isinstance(event, ExploreIncentive):
            if state.mode != IncentiveMode.INITIAL_PROMPT:
                return state
            if event.explore:
                return replace(state, mode=IncentiveMode.INCOME_QUESTION)
            return self._decline(state)

        if isinstance(event, EarnedIncomeAnswered):
            if state.mode != IncentiveMode.INCOME_QUESTION:
                return state
            amount = event.amount if isinstance(event.amount, (int, float)) and math.isfinite(event.amount) else 0.0
            if not event.has_earned_income or amount <= 0:
                return self._decline(replace(state, has_earned_income=False, earned_income_amount=0.0))
            return replace(state, has_earned_income=True, earned_income_amount=float(amount))

        if isinstance(event, RetirementPlanAnswered):
            if state.mode != IncentiveMode.INCOME_QUESTION or not state.has_earned_income:
                return state
            if event.participates:
                return self._decline(replace(state, participates_in_employer_retirement_plan=True))
            additional = min(state.earned_income_amount, self.poverty_level(state.plan.state_code))
            combined = self.base_limit + additional
            return self._apply_limit(replace(
                state,
                participates_in_employer_retirement_plan=False,
                status=IncentiveStatus.ELIGIBLE,
                additional_allowed_amount=additional,
                combined_annual_limit=combined,
                mode=IncentiveMode.COMBINED_LIMIT if state.plan.exceeds(combined) else IncentiveMode.IDLE,
            ))

        raise ValueError(f"Unknown incentive flow event: {event!r}")

    def _decline(self, state: IncentiveFlowState) -> IncentiveFlowState:
        return self._apply_limit(replace(
            state,
            status=IncentiveStatus.INELIGIBLE,
            mode=IncentiveMode.NO_PATH,
            additional_allowed_amount=0.0,
            combined_annual_limit=self.base_limit,
        ))

    def _apply_limit(self, state: IncentiveFlowState) -> IncentiveFlowState:
        """Cap the plan to the applicable limit once per breach episode."""
        limit = self.applicable_limit(state)
        if not state.plan.exceeds(limit):
            return state
        mode = IncentiveMode.NO_PATH if state.status == IncentiveStatus.INELIGIBLE else IncentiveMode.COMBINED_LIMIT
        if state.auto_adjust_applied:
            return replace(state, mode=mode)
        return replace(
            state,
            mode=mode,
            plan=capped_plan(state.plan, limit),
            auto_adjust_applied=True,
            dismissed=False,
        )

    def _evaluate(self, state: IncentiveFlowState) -> IncentiveFlowState:
        if state.status == IncentiveStatus.UNKNOWN:
            return self._evaluate_unknown(state)

        if state.plan.exceeds(self.applicable_limit(state)):
            return self._apply_limit(state)

        # Back within the limit: the breach episode is over
        if state.notice_pending:
            return state
        if not state.plan.exceeds(self.base_limit):
            return IncentiveFlowState(plan=state.plan, auto_prompted_for_increase=state.auto_prompted_for_increase)
        return replace(state, mode=IncentiveMode.IDLE, auto_adjust_applied=False, dismissed=False)

    def _evaluate_unknown(self, state: IncentiveFlowState) -> IncentiveFlowState:
        plan = state.plan
        if plan.exceeds(self.base_limit):
            if state.mode == IncentiveMode.IDLE:
                return replace(state, mode=IncentiveMode.INITIAL_PROMPT)
            return state

        breach_year = first_limit_breach_year(
            plan.monthly_future_years, plan.contribution_increase_pct, plan.horizon_years, self.base_limit)
        if breach_year is not None and plan.contribution_increase_pct > 0:
            if state.mode == IncentiveMode.IDLE and not state.auto_prompted_for_increase:
                return replace(state, mode=IncentiveMode.INITIAL_PROMPT, auto_prompted_for_increase=True)
            return state

        if state.mode in (IncentiveMode.INITIAL_PROMPT, IncentiveMode.INCOME_QUESTION):
            return replace(state, mode=IncentiveMode.IDLE)
        return state

    def is_resolution_pending(self, state: IncentiveFlowState) -> bool:
        """True while the dialogue is unanswered and the plan exceeds the base limit."""
        return (
            not state.dismissed
            and state.mode in (IncentiveMode.INITIAL_PROMPT, IncentiveMode.INCOME_QUESTION)
            and state.plan.exceeds(self.base_limit)
        )

    def projection_plan(self, state: IncentiveFlowState) -> ContributionPlan:
        """Contribution plan to project: capped at the base limit while pending."""
        if self.is_resolution_pending(state):
            return capped_plan(state.plan, self.base_limit)
        return state.plan

    def replay(self, plan: ContributionPlan, answers: Optional[dict] = None) -> IncentiveFlowState:
        """Run the dialogue non-interactively from a plan's saved answers.

        Args:
            plan: contribution plan to evaluate
            answers: optional dict with explore, hasEarnedIncome, earnedIncome
                and participatesInRetirementPlan

        Returns:
            The state reached after dispatching every answer that applies
        """
        state = self.transition(IncentiveFlowState(), ContributionsChanged(plan))
        if not isinstance(answers, dict):
            return state

        explore = answers.get('explore', isinstance(answers.get('hasEarnedIncome'), bool))
        if state.mode == IncentiveMode.INITIAL_PROMPT and isinstance(explore, bool):
            state = self.transition(state, ExploreIncentive(explore))

        has_income = answers.get('hasEarnedIncome')
        if state.mode == IncentiveMode.INCOME_QUESTION and isinstance(has_income, bool):
            amount = answers.get('earnedIncome', 0)
            state = self.transition(state, EarnedIncomeAnswered(has_income, amount if isinstance(amount, (int, float)) else 0.0))

        participates = answers.get('participatesInRetirementPlan')
        if state.mode == IncentiveMode.INCOME_QUESTION and isinstance(participates, bool):
            state = self.transition(state, RetirementPlanAnswered(participates))
        return state
