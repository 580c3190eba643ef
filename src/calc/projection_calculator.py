"""Projection calculator that builds a complete plan result.

The calculation runs in four phases:
1. Resolve assumptions - client defaults, horizon, start month, windows
2. Contribution limits - replay the Work to ABLE dialogue and work out
   where annual increases must stop
3. Schedules - balance-cap enforcement, the final tax-advantaged
   schedule and the taxable comparison schedule
4. Reporting - benefits, status messages, ending values, report window
"""

import datetime
import logging
from typing import Optional

from model.FederalResult import FscAnswers
from model.IncentiveState import ContributionPlan, ContributionsChanged, IncentiveFlowState, IncentiveStatus
from model.ProjectionInputs import ProjectionInputs, clamp_money
from model.ProjectionResult import ProjectionResult
from model.ScheduleData import month_index, months_remaining_in_year
from tax.FederalDetails import FederalDetails
from tax.StateDetails import StateDetails
from tax.AbleDetails import AbleDetails
from tax.ClientDetails import ClientDetails
from calc.amortization import AmortizationCalculator
from calc.balance_cap import BalanceCapEnforcer, extract_messages
from calc.benefit_calculator import BenefitCalculator
from calc.incentive_flow import IncentiveFlow, stop_increases_after_year
from calc.report_window import build_report_window, ending_value_info
from calc.taxable_calculator import TaxableAccountCalculator

logger = logging.getLogger(__name__)

DEFAULT_STATE_CODE = "UT"


def default_start_index(today: Optional[datetime.date] = None) -> int:
    """Planner start month: the month after today."""
    today = today or datetime.date.today()
    return today.year * 12 + today.month


def parse_month(value, label: str, notes: list) -> Optional[int]:
    """Month index for a {year, month} dict, or None with a note if invalid."""
    if not isinstance(value, dict):
        return None
    year, month = value.get('year'), value.get('month')
    valid_year = isinstance(year, int) and not isinstance(year, bool) and 1900 <= year <= 2100
    valid_month = isinstance(month, int) and not isinstance(month, bool) and 1 <= month <= 12
    if not valid_year:
        notes.append(f"{label}.year must be 1900-2100")
    if not valid_month:
        notes.append(f"{label}.month must be 1-12")
    if not (valid_year and valid_month):
        return None
    return month_index(year, month)


class ProjectionCalculator:
    """Calculator that builds a complete ProjectionResult from a plan spec.

    A plan spec is the JSON object stored in input-parameters/<name>/spec.json.
    """

    def __init__(self,
                 federal: FederalDetails,
                 state: StateDetails,
                 able: AbleDetails,
                 clients: ClientDetails):
        self.federal = federal
        self.state = state
        self.able = able
        self.clients = clients
        self.engine = AmortizationCalculator(able.maxProjectionMonths)
        self.enforcer = BalanceCapEnforcer(self.engine, able.meansTestedBalanceCap)
        self.taxable = TaxableAccountCalculator(federal, state, able.maxProjectionMonths)
        self.benefits = BenefitCalculator(federal, state)
        self.flow = IncentiveFlow(able.baseAnnualLimit, able.povertyLevels)

    def calculate(self, spec: dict, today: Optional[datetime.date] = None, report_window="max",
                  incentive: Optional[IncentiveFlowState] = None) -> ProjectionResult:
        """Calculate the full projection for a plan spec.

        Args:
            spec: The plan specification dictionary
            today: date used for the default start month (defaults to today)
            report_window: one of 3, 10, 20, 40 or "max"
            incentive: live dialogue state to continue from instead of replaying
                the spec's workToAble answers

        Returns:
            ProjectionResult with schedules, messages and the report window
        """
        notes = []

        # Phase 1: assumptions
        client_id = self.clients.normalizeClientId(spec.get('clientId'))
        annual_return, return_source = self.clients.resolveAnnualReturn(client_id, spec.get('annualReturn'))
        horizon_years, horizon_source, horizon_notes = self.clients.resolveTimeHorizon(client_id, spec.get('timeHorizonYears'))
        notes.extend(horizon_notes)

        plan_state = (spec.get('planStateCode') or DEFAULT_STATE_CODE).upper()
        residency_state = (spec.get('beneficiaryStateCode') or spec.get('stateCode') or plan_state).upper()
        filing_status = self.federal.filingStatus(spec.get('filingStatus'))
        agi = clamp_money(spec.get('agi'))
        is_means_tested = spec.get('isSsiBeneficiary') is True

        start_index = default_start_index(today)
        if 'startYear' in spec or 'startMonth' in spec:
            parsed = parse_month({'year': spec.get('startYear'), 'month': spec.get('startMonth')}, 'start', notes)
            if parsed is not None:
                start_index = parsed
        horizon_end = start_index + horizon_years * 12 - 1

        account = spec.get('account', {})
        contribution_end = parse_month(account.get('contributionEnd'), 'contributionEnd', notes)
        withdrawal_start = parse_month(account.get('withdrawalStart'), 'withdrawalStart', notes)
        if contribution_end is not None and contribution_end < start_index:
            notes.append("projection end precedes start")

        monthly = clamp_money(account.get('monthlyContribution'))
        monthly_future = clamp_money(account.get('monthlyContributionFuture', monthly))
        increase_pct = clamp_money(account.get('contributionIncreasePct'))

        # Phase 2: contribution limits
        plan = ContributionPlan(
            monthly_current_year=monthly,
            monthly_future_years=monthly_future,
            months_remaining=months_remaining_in_year(start_index),
            contribution_increase_pct=increase_pct,
            horizon_years=horizon_years,
            state_code=plan_state,
        )
        if incentive is None:
            incentive = self.flow.replay(plan, spec.get('workToAble'))
        elif incentive.plan != plan:
            incentive = self.flow.transition(incentive, ContributionsChanged(plan))
        pending = self.flow.is_resolution_pending(incentive)
        projected = self.flow.projection_plan(incentive)
        if pending:
            logger.info("Work to ABLE questions unanswered; projecting at the base limit")

        stop_after = None
        if projected.contribution_increase_pct > 0:
            stop_after = stop_increases_after_year(
                projected.monthly_future_years, projected.contribution_increase_pct,
                horizon_years, self.flow.applicable_limit(incentive))

        plan_max = self.able.planMaxBalance(plan_state)
        if plan_max is None:
            logger.warning("No maximum account balance configured for plan state %s", plan_state)

        inputs = ProjectionInputs(
            start_month_index=start_index,
            horizon_end_index=horizon_end,
            starting_balance=account.get('startingBalance', 0),
            monthly_contribution_current_year=projected.monthly_current_year,
            monthly_contribution_future_years=projected.monthly_future_years,
            monthly_withdrawal=account.get('monthlyWithdrawal', 0),
            contribution_increase_pct=projected.contribution_increase_pct,
            withdrawal_increase_pct=account.get('withdrawalIncreasePct', 0),
            contribution_end_index=contribution_end,
            withdrawal_start_index=withdrawal_start,
            annual_return=annual_return,
            plan_max_balance=plan_max,
            is_means_tested=is_means_tested,
            stop_contribution_increases_after_year=stop_after,
        ).normalized()

        # Phase 3: schedules
        enforced = self.enforcer.enforce(inputs)
        schedule = self.engine.build_schedule(enforced)
        taxable_schedule = self.taxable.build_schedule(inputs, agi, filing_status, residency_state)

        # Phase 4: reporting
        answers = FscAnswers.from_dict(spec.get('fscCriteria')) if 'fscCriteria' in spec else None
        savers_credit = self.federal.evaluateSaversCredit(agi if 'agi' in spec else None, filing_status, answers)
        schedule = self.benefits.enrich(schedule, agi, filing_status, residency_state, savers_credit.eligible is True)

        has_withdrawals = inputs.monthly_withdrawal > 0
        window = build_report_window(report_window, start_index, horizon_end, horizon_years, schedule, taxable_schedule)

        return ProjectionResult(
            inputs=enforced,
            client_id=client_id,
            plan_state_code=plan_state,
            residency_state_code=residency_state,
            filing_status=filing_status,
            agi=agi,
            annual_return=annual_return,
            annual_return_source=return_source,
            horizon_years=horizon_years,
            horizon_source=horizon_source,
            incentive=incentive,
            resolution_pending=pending,
            savers_credit=savers_credit,
            schedule=schedule,
            taxable_schedule=taxable_schedule,
            messages=extract_messages(schedule, plan_max),
            ending_value=ending_value_info(schedule, horizon_end, has_withdrawals),
            taxable_ending_value=ending_value_info(taxable_schedule, horizon_end, has_withdrawals),
            window=window,
            notes=notes,
        )

    def limit_status(self, result: ProjectionResult) -> dict:
        """Summary of the contribution-limit dialogue for display."""
        state = result.incentive
        return {
            "mode": state.mode.value,
            "status": state.status.value,
            "applicableLimit": self.flow.applicable_limit(state),
            "additionalAllowed": state.additional_allowed_amount,
            "combinedLimit": state.combined_annual_limit,
            "autoAdjusted": state.auto_adjust_applied,
            "resolutionPending": result.resolution_pending,
            "eligible": state.status == IncentiveStatus.ELIGIBLE,
        }


def build_calculator(reference_dir: Optional[str] = None) -> ProjectionCalculator:
    """Create a ProjectionCalculator from the reference JSON files."""
    return ProjectionCalculator(
        FederalDetails(reference_dir),
        StateDetails(reference_dir),
        AbleDetails(reference_dir),
        ClientDetails(reference_dir),
    )
