"""Tests for means-tested balance cap and plan maximum enforcement."""

import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../src')))

from model.ProjectionInputs import ProjectionInputs
from model.ScheduleData import StatusCode, flatten_months, month_index
from calc.amortization import AmortizationCalculator
from calc.balance_cap import BalanceCapEnforcer, extract_messages, warning_key, enforcement_summary

JAN_2027 = month_index(2027, 1)


@pytest.fixture
def engine():
    return AmortizationCalculator()


@pytest.fixture
def enforcer(engine):
    return BalanceCapEnforcer(engine)


def capped_inputs(**overrides):
    values = dict(
        start_month_index=JAN_2027,
        horizon_end_index=JAN_2027 + 11,
        starting_balance=95000,
        monthly_contribution_current_year=2000,
        monthly_contribution_future_years=2000,
        monthly_withdrawal=500,
        is_means_tested=True,
    )
    values.update(overrides)
    return ProjectionInputs(**values)


def test_means_tested_cap_stops_contributions_and_forces_withdrawals(engine, enforcer):
    enforced = enforcer.enforce(capped_inputs())
    # Trial balances: 97000, 99000, 101000 -> first breach in Mar 2027
    breach = month_index(2027, 3)
    assert enforced.balance_cap_stop_index == breach
    assert enforced.forced_withdrawal_start_index == breach + 1
    assert enforced.plan_max_stop_index is None

    months = flatten_months(engine.build_schedule(enforced))
    assert months[2].contribution == 2000
    assert months[2].withdrawal == 0
    assert months[2].ending_balance == 101000
    assert months[3].contribution == 0
    assert months[3].withdrawal == 500
    assert StatusCode.BALANCE_CAP_CONTRIBUTIONS_STOPPED in months[3].status_codes
    assert StatusCode.FORCED_WITHDRAWALS_APPLIED in months[3].status_codes
    assert not months[2].status_codes
    assert months[-1].ending_balance == pytest.approx(101000 - 9 * 500)


def test_forced_withdrawals_can_be_zero(engine, enforcer):
    enforced = enforcer.enforce(capped_inputs(monthly_withdrawal=0))
    months = flatten_months(engine.build_schedule(enforced))
    assert all(m.withdrawal == 0 for m in months)
    assert months[-1].ending_balance == 101000


def test_configured_withdrawals_start_no_later_than_forced(engine, enforcer):
    enforced = enforcer.enforce(capped_inputs(withdrawal_start_index=JAN_2027 + 10))
    months = flatten_months(engine.build_schedule(enforced))
    assert months[3].withdrawal == 500


def test_cap_only_applies_to_means_tested(enforcer):
    enforced = enforcer.enforce(capped_inputs(is_means_tested=False))
    assert enforced.balance_cap_stop_index is None
    assert enforced.forced_withdrawal_start_index is None


def test_balance_at_cap_is_not_a_breach(enforcer):
    enforced = enforcer.enforce(capped_inputs(starting_balance=98000, monthly_contribution_current_year=1000,
                                              monthly_contribution_future_years=1000,
                                              horizon_end_index=JAN_2027 + 1))
    assert enforced.balance_cap_stop_index is None


def test_plan_max_stops_contributions_from_first_month_reached(engine, enforcer):
    inputs = ProjectionInputs(
        start_month_index=JAN_2027,
        horizon_end_index=JAN_2027 + 11,
        monthly_contribution_current_year=1000,
        monthly_contribution_future_years=1000,
        plan_max_balance=3000,
    )
    enforced = enforcer.enforce(inputs)
    assert enforced.plan_max_stop_index == month_index(2027, 3)
    assert enforced.forced_withdrawal_start_index is None

    schedule = engine.build_schedule(enforced)
    months = flatten_months(schedule)
    assert [m.contribution for m in months[:3]] == [1000, 1000, 0]
    assert StatusCode.PLAN_MAX_CONTRIBUTIONS_STOPPED in months[2].status_codes
    assert StatusCode.FORCED_WITHDRAWALS_APPLIED not in months[2].status_codes

    messages = extract_messages(schedule, 3000)
    assert len(messages) == 1
    assert messages[0].to_dict() == {
        "code": "PLAN_MAX_CONTRIBUTIONS_STOPPED",
        "data": {"monthLabel": "Mar 2027", "planMax": 3000},
    }


def test_enforcement_ignores_previous_results(enforcer):
    stale = capped_inputs(balance_cap_stop_index=JAN_2027, plan_max_stop_index=JAN_2027)
    enforced = enforcer.enforce(stale)
    assert enforced.balance_cap_stop_index == month_index(2027, 3)
    assert enforced.plan_max_stop_index is None


def test_messages_report_first_occurrence_only(engine, enforcer):
    schedule = engine.build_schedule(enforcer.enforce(capped_inputs()))
    messages = extract_messages(schedule)
    codes = [m.code for m in messages]
    assert codes == [StatusCode.BALANCE_CAP_CONTRIBUTIONS_STOPPED, StatusCode.FORCED_WITHDRAWALS_APPLIED]
    assert all(m.month_label == "Apr 2027" for m in messages)
    assert messages[0].to_dict()["data"] == {"monthLabel": "Apr 2027"}


def test_warning_key(engine, enforcer):
    schedule = engine.build_schedule(enforcer.enforce(capped_inputs()))
    key = warning_key(extract_messages(schedule))
    assert key == warning_key(extract_messages(schedule))
    assert len(key) == 12
    assert warning_key([]) == ""


def test_enforcement_summary(enforcer):
    summary = enforcement_summary(enforcer.enforce(capped_inputs()))
    assert summary == {
        "balanceCapStopIndex": month_index(2027, 3),
        "planMaxStopIndex": None,
        "forcedWithdrawalStartIndex": month_index(2027, 4),
    }
