"""Balance-cap and plan-maximum enforcement.

Both rules look at an unconstrained trial run of the amortization engine:

* Means-tested beneficiaries have a fixed balance cap. If the trial first
  ends a month above the cap at month k, contributions stop after k and
  withdrawals are forced to start at k + 1 (at the configured amount,
  which may be 0).
* A plan maximum balance stops contributions from the first month the
  trial reaches it. Withdrawals are not forced.

The resulting indices are written back into the inputs for the final run.
"""

import hashlib
from dataclasses import replace
from typing import Dict, List, Optional

from model.ProjectionInputs import ProjectionInputs
from model.ProjectionResult import StatusMessage
from model.ScheduleData import YearRow, StatusCode, flatten_months
from calc.amortization import AmortizationCalculator


MEANS_TESTED_BALANCE_CAP = 100000


class BalanceCapEnforcer:
    """Finds contribution stops and forced withdrawal starts for a projection."""

    def __init__(self, engine: AmortizationCalculator, balance_cap: float = MEANS_TESTED_BALANCE_CAP):
        self.engine = engine
        self.balance_cap = balance_cap

    def enforce(self, inputs: ProjectionInputs) -> ProjectionInputs:
        """Return inputs with the enforcement indices filled in."""
        inputs = inputs.normalized().without_enforcement()
        trial = flatten_months(self.engine.build_schedule(inputs))

        cap_month = None
        if inputs.is_means_tested:
            cap_month = next((m.month_index for m in trial if m.ending_balance > self.balance_cap), None)

        plan_month = None
        if inputs.plan_max_balance:
            plan_month = next((m.month_index for m in trial if m.ending_balance >= inputs.plan_max_balance), None)

        return replace(
            inputs,
            balance_cap_stop_index=cap_month,
            forced_withdrawal_start_index=cap_month + 1 if cap_month is not None else None,
            plan_max_stop_index=plan_month,
        )


def extract_messages(year_rows: List[YearRow], plan_max_balance: Optional[float] = None) -> List[StatusMessage]:
    """First occurrence of each status code, in schedule order."""
    seen = set()
    messages = []
    for month in flatten_months(year_rows):
        for code in sorted(month.status_codes, key=lambda c: c.value):
            if code in seen:
                continue
            seen.add(code)
            plan_max = plan_max_balance if code == StatusCode.PLAN_MAX_CONTRIBUTIONS_STOPPED else None
            messages.append(StatusMessage(code=code, month_label=month.label, plan_max=plan_max))
    return messages


def warning_key(messages: List[StatusMessage]) -> str:
    """Stable key for an enforcement outcome, used to remember acknowledgments."""
    text = "|".join(f"{m.code.value}:{m.month_label}" for m in messages)
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:12] if text else ""


def enforcement_summary(inputs: ProjectionInputs) -> Dict[str, Optional[int]]:
    return {
        "balanceCapStopIndex": inputs.balance_cap_stop_index,
        "planMaxStopIndex": inputs.plan_max_stop_index,
        "forcedWithdrawalStartIndex": inputs.forced_withdrawal_start_index,
    }
