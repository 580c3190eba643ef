"""Request handler for the calculate boundary.

``CalculateHandler.handle`` takes a JSON payload (string or already parsed
dict) describing a beneficiary and returns ``(status_code, body)``. Only a
payload that is not a JSON object is rejected outright; every other
malformed field is nulled or clamped and explained in a note.
"""

import datetime
import json
import logging
import math
from typing import Optional, Tuple, Union

from model.FederalResult import FscAnswers
from tax.FederalDetails import FederalDetails
from tax.StateDetails import StateDetails
from tax.AbleDetails import AbleDetails
from tax.ClientDetails import ClientDetails

logger = logging.getLogger(__name__)

DEFAULT_STATE_CODE = "UT"
MIN_YEAR = 1900
MAX_YEAR = 2100


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_non_negative(value) -> Optional[float]:
    return value if _finite(value) and value >= 0 else None


def validate_projection_window(window, label: str, notes: list) -> Optional[dict]:
    """Validated {year, month} or None; bad fields add a note each."""
    if window is None:
        return None
    if not isinstance(window, dict):
        window = {}
    year, month = window.get('year'), window.get('month')
    valid_year = _finite(year) and MIN_YEAR <= year <= MAX_YEAR
    valid_month = _finite(month) and 1 <= month <= 12
    if not valid_year:
        notes.append(f"{label}.year must be {MIN_YEAR}-{MAX_YEAR}")
    if not valid_month:
        notes.append(f"{label}.month must be 1-12")
    if not (valid_year and valid_month):
        return None
    return {"year": year, "month": month}


class CalculateHandler:
    """Validates a calculate request and resolves its rules and assumptions."""

    def __init__(self, federal: FederalDetails, state: StateDetails, able: AbleDetails, clients: ClientDetails):
        self.federal = federal
        self.state = state
        self.able = able
        self.clients = clients

    def handle(self, payload: Union[str, bytes, dict], today: Optional[datetime.date] = None) -> Tuple[int, dict]:
        """Handle one request.

        Args:
            payload: request body as JSON text or a parsed dict
            today: date the projection window is measured from (defaults to today)

        Returns:
            Tuple of (HTTP-style status code, response body)
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError:
                return 400, {"ok": False, "error": "Invalid JSON payload"}
        if not isinstance(payload, dict):
            return 400, {"ok": False, "error": "Invalid JSON payload"}
        return 200, self._calculate(payload, today or datetime.date.today())

    def _calculate(self, parsed: dict, today: datetime.date) -> dict:
        plan_state_code = str(parsed.get('planStateCode') or DEFAULT_STATE_CODE).upper()
        plan_info = self.able.plans.get(plan_state_code)
        residency_code = str(parsed.get('stateCode') or DEFAULT_STATE_CODE).upper()

        meta = {
            "rulesLoaded": {
                "federalTaxBrackets": len(self.federal.brackets_by_status),
                "stateTaxRates": len(self.state.rates),
                "stateTaxDeductions": len(self.state.benefits),
                "planLevelInfo": len(self.able.plans),
                "federalSaversCreditBrackets": len(self.federal.credit_brackets),
                "federalSaversContributionLimits": len(self.federal.contribution_limits),
            }
        }
        if not plan_info:
            meta["warning"] = "Unknown stateCode"
            logger.warning("Unknown plan state code %r", plan_state_code)

        state_payload = {
            "code": plan_state_code,
            "name": (plan_info or {}).get('name'),
            "maxAccountBalance": (plan_info or {}).get('maxAccountBalance'),
            "residencyRequired": (plan_info or {}).get('residencyRequired'),
        }

        client_id = self.clients.normalizeClientId(parsed.get('clientId'))
        beneficiary = parsed.get('beneficiaryStateCode')
        projection = parsed.get('projection') if isinstance(parsed.get('projection'), dict) else {}
        projection_notes = []

        echo_projection = {}
        for key in ('startingBalance', 'monthlyContribution', 'monthlyWithdrawal'):
            if key not in projection:
                echo_projection[key] = None
                continue
            value = validate_non_negative(projection[key])
            if value is None:
                projection_notes.append(f"{key} must be >= 0")
            echo_projection[key] = value
        contribution_end = validate_projection_window(projection.get('contributionEnd'), 'contributionEnd', projection_notes)
        withdrawal_start = validate_projection_window(projection.get('withdrawalStart'), 'withdrawalStart', projection_notes)
        echo_projection["contributionEnd"] = contribution_end
        echo_projection["withdrawalStart"] = withdrawal_start

        echo = {
            "clientId": client_id,
            "planStateCode": plan_state_code,
            "beneficiaryStateCode": beneficiary.upper() if isinstance(beneficiary, str) else None,
            "isSsiBeneficiary": parsed.get('isSsiBeneficiary') if isinstance(parsed.get('isSsiBeneficiary'), bool) else None,
            "projection": echo_projection,
            "projectionNotes": projection_notes,
        }

        annual_return, return_source = self.clients.resolveAnnualReturn(client_id, parsed.get('annualReturnOverride'))
        horizon, horizon_source, horizon_notes = self.clients.resolveTimeHorizon(client_id, parsed.get('timeHorizonYearsOverride'))
        time_horizon = {"value": horizon, "source": horizon_source}
        if horizon_notes:
            time_horizon["notes"] = horizon_notes

        agi = parsed.get('agi') if _finite(parsed.get('agi')) else None
        answers = FscAnswers.from_dict(parsed['fscCriteria']) if isinstance(parsed.get('fscCriteria'), dict) else None
        savers_credit = self.federal.evaluateSaversCredit(agi, parsed.get('filingStatus'), answers)

        start = today.year * 12 + (today.month - 1)
        horizon_end = start + horizon * 12
        target_end = horizon_end
        if contribution_end is not None:
            target_end = min(int(contribution_end["year"]) * 12 + (int(contribution_end["month"]) - 1), horizon_end)
        if target_end < start:
            window_months = 0
            projection_notes.append("projection end precedes start")
        else:
            window_months = target_end - start

        return {
            "ok": True,
            "input": parsed,
            "echo": echo,
            "state": state_payload,
            "tax": {
                "stateRate": self.state.rates.get(residency_code),
                "stateDeduction": self.state.benefits.get(residency_code),
            },
            "meta": meta,
            "federalSaversCredit": savers_credit.to_dict(),
            "assumptions": {
                "annualReturn": {"value": annual_return, "source": return_source},
                "timeHorizonYears": time_horizon,
            },
            "projectionWindowMonths": window_months,
        }
