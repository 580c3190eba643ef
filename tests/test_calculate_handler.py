"""Tests for the calculate request handler."""

import datetime
import json
import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from api import CalculateHandler
from tax.FederalDetails import FederalDetails
from tax.StateDetails import StateDetails
from tax.AbleDetails import AbleDetails
from tax.ClientDetails import ClientDetails

TODAY = datetime.date(2026, 10, 19)


@pytest.fixture(scope="module")
def handler():
    return CalculateHandler(FederalDetails(), StateDetails(), AbleDetails(), ClientDetails())


def handle(handler, payload):
    status, body = handler.handle(payload, TODAY)
    assert status == 200
    return body


def test_invalid_json_is_rejected(handler):
    assert handler.handle("{not json", TODAY) == (400, {"ok": False, "error": "Invalid JSON payload"})
    assert handler.handle("[1, 2]", TODAY)[0] == 400
    assert handler.handle(None, TODAY)[0] == 400


def test_accepts_text_and_bytes(handler):
    payload = {"planStateCode": "il"}
    assert handler.handle(json.dumps(payload), TODAY)[0] == 200
    assert handler.handle(json.dumps(payload).encode("utf-8"), TODAY)[0] == 200


def test_empty_payload_uses_defaults(handler):
    body = handle(handler, {})
    assert body["ok"] is True
    assert body["input"] == {}
    assert body["echo"]["clientId"] == "default"
    assert body["echo"]["planStateCode"] == "UT"
    assert body["state"] == {"code": "UT", "name": "my529 ABLE", "maxAccountBalance": 550000, "residencyRequired": False}
    assert body["assumptions"]["annualReturn"] == {"value": 0.05, "source": "client_default"}
    assert body["assumptions"]["timeHorizonYears"] == {"value": 40, "source": "client_default"}
    assert "warning" not in body["meta"]


def test_rules_loaded_counts(handler):
    rules = handle(handler, {})["meta"]["rulesLoaded"]
    assert rules["federalTaxBrackets"] == 4
    assert rules["planLevelInfo"] == 4
    assert rules["stateTaxRates"] > 0


def test_unknown_plan_state_warns(handler, caplog):
    with caplog.at_level('WARNING', logger='api.calculate'):
        body = handle(handler, {"planStateCode": "zz"})
    assert body["meta"]["warning"] == "Unknown stateCode"
    assert body["state"]["code"] == "ZZ"
    assert body["state"]["name"] is None
    assert "ZZ" in caplog.text


def test_projection_values_are_validated(handler):
    body = handle(handler, {"projection": {"startingBalance": 1000, "monthlyContribution": -5,
                                           "monthlyWithdrawal": "lots"}})
    echo = body["echo"]["projection"]
    assert echo["startingBalance"] == 1000
    assert echo["monthlyContribution"] is None
    assert echo["monthlyWithdrawal"] is None
    assert body["echo"]["projectionNotes"] == [
        "monthlyContribution must be >= 0",
        "monthlyWithdrawal must be >= 0",
    ]


def test_missing_projection_values_echo_none(handler):
    body = handle(handler, {"projection": {}})
    assert body["echo"]["projection"]["startingBalance"] is None
    assert body["echo"]["projectionNotes"] == []


def test_bad_projection_months(handler):
    body = handle(handler, {"projection": {"contributionEnd": {"year": 2030, "month": 13},
                                           "withdrawalStart": {"year": 3000, "month": 1}}})
    assert body["echo"]["projection"]["contributionEnd"] is None
    assert body["echo"]["projection"]["withdrawalStart"] is None
    assert "contributionEnd.month must be 1-12" in body["echo"]["projectionNotes"]
    assert "withdrawalStart.year must be 1900-2100" in body["echo"]["projectionNotes"]


def test_horizon_override_clamp(handler):
    body = handle(handler, {"timeHorizonYearsOverride": 100})
    assert body["assumptions"]["timeHorizonYears"] == {
        "value": 75, "source": "override", "notes": ["timeHorizonYearsOverride clamped to 75"]}


def test_annual_return_override(handler):
    body = handle(handler, {"clientId": "UT", "annualReturnOverride": 0.07})
    assert body["echo"]["clientId"] == "ut"
    assert body["assumptions"]["annualReturn"] == {"value": 0.07, "source": "override"}


def test_projection_window_months(handler):
    # Default 40 year horizon measured from Oct 2026
    assert handle(handler, {})["projectionWindowMonths"] == 480
    body = handle(handler, {"projection": {"contributionEnd": {"year": 2027, "month": 10}}})
    assert body["projectionWindowMonths"] == 12
    body = handle(handler, {"projection": {"contributionEnd": {"year": 2090, "month": 1}}})
    assert body["projectionWindowMonths"] == 480


def test_projection_end_before_start(handler):
    body = handle(handler, {"projection": {"contributionEnd": {"year": 2025, "month": 1}}})
    assert body["projectionWindowMonths"] == 0
    assert "projection end precedes start" in body["echo"]["projectionNotes"]


def test_echo_flags(handler):
    body = handle(handler, {"beneficiaryStateCode": "va", "isSsiBeneficiary": "yes"})
    assert body["echo"]["beneficiaryStateCode"] == "VA"
    assert body["echo"]["isSsiBeneficiary"] is None
    assert handle(handler, {"isSsiBeneficiary": True})["echo"]["isSsiBeneficiary"] is True


def test_savers_credit_verdict(handler):
    criteria = {"hasTaxLiability": True, "isOver18": True, "isStudent": False, "isDependent": False}
    body = handle(handler, {"agi": 20000, "filingStatus": "single", "fscCriteria": criteria})
    assert body["federalSaversCredit"]["status"] == "eligible"
    assert body["federalSaversCredit"]["eligible"] is True

    body = handle(handler, {"agi": "twenty"})
    assert body["federalSaversCredit"]["status"] == "ineligible_income"


def test_residency_state_tax_details(handler):
    body = handle(handler, {"stateCode": "il"})
    assert body["tax"]["stateDeduction"]["name"] == "Illinois"
    assert body["tax"]["stateRate"] is not None
    assert handle(handler, {"stateCode": "zz"})["tax"] == {"stateRate": None, "stateDeduction": None}
