
import json
import logging
import os
from typing import Dict, List, Optional

from model.FederalResult import FederalResult, FscAnswers, SaversCreditResult, FSC_QUESTION_ORDER, FSC_REQUIRED_ANSWERS
from tax.TaxBrackets import TaxBracket, bracketsFromConfig, computeProgressiveTax, marginalRate

logger = logging.getLogger(__name__)

DEFAULT_FILING_STATUS = "single"


class FederalDetails:
	def __init__(self, reference_dir: Optional[str] = None):
		"""
		reference_dir: directory holding federal-tax-brackets.json and
		savers-credit.json (defaults to the repository's reference/ folder)
		"""
		self.reference_dir = reference_dir or os.path.join(os.path.dirname(__file__), '../../reference')
		self.brackets_by_status: Dict[str, List[TaxBracket]] = {}
		self.credit_brackets: List[dict] = []
		self.contribution_limits: Dict[str, float] = {}
		self._load()

	def _load(self):
		with open(os.path.join(self.reference_dir, 'federal-tax-brackets.json'), 'r') as f:
			data = json.load(f)
		brackets = data.get("brackets", {})
		if not brackets:
			raise ValueError("federal-tax-brackets.json must contain a 'brackets' map keyed by filing status")
		self.tax_year = data.get("taxYear")
		for status, rows in brackets.items():
			self.brackets_by_status[status] = bracketsFromConfig(rows)

		with open(os.path.join(self.reference_dir, 'savers-credit.json'), 'r') as f:
			credit = json.load(f)
		self.credit_brackets = credit.get("brackets", [])
		self.contribution_limits = credit.get("contributionLimits", {})

	def filingStatus(self, filing_status: Optional[str]) -> str:
		"""Returns filing_status if it is configured, otherwise 'single'."""
		if filing_status in self.contribution_limits:
			return filing_status
		if filing_status:
			logger.warning("Unknown filing status %r, using %s", filing_status, DEFAULT_FILING_STATUS)
		return DEFAULT_FILING_STATUS

	def taxBurden(self, agi: float, filing_status: str) -> FederalResult:
		"""
		Returns a FederalResult with the federal income tax owed on agi and the
		marginal bracket the last dollar falls in.
		"""
		brackets = self.brackets_by_status.get(self.filingStatus(filing_status), [])
		return FederalResult(
			totalFederalTax=computeProgressiveTax(agi, brackets),
			marginalBracket=marginalRate(agi, brackets),
		)

	def taxOnAdditionalIncome(self, agi: float, additional: float, filing_status: str) -> float:
		"""Federal tax owed on additional income stacked on top of agi."""
		brackets = self.brackets_by_status.get(self.filingStatus(filing_status), [])
		base = max(0.0, agi or 0.0)
		return max(0.0, computeProgressiveTax(base + max(0.0, additional), brackets) - computeProgressiveTax(base, brackets))

	def saversCreditRate(self, agi: Optional[float], filing_status: str) -> Optional[float]:
		"""
		Returns the Saver's Credit rate of the first bracket whose definition for
		the filing status matches agi, or None when no bracket matches.

		Bracket definitions are typed:
			max:   agi <= value
			range: min <= agi <= max
			min:   agi > value
		"""
		if agi is None:
			return None
		status = self.filingStatus(filing_status)
		for entry in self.credit_brackets:
			bracket = entry.get("brackets", {}).get(status)
			if not bracket:
				continue
			kind = bracket.get("type")
			if kind == "max" and isinstance(bracket.get("value"), (int, float)):
				matched = agi <= bracket["value"]
			elif kind == "range" and isinstance(bracket.get("min"), (int, float)) and isinstance(bracket.get("max"), (int, float)):
				matched = bracket["min"] <= agi <= bracket["max"]
			elif kind == "min" and isinstance(bracket.get("value"), (int, float)):
				matched = agi > bracket["value"]
			else:
				matched = False
			if matched:
				return entry.get("creditRate")
		return None

	def saversContributionLimit(self, filing_status: str) -> Optional[float]:
		return self.contribution_limits.get(self.filingStatus(filing_status))

	def saversCredit(self, contribution: float, agi: float, filing_status: str) -> float:
		"""
		Returns the Saver's Credit earned on a year's contributions.

		The qualifying contribution is capped at the filing-status limit and the
		credit can never exceed the federal liability computed from agi alone.
		"""
		rate = self.saversCreditRate(agi, filing_status) or 0.0
		limit = self.saversContributionLimit(filing_status) or 0.0
		qualifying = min(max(0.0, contribution or 0.0), limit)
		liability = self.taxBurden(agi, filing_status).totalFederalTax
		return max(0.0, min(qualifying * rate, liability))

	def evaluateSaversCredit(self, agi: Optional[float], filing_status: Optional[str], answers: Optional[FscAnswers] = None) -> SaversCreditResult:
		"""
		Returns the Saver's Credit verdict for a filer.

		The AGI gate decides first: outside every paying bracket the status is
		ineligible_income. Inside a paying bracket the status stays
		needs_more_inputs until questionnaire answers are supplied, then becomes
		eligible or ineligible_other with one reason per failed question.
		"""
		status_used = self.filingStatus(filing_status)
		rate = self.saversCreditRate(agi, status_used)
		limit = self.saversContributionLimit(status_used)
		agi_gate = rate is not None and rate > 0

		reasons = [] if agi_gate else ["income_or_filing_status"]
		eligible: Optional[bool] = None if agi_gate else False
		status = "needs_more_inputs" if agi_gate else "ineligible_income"

		if agi_gate and answers is not None:
			failures = []
			if answers.has_tax_liability is not True:
				failures.append("no_tax_liability")
			if answers.is_over_18 is not True:
				failures.append("under_18")
			if answers.is_student is True:
				failures.append("student")
			if answers.is_dependent is True:
				failures.append("dependent")
			eligible = not failures
			status = "eligible" if eligible else "ineligible_other"
			reasons.extend(failures)

		notes = []
		if agi is None:
			notes.append("AGI not provided or invalid")
		if rate is None:
			notes.append("No matching credit bracket found for filing status")
		if limit is None:
			notes.append("No contribution limit configured for filing status")

		return SaversCreditResult(
			eligible=eligible,
			agi_gate_eligible=agi_gate,
			status=status,
			reasons=reasons,
			agi_used=agi if agi is not None else 0.0,
			filing_status_used=status_used,
			credit_percent=rate,
			max_qualifying_contribution=limit,
			notes=notes,
		)


def visibleFscQuestions(answers: FscAnswers) -> List[str]:
	"""
	Returns the questionnaire keys to show: every answered question plus the
	first unanswered one.
	"""
	values = answers.to_dict()
	for i, key in enumerate(FSC_QUESTION_ORDER):
		if values[key] is None:
			return FSC_QUESTION_ORDER[:i + 1]
	return list(FSC_QUESTION_ORDER)


def disqualifiesFsc(key: str, value: bool) -> bool:
	return value != FSC_REQUIRED_ANSWERS[key]
