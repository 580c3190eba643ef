import math
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class TaxBracket:
	min_income: float
	max_income: Optional[float]
	marginal_rate: float


def _finite(value) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def bracketsFromConfig(rows) -> List[TaxBracket]:
	"""
	Builds TaxBracket rows from reference JSON entries of the form
	{"min": 0, "max": 11925, "rate": 0.10}. A missing or non-finite max
	means the bracket is open ended. Rows with a non-finite min or rate
	are dropped.
	"""
	brackets = []
	for row in rows or []:
		if not isinstance(row, dict):
			continue
		min_income = row.get("min", 0)
		rate = row.get("rate")
		if not _finite(min_income) or not _finite(rate):
			continue
		max_income = row.get("max")
		brackets.append(TaxBracket(
			min_income=float(min_income),
			max_income=float(max_income) if _finite(max_income) else None,
			marginal_rate=float(rate),
		))
	return brackets


def _clampMoney(value) -> float:
	if not _finite(value):
		return 0.0
	return max(0.0, float(value))


def computeProgressiveTax(income: float, brackets: Iterable[TaxBracket]) -> float:
	"""
	Returns the progressive tax owed on income for the given brackets.

	Brackets are evaluated in ascending order of min_income. Bracket minimums
	are inclusive whole-dollar thresholds (the second 2025 single bracket
	starts at 11926), so the slice taxed in a bracket is
	min(income, max) - (min - 1), or min(income, max) for the first bracket.
	"""
	y = _clampMoney(income)
	if y <= 0:
		return 0.0

	ordered = sorted(
		(b for b in brackets if _finite(b.min_income) and _finite(b.marginal_rate)),
		key=lambda b: b.min_income,
	)
	tax = 0.0
	for b in ordered:
		floor = b.min_income - 1 if b.min_income > 0 else 0.0
		upper = y if b.max_income is None else min(y, b.max_income)
		taxable = max(0.0, upper - floor)
		if taxable <= 0:
			continue
		tax += taxable * max(0.0, b.marginal_rate)
		if b.max_income is not None and y <= b.max_income:
			break
	return _clampMoney(tax)


def marginalRate(income: float, brackets: Iterable[TaxBracket]) -> float:
	"""Returns the rate of the bracket the last dollar of income falls in."""
	y = _clampMoney(income)
	if y <= 0:
		return 0.0
	rate = 0.0
	for b in sorted(brackets, key=lambda b: b.min_income):
		if y >= b.min_income:
			rate = b.marginal_rate
	return rate
