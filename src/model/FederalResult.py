from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class FederalResult:
    totalFederalTax: float
    marginalBracket: float


# Answers that make a filer eligible for the Saver's Credit
FSC_REQUIRED_ANSWERS = {
    "hasTaxLiability": True,
    "isOver18": True,
    "isStudent": False,
    "isDependent": False,
}

FSC_QUESTION_ORDER = ["hasTaxLiability", "isOver18", "isStudent", "isDependent"]


@dataclass(frozen=True)
class FscAnswers:
    """Saver's Credit questionnaire answers; None means not yet answered."""
    has_tax_liability: Optional[bool] = None
    is_over_18: Optional[bool] = None
    is_student: Optional[bool] = None
    is_dependent: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'FscAnswers':
        if not isinstance(data, dict):
            return cls()

        def _flag(key):
            value = data.get(key)
            return value if isinstance(value, bool) else None

        return cls(
            has_tax_liability=_flag("hasTaxLiability"),
            is_over_18=_flag("isOver18"),
            is_student=_flag("isStudent"),
            is_dependent=_flag("isDependent"),
        )

    def to_dict(self) -> dict:
        return {
            "hasTaxLiability": self.has_tax_liability,
            "isOver18": self.is_over_18,
            "isStudent": self.is_student,
            "isDependent": self.is_dependent,
        }

    @property
    def is_eligible(self) -> bool:
        return self.to_dict() == FSC_REQUIRED_ANSWERS


@dataclass
class SaversCreditResult:
    """Saver's Credit eligibility verdict for one filer."""
    eligible: Optional[bool]
    agi_gate_eligible: bool
    status: str
    reasons: List[str] = field(default_factory=list)
    agi_used: float = 0.0
    filing_status_used: str = "single"
    credit_percent: Optional[float] = None
    max_qualifying_contribution: Optional[float] = None
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "eligible": self.eligible,
            "agiGateEligible": self.agi_gate_eligible,
            "status": self.status,
            "reasons": list(self.reasons),
            "agiUsed": self.agi_used,
            "filingStatusUsed": self.filing_status_used,
            "creditPercent": self.credit_percent,
            "maxQualifyingContribution": self.max_qualifying_contribution,
            "notes": list(self.notes),
        }
