"""Complete result of one plan projection.

ProjectionResult holds everything the renderers, the interactive shell
and the MCP tools read: the resolved assumptions, the final tax-advantaged
schedule (with benefits attributed), the taxable comparison schedule,
enforcement messages and the report window.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from model.FederalResult import SaversCreditResult
from model.IncentiveState import IncentiveFlowState
from model.ProjectionInputs import ProjectionInputs
from model.ScheduleData import StatusCode, YearRow, TaxableYearRow, month_label


@dataclass(frozen=True)
class StatusMessage:
    """First occurrence of an enforcement status code in a schedule."""
    code: StatusCode
    month_label: str
    plan_max: Optional[float] = None

    def to_dict(self) -> dict:
        data = {"monthLabel": self.month_label}
        if self.plan_max is not None:
            data["planMax"] = self.plan_max
        return {"code": self.code.value, "data": data}


@dataclass
class ReportWindow:
    start_index: int
    effective_end_index: int    # horizon end or first depletion, whichever is earlier
    max_years: int
    years: int
    end_index: int              # last month shown


@dataclass
class EndingValueInfo:
    ending_balance: Optional[float]
    depletion_month_index: Optional[int]
    depletion_eligible: bool
    withdrawals_stop_after_depletion: bool

    @property
    def depletion_label(self) -> str:
        return month_label(self.depletion_month_index) if self.depletion_month_index is not None else ""


@dataclass
class ProjectionResult:
    """All calculated data for a plan projection."""
    inputs: ProjectionInputs
    client_id: str
    plan_state_code: str
    residency_state_code: str
    filing_status: str
    agi: float
    annual_return: float
    annual_return_source: str
    horizon_years: int
    horizon_source: str
    incentive: IncentiveFlowState
    resolution_pending: bool
    savers_credit: SaversCreditResult
    schedule: List[YearRow] = field(default_factory=list)
    taxable_schedule: List[TaxableYearRow] = field(default_factory=list)
    messages: List[StatusMessage] = field(default_factory=list)
    ending_value: Optional[EndingValueInfo] = None
    taxable_ending_value: Optional[EndingValueInfo] = None
    window: Optional[ReportWindow] = None
    notes: List[str] = field(default_factory=list)

    @property
    def first_year(self) -> int:
        return self.schedule[0].year if self.schedule else self.inputs.start_month_index // 12

    @property
    def last_year(self) -> int:
        return self.schedule[-1].year if self.schedule else self.inputs.horizon_end_index // 12

    def get_year(self, year: int) -> Optional[YearRow]:
        return next((y for y in self.schedule if y.year == year), None)

    def get_taxable_year(self, year: int) -> Optional[TaxableYearRow]:
        return next((y for y in self.taxable_schedule if y.year == year), None)

    @property
    def years_by_number(self) -> Dict[int, YearRow]:
        return {y.year: y for y in self.schedule}
