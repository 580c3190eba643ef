"""ABLE Planner Tools for MCP Server.

This module provides the tool implementations that wrap the projection
calculator and expose its data through MCP.
"""

import os
import sys
import json
import logging
from typing import Dict, List, Optional

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from api.calculate import CalculateHandler
from calc.projection_calculator import ProjectionCalculator, build_calculator
from calc.report_window import aggregate_window, account_totals
from model.ProjectionResult import ProjectionResult
from model.ScheduleData import flatten_months, month_label

logger = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(value, 2)


class AblePlannerTools:
    """Tools that wrap the projection calculator for MCP access."""

    def __init__(self, base_path: str, program_name: str, calculator: Optional[ProjectionCalculator] = None):
        """Initialize with paths and calculate the plan.

        Args:
            base_path: Path to the planner root directory
            program_name: Name of the program folder in input-parameters
            calculator: Shared calculator (built from base_path/reference if omitted)
        """
        self.base_path = base_path
        self.program_name = program_name
        self.spec = self._load_spec()
        self.calculator = calculator or build_calculator(os.path.join(base_path, 'reference'))
        self._calculate_plan()

    def _load_spec(self) -> dict:
        """Load the program specification."""
        spec_path = os.path.join(
            self.base_path, 'input-parameters', self.program_name, 'spec.json'
        )
        with open(spec_path, 'r') as f:
            return json.load(f)

    def _calculate_plan(self):
        self.result: ProjectionResult = self.calculator.calculate(self.spec)

    def _year_dict(self, year: int) -> Optional[dict]:
        row = self.result.get_year(year)
        if row is None:
            return None
        return {
            "year": year,
            "contribution": _money(row.contribution),
            "withdrawal": _money(row.withdrawal),
            "earnings": _money(row.earnings),
            "savers_credit": _money(row.credit_amount),
            "state_benefit": _money(row.state_benefit_amount),
            "ending_balance": _money(row.ending_balance),
            "months": len(row.months),
        }

    def get_program_overview(self) -> dict:
        """Get an overview of the plan."""
        inputs = self.result.inputs
        return {
            "program_name": self.program_name,
            "client_id": self.result.client_id,
            "plan_state": self.result.plan_state_code,
            "residency_state": self.result.residency_state_code,
            "filing_status": self.result.filing_status,
            "agi": self.result.agi,
            "is_ssi_beneficiary": inputs.is_means_tested,
            "projection": {
                "first_month": month_label(inputs.start_month_index),
                "last_month": month_label(inputs.horizon_end_index),
                "horizon_years": self.result.horizon_years,
                "horizon_source": self.result.horizon_source,
                "annual_return": self.result.annual_return,
                "annual_return_source": self.result.annual_return_source,
            },
            "account": {
                "starting_balance": inputs.starting_balance,
                "monthly_contribution_current_year": inputs.monthly_contribution_current_year,
                "monthly_contribution_future_years": inputs.monthly_contribution_future_years,
                "contribution_increase_pct": inputs.contribution_increase_pct,
                "monthly_withdrawal": inputs.monthly_withdrawal,
                "withdrawal_increase_pct": inputs.withdrawal_increase_pct,
                "plan_max_balance": inputs.plan_max_balance,
            },
            "messages": [m.to_dict() for m in self.result.messages],
            "notes": list(self.result.notes),
        }

    def list_available_years(self) -> dict:
        window = self.result.window
        return {
            "first_year": self.result.first_year,
            "last_year": self.result.last_year,
            "years": [y.year for y in self.result.schedule],
            "report_window_years": window.years if window else None,
            "max_report_window_years": window.max_years if window else None,
        }

    def get_year_summary(self, year: int) -> dict:
        """Get the ABLE account totals for one year."""
        data = self._year_dict(year)
        if data is None:
            return {"error": f"Year {year} is not in the projection"}
        return data

    def get_schedule(self, start_year: Optional[int] = None, end_year: Optional[int] = None, monthly: bool = False) -> dict:
        """Get the account schedule by year, or by month when monthly is set."""
        start_year = start_year or self.result.first_year
        end_year = end_year or self.result.last_year
        rows = [y for y in self.result.schedule if start_year <= y.year <= end_year]
        if not monthly:
            return {"schedule": [self._year_dict(y.year) for y in rows]}
        return {
            "schedule": [
                {
                    "month": m.label,
                    "contribution": _money(m.contribution),
                    "withdrawal": _money(m.withdrawal),
                    "earnings": _money(m.earnings),
                    "ending_balance": _money(m.ending_balance),
                    "status": sorted(c.value for c in m.status_codes),
                }
                for m in flatten_months(rows)
            ]
        }

    def compare_accounts(self, year: Optional[int] = None) -> dict:
        """Compare the ABLE account with the taxable account."""
        if year is None:
            end = self.result.window.end_index
            able = account_totals(aggregate_window(self.result.schedule, end))
            taxable = account_totals(aggregate_window(self.result.taxable_schedule, end))
            label = f"{self.result.window.years} year report window"
        else:
            able_row = self.result.get_year(year)
            taxable_row = self.result.get_taxable_year(year)
            if able_row is None or taxable_row is None:
                return {"error": f"Year {year} is not in the projection"}
            able = account_totals([able_row])
            taxable = account_totals([taxable_row])
            label = str(year)

        return {
            "period": label,
            "able": {
                "earnings": _money(able["earnings"]),
                "savers_credit": _money(able["credit_amount"]),
                "state_benefit": _money(able["state_benefit_amount"]),
                "ending_balance": _money(able["ending_balance"]),
            },
            "taxable": {
                "earnings": _money(taxable["earnings"]),
                "federal_tax": _money(taxable["federal_tax"]),
                "state_tax": _money(taxable["state_tax"]),
                "ending_balance": _money(taxable["ending_balance"]),
            },
            "ending_balance_difference": _money(able["ending_balance"] - taxable["ending_balance"]),
        }

    def get_limit_status(self) -> dict:
        """Get the contribution limit and Work to ABLE status."""
        status = self.calculator.limit_status(self.result)
        inputs = self.result.inputs
        status["stopContributionIncreasesAfterYear"] = inputs.stop_contribution_increases_after_year
        if inputs.balance_cap_stop_index is not None:
            status["balanceCapStop"] = month_label(inputs.balance_cap_stop_index)
        if inputs.plan_max_stop_index is not None:
            status["planMaxStop"] = month_label(inputs.plan_max_stop_index)
        return status

    def get_savers_credit(self) -> dict:
        return self.result.savers_credit.to_dict()

    def get_lifetime_totals(self) -> dict:
        """Totals over the whole projection horizon."""
        able = account_totals(self.result.schedule)
        taxable = account_totals(self.result.taxable_schedule)
        ending = self.result.ending_value
        return {
            "total_contributions": _money(able["contribution"]),
            "total_withdrawals": _money(able["withdrawal"]),
            "total_earnings": _money(able["earnings"]),
            "total_savers_credit": _money(able["credit_amount"]),
            "total_state_benefit": _money(able["state_benefit_amount"]),
            "final_able_balance": _money(able["ending_balance"]),
            "final_taxable_balance": _money(taxable["ending_balance"]),
            "taxable_taxes_paid": _money(taxable["federal_tax"] + taxable["state_tax"]),
            "depletion_month": ending.depletion_label if ending and ending.depletion_eligible else None,
        }


class MultiProgramTools:
    """Manager for multiple ABLE planning programs.

    Discovers all available programs and caches their projections,
    allowing queries to specify which program to use.
    """

    def __init__(self, base_path: str, default_program: Optional[str] = None):
        """Initialize and discover all available programs.

        Args:
            base_path: Path to the planner root directory
            default_program: Default program to use when none specified
        """
        self.base_path = base_path
        self.programs: Dict[str, AblePlannerTools] = {}
        self.default_program = default_program
        self.calculator = build_calculator(os.path.join(base_path, 'reference'))
        self.handler = CalculateHandler(
            self.calculator.federal, self.calculator.state,
            self.calculator.able, self.calculator.clients)
        self._discover_programs()

    def _discover_programs(self):
        """Discover and load all available programs."""
        input_params_path = os.path.join(self.base_path, 'input-parameters')

        if not os.path.exists(input_params_path):
            return

        for name in sorted(os.listdir(input_params_path)):
            program_dir = os.path.join(input_params_path, name)
            spec_path = os.path.join(program_dir, 'spec.json')

            if os.path.isdir(program_dir) and os.path.exists(spec_path):
                try:
                    self.programs[name] = AblePlannerTools(self.base_path, name, self.calculator)
                except (OSError, ValueError, KeyError, TypeError) as e:
                    # Log but don't fail on individual program errors
                    logger.warning("Failed to load program '%s': %s", name, e)

        if self.default_program is None and self.programs:
            self.default_program = list(self.programs.keys())[0]

    def _get_program(self, program: Optional[str] = None, require_explicit: bool = False) -> AblePlannerTools:
        """Get the specified program or default.

        Args:
            program: Program name to use, or None for default
            require_explicit: If True, raise error when program not specified and multiple exist
        """
        if program is None and len(self.programs) > 1 and require_explicit:
            available = list(self.programs.keys())
            raise ValueError(
                f"Multiple programs available: {available}. Please specify which program to query."
            )

        program_name = program or self.default_program

        if program_name not in self.programs:
            available = list(self.programs.keys())
            raise ValueError(
                f"Program '{program_name}' not found. Available programs: {available}"
            )

        return self.programs[program_name]

    def _tagged(self, result: dict, program: Optional[str]) -> dict:
        result["program"] = program or self.default_program
        return result

    def list_programs(self) -> dict:
        """List all available programs."""
        programs_info = {}
        for name, tools in self.programs.items():
            programs_info[name] = {
                "plan_state": tools.result.plan_state_code,
                "first_year": tools.result.first_year,
                "last_year": tools.result.last_year,
                "horizon_years": tools.result.horizon_years,
            }

        return {
            "available_programs": list(self.programs.keys()),
            "default_program": self.default_program,
            "programs_info": programs_info
        }

    def reload_programs(self) -> dict:
        """Reload all programs from disk, refreshing the cache."""
        old_programs = set(self.programs.keys())

        self.programs.clear()
        self.default_program = None
        self._discover_programs()

        new_programs = set(self.programs.keys())

        return {
            "status": "success",
            "message": f"Reloaded {len(self.programs)} programs",
            "programs_loaded": list(self.programs.keys()),
            "default_program": self.default_program,
            "changes": {
                "added": sorted(new_programs - old_programs),
                "removed": sorted(old_programs - new_programs),
                "reloaded": sorted(old_programs & new_programs)
            }
        }

    def get_program_overview(self, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).get_program_overview(), program)

    def list_available_years(self, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).list_available_years(), program)

    def get_year_summary(self, year: int, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).get_year_summary(year), program)

    def get_schedule(self, start_year: Optional[int] = None, end_year: Optional[int] = None,
                     monthly: bool = False, program: Optional[str] = None) -> dict:
        tools = self._get_program(program, require_explicit=True)
        return self._tagged(tools.get_schedule(start_year, end_year, monthly), program)

    def compare_accounts(self, year: Optional[int] = None, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).compare_accounts(year), program)

    def get_limit_status(self, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).get_limit_status(), program)

    def get_savers_credit(self, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).get_savers_credit(), program)

    def get_lifetime_totals(self, program: Optional[str] = None) -> dict:
        return self._tagged(self._get_program(program, require_explicit=True).get_lifetime_totals(), program)

    def compare_programs(self, program1: str, program2: str, metrics: Optional[List[str]] = None) -> dict:
        """Compare lifetime totals between two programs."""
        totals1 = self._get_program(program1).get_lifetime_totals()
        totals2 = self._get_program(program2).get_lifetime_totals()
        names = metrics or [k for k, v in totals1.items() if isinstance(v, (int, float))]

        comparison = {}
        for name in names:
            if name not in totals1:
                comparison[name] = {"error": f"Unknown metric: {name}"}
                continue
            v1, v2 = totals1[name], totals2[name]
            if not isinstance(v1, (int, float)) or not isinstance(v2, (int, float)):
                comparison[name] = {program1: v1, program2: v2}
                continue
            comparison[name] = {
                program1: v1,
                program2: v2,
                "difference": _money(v2 - v1),
            }
        return {"comparison": f"{program1} vs {program2}", "metrics": comparison}

    def calculate(self, payload) -> dict:
        """Run the calculate request handler on a raw request payload."""
        status, body = self.handler.handle(payload)
        return {"status": status, "body": body}
